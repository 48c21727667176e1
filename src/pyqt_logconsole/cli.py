"""
Command line entry points.

    pyqt-logconsole query  -- print filtered records from a snapshot as JSON
    pyqt-logconsole view   -- open the console window on stdin, a file or a snapshot
"""

import json
import logging
import sys
from pathlib import Path

import click

from pyqt_logconsole.models import LogLevel
from pyqt_logconsole.protocols import get_console_config
from pyqt_logconsole.services.filter_engine import CombineMode
from pyqt_logconsole.services.query_service import DEFAULT_LIMIT, QueryRequest, load_query_records, run_query

logger = logging.getLogger(__name__)

LEVEL_CHOICES = click.Choice(["debug", "info", "warn", "error"], case_sensitive=False)


@click.group()
@click.option('--log-level', default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help='Diagnostic logging level (written to stderr)')
def cli(log_level):
    """Debug console log viewer and query tool."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.option('--logs-dir', default=None, help='Snapshot directory (default: .debug_console_plus)')
@click.option('--level', 'levels', multiple=True, type=LEVEL_CHOICES,
              help='Level to include; repeat for several (default: all)')
@click.option('--search', default=None, help='Text to look for in messages')
@click.option('--regex', is_flag=True, help='Treat --search as a case-insensitive regular expression')
@click.option('--logic', default="AND", type=click.Choice(["AND", "OR"], case_sensitive=False),
              help='Combine levels and search with AND or OR')
@click.option('--head', is_flag=True, help='Oldest first instead of most recent first')
@click.option('--limit', type=int, default=DEFAULT_LIMIT, show_default=True, help='Maximum records returned')
def query(logs_dir, levels, search, regex, logic, head, limit):
    """
    Query the persisted log snapshot.

    Example:
        pyqt-logconsole query --level error --search timeout --limit 20
    """
    config = get_console_config()
    snapshot = Path(logs_dir) / config.snapshot_filename if logs_dir else config.snapshot_path()
    records = load_query_records(snapshot)

    request = QueryRequest(
        levels=[LogLevel(level.lower()) for level in levels] or None,
        search=search,
        regex=regex,
        logic=CombineMode(logic.upper()),
        tail=not head,
        limit=limit,
    )
    result = run_query(records, request)
    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@cli.command()
@click.option('--stdin', 'use_stdin', is_flag=True, help='Read live output lines from standard input')
@click.option('--follow', 'follow_path', default=None, type=click.Path(dir_okay=False),
              help='Tail a growing text file')
@click.option('--load', 'load_path', default=None, type=click.Path(exists=True, dir_okay=False),
              help='Open a saved JSON snapshot')
@click.option('--logs-dir', default=None, help='Where the live snapshot is written')
@click.option('--session', 'session_id', default="console", show_default=True, help='Session id for live records')
@click.option('--theme', default="dark", type=click.Choice(["dark", "light"]), show_default=True)
def view(use_stdin, follow_path, load_path, logs_dir, session_id, theme):
    """
    Open the console window.

    Example:
        my_app 2>&1 | pyqt-logconsole view --stdin
    """
    from PyQt6.QtWidgets import QApplication

    from pyqt_logconsole.services.console_protocol import ViewCommand
    from pyqt_logconsole.services.log_store import LogStore
    from pyqt_logconsole.theming import LogColorScheme
    from pyqt_logconsole.widgets.console_window import LogConsoleWindow

    if use_stdin and follow_path:
        click.echo("Error: use either --stdin or --follow, not both", err=True)
        sys.exit(1)

    config = get_console_config()
    snapshot = Path(logs_dir) / config.snapshot_filename if logs_dir else config.snapshot_path()

    app = QApplication.instance() or QApplication(sys.argv[:1])
    store = LogStore(snapshot_path=snapshot)
    scheme = LogColorScheme.create_dark_theme() if theme == "dark" else LogColorScheme.create_light_theme()
    window = LogConsoleWindow(store=store, color_scheme=scheme)

    window.tracker.start_session(session_id)
    window.show()

    if load_path:
        window.controller.dispatch({"type": ViewCommand.LOAD.value, "path": load_path})
    if use_stdin:
        window.attach_stream(stream=sys.stdin, category="stdout")
    elif follow_path:
        window.attach_stream(path=Path(follow_path), category="stdout", follow=True)

    sys.exit(app.exec())


def main():
    cli()


if __name__ == '__main__':
    main()
