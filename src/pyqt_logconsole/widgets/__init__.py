"""Qt widgets for the debug console."""

from .log_console_view import LogConsoleView
from .console_window import LogConsoleWindow

__all__ = [
    "LogConsoleView",
    "LogConsoleWindow",
]
