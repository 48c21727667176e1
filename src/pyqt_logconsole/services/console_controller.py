"""
Console controller.

Owns the filter engine, the virtual viewport and the display options for
one console view, and connects them to a LogStore:

    records_evicted   -> FilterEngine.evict + VirtualViewport.evict
    records_appended  -> FilterEngine.append (incremental) + VirtualViewport.append_records
    store_reset       -> FilterEngine.full_recompute + VirtualViewport.set_records

The view talks to the controller only through dispatch(ConsoleMessage) and
hears back only through the send callback (ConsoleUpdate). Frames are
coalesced by a FrameScheduler; user actions that change what is shown force
the frame so an active text selection does not hold back the update.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pyqt_logconsole.core.frame_scheduler import FrameScheduler
from pyqt_logconsole.io.exceptions import SnapshotError
from pyqt_logconsole.io.snapshot import LoadResult, load_snapshot_file, validate_entries
from pyqt_logconsole.models import ALL_LEVELS, LogLevel, LogRecord
from pyqt_logconsole.protocols import get_console_config
from pyqt_logconsole.rendering.message_formatter import (
    DisplayOptions,
    MessageFormatter,
    TimestampMode,
    format_records_for_copy,
)
from pyqt_logconsole.services.console_protocol import ConsoleMessage, ConsoleUpdate, ViewCommand, ViewUpdate
from pyqt_logconsole.services.enum_dispatch_service import EnumDispatchService
from pyqt_logconsole.services.filter_engine import FilterEngine, FilterState
from pyqt_logconsole.services.log_store import LogStore
from pyqt_logconsole.viewport import RenderFrame, VirtualViewport

logger = logging.getLogger(__name__)

MarkupMeasureFn = Callable[[str, int], int]


class ConsoleController(EnumDispatchService[ViewCommand]):
    """Routes view commands to the filter/viewport pipeline and emits view updates."""

    def __init__(
        self,
        store: LogStore,
        send: Callable[[ConsoleUpdate], None],
        measure_markup: MarkupMeasureFn,
        has_selection: Optional[Callable[[], bool]] = None,
        formatter: Optional[MessageFormatter] = None,
        filter_state: Optional[FilterState] = None,
    ):
        super().__init__()
        config = get_console_config()
        self.store = store
        self._send = send
        self._measure_markup = measure_markup
        self._has_selection = has_selection or (lambda: False)
        self.formatter = formatter or MessageFormatter()
        self.engine = FilterEngine(filter_state or FilterState.from_level_names(config.default_levels))
        self.viewport = VirtualViewport(self._measure)
        self.options = DisplayOptions(timestamp_mode=TimestampMode(config.timestamp_mode))
        self.auto_hide_timestamps_width = config.auto_hide_timestamps_width
        self._launch_ms: Optional[int] = None
        self._markup_cache: Dict[str, str] = {}
        self._ready = False
        self._scheduler = FrameScheduler(self._render_frame, config.frame_interval_ms)

        self._register_handlers({
            ViewCommand.READY: self._handle_ready,
            ViewCommand.TOGGLE_LEVEL: self._handle_toggle_level,
            ViewCommand.SET_SEARCH: self._handle_set_search,
            ViewCommand.TOGGLE_REGEX: self._handle_toggle_regex,
            ViewCommand.TOGGLE_COMBINE_MODE: self._handle_toggle_combine_mode,
            ViewCommand.CLEAR: self._handle_clear,
            ViewCommand.LOAD: self._handle_load,
            ViewCommand.RESIZE: self._handle_resize,
            ViewCommand.SCROLL: self._handle_scroll,
            ViewCommand.TOGGLE_TIMESTAMPS: self._handle_toggle_timestamps,
            ViewCommand.TOGGLE_COMPACT: self._handle_toggle_compact,
            ViewCommand.TOGGLE_TAGS: self._handle_toggle_tags,
            ViewCommand.COPY_ALL: self._handle_copy_all,
            ViewCommand.COPY_RANGE: self._handle_copy_range,
            ViewCommand.SHOW_UNFILTERED: self._handle_show_unfiltered,
        })

        store.records_evicted.connect(self._on_records_evicted)
        store.records_appended.connect(self._on_records_appended)
        store.store_reset.connect(self._on_store_reset)
        self._on_store_reset()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, message: Union[ConsoleMessage, Mapping[str, Any]]) -> Any:
        """Single inbound entry point for view commands."""
        if not isinstance(message, ConsoleMessage):
            message = ConsoleMessage.from_dict(dict(message))
        return super().dispatch(message)

    def _determine_strategy(self, message: ConsoleMessage) -> ViewCommand:
        return message.command

    @property
    def filter_state(self) -> FilterState:
        return self.engine.state

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def effective_options(self) -> DisplayOptions:
        """Display options with timestamps suppressed in very narrow containers."""
        width = self.viewport.state.container_width
        if 0 < width < self.auto_hide_timestamps_width:
            return replace(self.options, timestamp_mode=TimestampMode.HIDDEN)
        return self.options

    def render_markup(self, record: LogRecord) -> str:
        markup = self._markup_cache.get(record.id)
        if markup is None:
            markup = self.formatter.format_record(record, self.effective_options, self.engine.search, self._launch_ms)
            self._markup_cache[record.id] = markup
        return markup

    def request_frame(self, force: bool = False) -> None:
        self._scheduler.schedule(force)

    def run_pending_frame(self) -> None:
        """Render a scheduled frame immediately."""
        self._scheduler.run_now()

    def close(self) -> None:
        """Stop rendering and flush the store's pending snapshot."""
        self._scheduler.cancel()
        self.store.close()

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    def _handle_ready(self, message: ConsoleMessage) -> None:
        self._ready = True
        logger.debug("Console view ready")
        self._send_display_options()
        self._send_filter_state()
        self.request_frame(force=True)

    def _handle_toggle_level(self, message: ConsoleMessage) -> None:
        level = LogLevel.parse(message.get("level", ""))
        if level is None:
            logger.warning(f"Ignoring toggle for unknown level: {message.get('level')!r}")
            return
        self._apply_filter_state(self.engine.state.with_level_toggled(level))

    def _handle_set_search(self, message: ConsoleMessage) -> None:
        self._apply_filter_state(self.engine.state.with_search(message.get("query", "")))

    def _handle_toggle_regex(self, message: ConsoleMessage) -> None:
        enabled = message.get("enabled")
        if enabled is None:
            enabled = not self.engine.state.use_regex
        self._apply_filter_state(self.engine.state.with_regex(bool(enabled)))

    def _handle_toggle_combine_mode(self, message: ConsoleMessage) -> None:
        state = self.engine.state
        toggled = state.with_combine_mode_toggled()
        if toggled is state:
            # No query: AND/OR has no meaning
            return
        self._apply_filter_state(toggled)

    def _handle_clear(self, message: ConsoleMessage) -> None:
        self.store.clear()

    def _handle_load(self, message: ConsoleMessage) -> None:
        try:
            if message.get("path") is not None:
                result = load_snapshot_file(message.get("path"))
            else:
                result = validate_entries(message.get("entries"))
        except SnapshotError as e:
            logger.warning(f"Load failed: {e}")
            self._send_update(ViewUpdate.LOAD_FAILED, error=str(e))
            return
        self._load_result(result)

    def _handle_resize(self, message: ConsoleMessage) -> None:
        previous_mode = self.effective_options.timestamp_mode
        width_changed = self.viewport.resize(int(message.get("width", 0)), int(message.get("height", 0)))
        if width_changed or previous_mode != self.effective_options.timestamp_mode:
            self._invalidate_layout()
        self.request_frame(force=True)

    def _handle_scroll(self, message: ConsoleMessage) -> None:
        self.viewport.scroll_to(int(message.get("offset", 0)))
        self.request_frame()

    def _handle_toggle_timestamps(self, message: ConsoleMessage) -> None:
        self._apply_options(replace(self.options, timestamp_mode=self.options.timestamp_mode.next()))

    def _handle_toggle_compact(self, message: ConsoleMessage) -> None:
        self._apply_options(replace(self.options, compact=not self.options.compact))

    def _handle_toggle_tags(self, message: ConsoleMessage) -> None:
        self._apply_options(replace(self.options, highlight_tags=not self.options.highlight_tags))

    def _handle_copy_all(self, message: ConsoleMessage) -> None:
        self._copy(self.engine.filtered)

    def _handle_copy_range(self, message: ConsoleMessage) -> None:
        filtered = self.engine.filtered
        start = max(0, int(message.get("start", 0)))
        end = min(len(filtered) - 1, int(message.get("end", start)))
        if start > end:
            return
        self._copy(filtered[start:end + 1])

    def _handle_show_unfiltered(self, message: ConsoleMessage) -> None:
        record_id = message.get("record_id")
        state = replace(self.engine.state, active_levels=ALL_LEVELS, search_query="")
        self._apply_filter_state(state)
        if record_id and self.viewport.scroll_to_record(record_id, center=True):
            self._send_update(ViewUpdate.SCROLL_TO, offset=self.viewport.state.scroll_offset)
        self.request_frame(force=True)

    # ------------------------------------------------------------------
    # Store signal handlers
    # ------------------------------------------------------------------

    def _on_records_evicted(self, evicted: List[LogRecord]) -> None:
        ids = [record.id for record in evicted]
        for record_id in ids:
            self._markup_cache.pop(record_id, None)
        removed_front = self.engine.evict(evicted)
        self.viewport.evict(ids, removed_front)

    def _on_records_appended(self, records: List[LogRecord], patched: int) -> None:
        source = self.store.view()
        if self._launch_ms is None and source:
            self._launch_ms = source[0].timestamp
        if patched:
            # Back-patched group starts changed level: re-render and re-measure them
            stale = [record.id for record in source[-(patched + len(records)):-len(records)]]
            for record_id in stale:
                self._markup_cache.pop(record_id, None)
            self.viewport.forget(stale)

        delta = self.engine.append(source, rewind=patched)
        if not delta.is_empty:
            self.viewport.append_records(delta.added, removed_tail=delta.removed_tail)
            self.request_frame()

    def _on_store_reset(self) -> None:
        source = self.store.view()
        self._launch_ms = source[0].timestamp if source else None
        self._markup_cache.clear()
        self.viewport.clear()
        self.viewport.set_records(self.engine.full_recompute(source))
        if self._ready:
            self._send_filter_state()
            self.request_frame(force=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _measure(self, record: LogRecord, width: int) -> int:
        return self._measure_markup(self.render_markup(record), width)

    def _apply_filter_state(self, state: FilterState) -> None:
        self._markup_cache.clear()
        self.viewport.set_records(self.engine.set_state(state, self.store.view()))
        logger.debug(f"Filter applied: {len(self.engine.filtered)}/{len(self.store)} records")
        self._send_filter_state()
        self.request_frame(force=True)

    def _apply_options(self, options: DisplayOptions) -> None:
        self.options = options
        self._invalidate_layout()
        self._send_display_options()
        self.request_frame(force=True)

    def _invalidate_layout(self) -> None:
        self._markup_cache.clear()
        self.viewport.invalidate_heights()

    def _load_result(self, result: LoadResult) -> None:
        if result.skipped:
            logger.warning(f"Skipped {result.skipped} invalid entries while loading")
        self.store.load(result.records)

    def _copy(self, records: List[LogRecord]) -> None:
        text = format_records_for_copy(records, self.options.timestamp_mode, self._launch_ms)
        self._send_update(ViewUpdate.CLIPBOARD, text=text)

    def _render_frame(self, force: bool) -> None:
        if not self._ready:
            return
        frame: Optional[RenderFrame] = self.viewport.render(force=force, has_selection=self._has_selection())
        if frame is None:
            return
        self._send_update(
            ViewUpdate.FRAME,
            frame=frame,
            markup=[self.render_markup(record) for record in frame.records],
            total=len(self.store),
            filtered=len(self.engine.filtered),
        )

    def _send_filter_state(self) -> None:
        state = self.engine.state
        self._send_update(
            ViewUpdate.FILTER_STATE,
            levels=sorted(level.value for level in state.active_levels),
            search=state.search_query,
            regex=state.use_regex,
            regex_error=self.engine.search.regex_error,
            combine_mode=state.combine_mode.value,
            combine_enabled=state.has_query,
            total=len(self.store),
            filtered=len(self.engine.filtered),
        )

    def _send_display_options(self) -> None:
        self._send_update(
            ViewUpdate.DISPLAY_OPTIONS,
            timestamp_mode=self.options.timestamp_mode.value,
            compact=self.options.compact,
            highlight_tags=self.options.highlight_tags,
        )

    def _send_update(self, kind: ViewUpdate, **payload) -> None:
        self._send(ConsoleUpdate(kind, payload))
