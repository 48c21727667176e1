"""
Variable-height virtual viewport.

Keeps only the records around the visible window materialized while
reporting the full scrollable extent. Heights are discovered lazily: a
record is measured the first time it enters the visible range, and the
measurement is cached by record id until the container width changes (text
reflow changes every height).

The viewport is pure bookkeeping; the host supplies a measure function and
renders the RenderFrame it returns. It never sees unfiltered data.

Position lookup:
    positions[i] is the cumulative top of filtered record i. The first
    visible record is found by binary search (first record whose bottom
    reaches the scroll offset); the end is found by a forward scan until a
    record starts below the viewport bottom. A fixed buffer is added on both
    sides, clamped to the sequence bounds.

Scroll anchoring:
    While the user is scrolled away from the tail, the first visible record
    is the anchor. Its position is captured before measuring and the scroll
    offset is shifted by its drift afterwards, so newly measured heights
    never move what is on screen. At the tail, the viewport follows instead.
"""

import bisect
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pyqt_logconsole.models import LogRecord
from pyqt_logconsole.protocols import get_console_config

logger = logging.getLogger(__name__)

MeasureFn = Callable[[LogRecord, int], int]

# Width changes smaller than this do not invalidate measured heights
WIDTH_CHANGE_TOLERANCE = 5

# Bound on measure/re-range passes per frame
_MAX_MEASURE_PASSES = 4


@dataclass
class ViewportState:
    """Geometry and caches owned by one VirtualViewport."""
    heights: Dict[str, int] = field(default_factory=dict)
    positions: List[int] = field(default_factory=list)
    total_extent: int = 0
    visible_start: int = 0
    visible_end: int = 0
    scroll_offset: int = 0
    auto_follow: bool = True
    container_width: int = 0
    container_height: int = 0


@dataclass
class RenderFrame:
    """What the host must materialize for one frame."""
    start: int
    end: int
    records: List[LogRecord]
    positions: List[int]
    heights: List[int]
    total_extent: int
    scroll_offset: int

    @property
    def top_offset(self) -> int:
        """Content-space top of the first materialized record."""
        return self.positions[0] if self.positions else 0

    @property
    def is_empty(self) -> bool:
        return not self.records


class VirtualViewport:
    """Visible-window bookkeeping over the filtered record sequence."""

    def __init__(
        self,
        measure: MeasureFn,
        buffer_size: Optional[int] = None,
        default_height: Optional[int] = None,
        follow_threshold: Optional[int] = None,
    ):
        config = get_console_config()
        self._measure = measure
        self.buffer_size = buffer_size if buffer_size is not None else config.buffer_size
        self.default_height = default_height if default_height is not None else config.default_item_height
        self.follow_threshold = follow_threshold if follow_threshold is not None else config.follow_threshold
        self.state = ViewportState()
        self._records: List[LogRecord] = []

    # ------------------------------------------------------------------
    # Sequence updates
    # ------------------------------------------------------------------

    @property
    def records(self) -> List[LogRecord]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def set_records(self, records: Sequence[LogRecord]) -> None:
        """Replace the filtered sequence (after a re-filter). Cached heights survive."""
        self._records = list(records)
        self._rebuild_positions()
        if self.state.auto_follow:
            self._follow_tail()
        else:
            self._clamp_scroll()

    def append_records(self, records: Iterable[LogRecord], removed_tail: int = 0) -> None:
        """Apply an incremental filter step: drop removed_tail records, append the rest."""
        records = list(records)
        if removed_tail:
            del self._records[len(self._records) - removed_tail:]
            del self.state.positions[len(self._records):]
            self._recount_total()
        if records:
            positions = self.state.positions
            cumulative = self.state.total_extent
            for record in records:
                positions.append(cumulative)
                cumulative += self.height_of(record)
            self._records.extend(records)
            self.state.total_extent = cumulative
        if self.state.auto_follow:
            self._follow_tail()

    def evict(self, evicted_ids: Iterable[str], removed_front: int = 0) -> None:
        """
        Forget records the store evicted.

        Drops their cached heights and, when removed_front filtered records
        went with them, shifts the scroll offset so on-screen content stays put.
        """
        self.forget(evicted_ids)
        if not removed_front:
            return
        self._ensure_positions()
        removed_front = min(removed_front, len(self._records))
        removed_extent = (self.state.positions[removed_front]
                          if removed_front < len(self._records) else self.state.total_extent)
        del self._records[:removed_front]
        self._rebuild_positions()
        if self.state.auto_follow:
            self._follow_tail()
        else:
            self.state.scroll_offset = max(0, self.state.scroll_offset - removed_extent)
            self._clamp_scroll()

    def forget(self, record_ids: Iterable[str]) -> None:
        """Drop cached heights so those records are measured again."""
        for record_id in record_ids:
            self.state.heights.pop(record_id, None)

    def clear(self) -> None:
        """Drop every record and height (store cleared or reloaded)."""
        self._records = []
        self.state.heights.clear()
        self.state.positions = []
        self.state.total_extent = 0
        self.state.visible_start = 0
        self.state.visible_end = 0
        self.state.scroll_offset = 0
        self.state.auto_follow = True

    def invalidate_heights(self) -> None:
        """Forget every measurement (width change, display option change)."""
        self.state.heights.clear()
        self._rebuild_positions()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def height_of(self, record: LogRecord) -> int:
        return self.state.heights.get(record.id, self.default_height)

    def resize(self, width: int, height: int) -> bool:
        """
        Update container size.

        Returns:
            True if the width change invalidated cached heights.
        """
        width_changed = abs(self.state.container_width - width) > WIDTH_CHANGE_TOLERANCE
        self.state.container_width = width
        self.state.container_height = max(0, height)
        if width_changed:
            self.invalidate_heights()
        if self.state.auto_follow:
            self._follow_tail()
        else:
            self._clamp_scroll()
        return width_changed

    @property
    def max_scroll(self) -> int:
        return max(0, self.state.total_extent - self.state.container_height)

    def is_near_bottom(self, offset: Optional[int] = None) -> bool:
        offset = self.state.scroll_offset if offset is None else offset
        return self.state.total_extent - offset <= self.state.container_height + self.follow_threshold

    def scroll_to(self, offset: int) -> None:
        """User scroll: clamp, then decide whether we are tailing."""
        self.state.scroll_offset = min(max(0, int(offset)), self.max_scroll)
        self.state.auto_follow = self.is_near_bottom()

    def scroll_to_record(self, record_id: str, center: bool = True) -> bool:
        """Scroll so the record sits mid-container (or at the top). Returns False if absent."""
        for index, record in enumerate(self._records):
            if record.id == record_id:
                self._ensure_positions()
                top = self.state.positions[index]
                if center:
                    top -= self.state.container_height // 2
                self.scroll_to(top)
                return True
        return False

    def scroll_to_bottom(self) -> None:
        self.state.auto_follow = True
        self._follow_tail()

    def first_visible_index(self, offset: int) -> int:
        """Index of the first record whose bottom reaches offset (no buffer)."""
        self._ensure_positions()
        positions = self.state.positions
        low, high = 0, len(self._records) - 1
        while low < high:
            mid = (low + high) // 2
            if positions[mid] + self.height_of(self._records[mid]) < offset:
                low = mid + 1
            else:
                high = mid
        return max(0, low)

    def anchor_index(self, offset: int) -> int:
        """Index of the first record with at least one pixel on screen."""
        index = self.first_visible_index(offset)
        if (index + 1 < len(self._records)
                and self.state.positions[index] + self.height_of(self._records[index]) <= offset):
            index += 1
        return index

    def visible_range(self, offset: Optional[int] = None) -> Tuple[int, int]:
        """Buffered [start, end) window for a scroll offset. Empty sequence gives (0, 0)."""
        if not self._records:
            return 0, 0
        offset = self.state.scroll_offset if offset is None else offset
        first = self.first_visible_index(offset)
        start = max(0, first - self.buffer_size)

        bottom = offset + self.state.container_height
        positions = self.state.positions
        index = start
        while index < len(self._records):
            if positions[index] > bottom:
                break
            index += 1
        end = min(len(self._records), index + self.buffer_size)
        return start, end

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def render(self, force: bool = False, has_selection: bool = False) -> Optional[RenderFrame]:
        """
        Compute the next frame.

        Returns None (skip) when the visible range is unchanged and the host
        has an active text selection, unless forced. Otherwise measures any
        newly visible records, keeps the anchor record pixel-stable (or
        follows the tail) and returns the frame to materialize.
        """
        state = self.state
        previous = (state.visible_start, state.visible_end)
        state.visible_start, state.visible_end = self.visible_range()

        if not force and has_selection and previous == (state.visible_start, state.visible_end):
            return None

        anchor_index = -1
        anchor_position = 0
        if not state.auto_follow and self._records:
            anchor_index = self.anchor_index(state.scroll_offset)
            anchor_position = state.positions[anchor_index]

        for _ in range(_MAX_MEASURE_PASSES):
            if not self._measure_range(state.visible_start, state.visible_end):
                break
            self._rebuild_positions()
            if state.auto_follow:
                self._follow_tail()
            elif anchor_index >= 0:
                drift = state.positions[anchor_index] - anchor_position
                anchor_position = state.positions[anchor_index]
                state.scroll_offset = min(max(0, state.scroll_offset + drift), self.max_scroll)
            state.visible_start, state.visible_end = self.visible_range()

        return self._frame()

    def _frame(self) -> RenderFrame:
        state = self.state
        records = self._records[state.visible_start:state.visible_end]
        return RenderFrame(
            start=state.visible_start,
            end=state.visible_end,
            records=records,
            positions=state.positions[state.visible_start:state.visible_end],
            heights=[self.height_of(record) for record in records],
            total_extent=state.total_extent,
            scroll_offset=state.scroll_offset,
        )

    def _measure_range(self, start: int, end: int) -> bool:
        """Measure unmeasured records in [start, end). Returns whether any height changed."""
        changed = False
        heights = self.state.heights
        width = self.state.container_width
        for record in self._records[start:end]:
            if record.id in heights:
                continue
            height = max(self.default_height, int(self._measure(record, width)))
            heights[record.id] = height
            if height != self.default_height:
                changed = True
        return changed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rebuild_positions(self) -> None:
        positions = []
        cumulative = 0
        for record in self._records:
            positions.append(cumulative)
            cumulative += self.height_of(record)
        self.state.positions = positions
        self.state.total_extent = cumulative

    def _ensure_positions(self) -> None:
        if len(self.state.positions) != len(self._records):
            self._rebuild_positions()

    def _recount_total(self) -> None:
        if self._records:
            self.state.total_extent = self.state.positions[-1] + self.height_of(self._records[-1])
        else:
            self.state.total_extent = 0

    def _follow_tail(self) -> None:
        self.state.scroll_offset = self.max_scroll

    def _clamp_scroll(self) -> None:
        self.state.scroll_offset = min(max(0, self.state.scroll_offset), self.max_scroll)

    def record_at(self, offset: int) -> Optional[int]:
        """Index of the record covering a content-space y offset, if any."""
        if not self._records or offset < 0 or offset >= self.state.total_extent:
            return None
        self._ensure_positions()
        return bisect.bisect_right(self.state.positions, offset) - 1
