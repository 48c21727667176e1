"""
Level/search filter engine.

One predicate, two recomputation paths:

- full recompute: evaluate every record in the store (filter change, clear,
  first population);
- incremental append: evaluate only the suffix that arrived since the last
  known store length and concatenate matches onto the filtered sequence.

Both paths produce the same sequence for the same inputs. The engine also
follows store eviction so its notion of "last known length" stays aligned
with a bounded store.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence

from pyqt_logconsole.models import ALL_LEVELS, LogLevel, LogRecord

logger = logging.getLogger(__name__)


class CombineMode(str, Enum):
    """How level and search matches combine when a query is present."""
    AND = "AND"
    OR = "OR"


DEFAULT_LEVELS: FrozenSet[LogLevel] = frozenset({LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR})


@dataclass(frozen=True)
class FilterState:
    """
    User-controlled filter settings.

    Immutable: user actions produce a new state, the streaming path never
    touches it.
    """
    active_levels: FrozenSet[LogLevel] = DEFAULT_LEVELS
    search_query: str = ""
    use_regex: bool = False
    combine_mode: CombineMode = CombineMode.AND

    @property
    def has_query(self) -> bool:
        return bool(self.search_query.strip())

    @property
    def is_unfiltered(self) -> bool:
        return not self.has_query and self.active_levels == ALL_LEVELS

    def with_level_toggled(self, level: LogLevel) -> "FilterState":
        return replace(self, active_levels=self.active_levels ^ {level})

    def with_search(self, query: str) -> "FilterState":
        return replace(self, search_query=query or "")

    def with_regex(self, use_regex: bool) -> "FilterState":
        return replace(self, use_regex=use_regex)

    def with_combine_mode_toggled(self) -> "FilterState":
        """Flip AND/OR. Inert (returns self) while there is no query."""
        if not self.has_query:
            return self
        mode = CombineMode.OR if self.combine_mode is CombineMode.AND else CombineMode.AND
        return replace(self, combine_mode=mode)

    @classmethod
    def from_level_names(cls, names: Iterable[str], **kwargs) -> "FilterState":
        levels = frozenset(level for level in map(LogLevel.parse, names) if level is not None)
        return cls(active_levels=levels, **kwargs)


class SearchMatcher:
    """
    Compiled search query.

    Case-insensitive substring containment, or a case-insensitive regex when
    requested. A query that does not compile as a regex silently falls back
    to substring matching.
    """

    def __init__(self, query: str = "", use_regex: bool = False):
        self.query = query or ""
        self.active = bool(self.query.strip())
        self._needle = self.query.lower()
        self._regex: Optional[re.Pattern] = None
        self.regex_error: Optional[str] = None
        if self.active and use_regex:
            try:
                self._regex = re.compile(self.query, re.IGNORECASE)
            except re.error as e:
                self.regex_error = str(e)
                logger.debug(f"Invalid search regex {self.query!r}, using substring match: {e}")

    @property
    def is_regex(self) -> bool:
        return self._regex is not None

    @property
    def pattern(self) -> Optional[re.Pattern]:
        return self._regex

    def __call__(self, message: str) -> bool:
        if not self.active:
            return True
        if self._regex is not None:
            return self._regex.search(message) is not None
        return self._needle in message.lower()


def compile_search(state: FilterState) -> SearchMatcher:
    return SearchMatcher(state.search_query, state.use_regex)


def record_matches(record: LogRecord, state: FilterState, search: SearchMatcher) -> bool:
    """The single inclusion predicate shared by the viewer and the query tool."""
    level_match = record.level in state.active_levels
    if not search.active:
        # No query: combine mode is inert
        return level_match
    if state.combine_mode is CombineMode.AND:
        return level_match and search(record.message)
    return level_match or search(record.message)


def filter_records(records: Iterable[LogRecord], state: FilterState) -> List[LogRecord]:
    search = compile_search(state)
    return [record for record in records if record_matches(record, state, search)]


@dataclass
class FilterDelta:
    """Change to the filtered sequence produced by one incremental step."""
    removed_tail: int = 0
    added: List[LogRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.removed_tail == 0 and not self.added


class FilterEngine:
    """Maintains the filtered view of a store's record sequence."""

    def __init__(self, state: Optional[FilterState] = None):
        self._state = state or FilterState()
        self._search = compile_search(self._state)
        self._filtered: List[LogRecord] = []
        self._source_length = 0
        self._computed = False

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def search(self) -> SearchMatcher:
        return self._search

    @property
    def filtered(self) -> List[LogRecord]:
        """The current filtered sequence. Callers must not mutate it."""
        return self._filtered

    @property
    def source_length(self) -> int:
        """Store length the filtered sequence was last computed against."""
        return self._source_length

    @property
    def is_computed(self) -> bool:
        return self._computed

    def matches(self, record: LogRecord) -> bool:
        return record_matches(record, self._state, self._search)

    def set_state(self, state: FilterState, records: Sequence[LogRecord]) -> List[LogRecord]:
        """Replace the filter state and recompute over the whole store."""
        self._state = state
        self._search = compile_search(state)
        return self.full_recompute(records)

    def full_recompute(self, records: Sequence[LogRecord]) -> List[LogRecord]:
        """Re-evaluate the predicate over every record."""
        self._filtered = [record for record in records if self.matches(record)]
        self._source_length = len(records)
        self._computed = True
        return self._filtered

    def append(self, records: Sequence[LogRecord], rewind: int = 0) -> FilterDelta:
        """
        Evaluate only the records appended since the last computation.

        Args:
            records: The full current store sequence
            rewind: Number of already-evaluated records at the end of the known
                prefix whose level changed (group boundaries back-patched by
                the newest record); they are re-evaluated with the suffix.

        Returns:
            FilterDelta describing how the filtered sequence changed.
        """
        if not self._computed or len(records) < self._source_length:
            previous = len(self._filtered)
            self.full_recompute(records)
            return FilterDelta(removed_tail=previous, added=list(self._filtered))

        start = self._source_length - min(max(rewind, 0), self._source_length)
        removed = 0
        if start < self._source_length:
            stale_ids = {record.id for record in records[start:self._source_length]}
            while self._filtered and self._filtered[-1].id in stale_ids:
                self._filtered.pop()
                removed += 1

        added = [record for record in records[start:] if self.matches(record)]
        self._filtered.extend(added)
        self._source_length = len(records)
        return FilterDelta(removed_tail=removed, added=added)

    def evict(self, evicted: Iterable[LogRecord]) -> int:
        """
        Drop records the store evicted (always its oldest).

        Returns:
            Number of records removed from the front of the filtered sequence.
        """
        evicted = list(evicted)
        evicted_ids = {record.id for record in evicted}
        if not evicted:
            return 0
        removed = 0
        while removed < len(self._filtered) and self._filtered[removed].id in evicted_ids:
            removed += 1
        if removed:
            del self._filtered[:removed]
        self._source_length = max(0, self._source_length - len(evicted))
        return removed

    def reset(self) -> None:
        """Forget everything (store cleared)."""
        self._filtered = []
        self._source_length = 0
        self._computed = False
