"""
Programmatic log retrieval over a static snapshot.

Applies exactly the interactive filter predicate (see filter_engine) to a
snapshot, then orders by timestamp and truncates. Used by the query CLI and
by any tool that wants the same answer the viewer would show.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pyqt_logconsole.io.exceptions import SnapshotError
from pyqt_logconsole.io.snapshot import is_valid_entry, read_snapshot
from pyqt_logconsole.models import ALL_LEVELS, LogLevel, LogRecord
from pyqt_logconsole.services.filter_engine import CombineMode, FilterState, filter_records

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


@dataclass
class QueryRequest:
    """
    Retrieval query.

    Attributes:
        levels: Levels to include; None or empty means every level
        search: Text (or regex) to look for in messages
        regex: Treat search as a case-insensitive regular expression
        logic: How levels and search combine when search is given
        tail: Most recent first when True, oldest first otherwise
        limit: Maximum records returned, applied after sorting
    """
    levels: Optional[List[LogLevel]] = None
    search: Optional[str] = None
    regex: bool = False
    logic: CombineMode = CombineMode.AND
    tail: bool = True
    limit: int = DEFAULT_LIMIT

    def to_filter_state(self) -> FilterState:
        levels = frozenset(self.levels) if self.levels else ALL_LEVELS
        return FilterState(
            active_levels=levels,
            search_query=self.search or "",
            use_regex=bool(self.regex),
            combine_mode=self.logic,
        )

    @classmethod
    def from_mapping(cls, args: Optional[Mapping[str, Any]]) -> "QueryRequest":
        """Parse the wire form: {levels?, search?, regex?, logic?, tail?, limit?}."""
        args = args or {}
        levels = None
        if args.get("levels"):
            levels = [level for level in map(LogLevel.parse, args["levels"]) if level is not None]
        logic = CombineMode.OR if str(args.get("logic") or "AND").upper() == "OR" else CombineMode.AND
        limit = args.get("limit") or DEFAULT_LIMIT
        return cls(
            levels=levels,
            search=args.get("search") or None,
            regex=bool(args.get("regex", False)),
            logic=logic,
            tail=bool(args["tail"]) if args.get("tail") is not None else True,
            limit=int(limit),
        )


@dataclass
class QueryResult:
    """Unfiltered total, filtered count and the truncated records."""
    total: int
    filtered: int
    records: List[LogRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "filtered": self.filtered,
            "logs": [record.to_dict() for record in self.records],
        }


def run_query(records: Sequence[LogRecord], request: QueryRequest) -> QueryResult:
    """Filter, order and truncate a record snapshot."""
    matched = filter_records(records, request.to_filter_state())
    ordered = sorted(matched, key=lambda record: record.timestamp, reverse=request.tail)
    limit = request.limit if request.limit > 0 else DEFAULT_LIMIT
    return QueryResult(total=len(records), filtered=len(matched), records=ordered[:limit])


def load_query_records(path: Union[str, Path]) -> List[LogRecord]:
    """Read snapshot records for querying; unreadable or invalid data reads as empty."""
    try:
        entries = read_snapshot(path)
    except SnapshotError as e:
        logger.error(f"Error reading logs: {e}")
        return []
    return [LogRecord.from_dict(entry) for entry in entries if is_valid_entry(entry)]
