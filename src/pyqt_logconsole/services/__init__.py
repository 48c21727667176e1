"""Services: store, filtering, querying, session tracking and the view controller."""

from .filter_engine import CombineMode, FilterDelta, FilterEngine, FilterState, SearchMatcher, filter_records
from .log_store import LogStore
from .query_service import QueryRequest, QueryResult, load_query_records, run_query
from .session_tracker import OutputEvent, SessionTracker
from .console_protocol import ConsoleMessage, ConsoleUpdate, ViewCommand, ViewUpdate
from .console_controller import ConsoleController

__all__ = [
    "CombineMode",
    "FilterDelta",
    "FilterEngine",
    "FilterState",
    "SearchMatcher",
    "filter_records",
    "LogStore",
    "QueryRequest",
    "QueryResult",
    "load_query_records",
    "run_query",
    "OutputEvent",
    "SessionTracker",
    "ConsoleMessage",
    "ConsoleUpdate",
    "ViewCommand",
    "ViewUpdate",
    "ConsoleController",
]
