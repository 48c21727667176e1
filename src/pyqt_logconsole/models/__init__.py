"""Record model shared by every layer of the console."""

from .log_record import LogRecord, LogLevel, GroupMarker, ALL_LEVELS

__all__ = [
    "LogRecord",
    "LogLevel",
    "GroupMarker",
    "ALL_LEVELS",
]
