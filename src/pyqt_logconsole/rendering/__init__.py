"""Record formatting for display and clipboard."""

from .message_formatter import (
    DisplayOptions,
    MessageFormatter,
    SourceLink,
    TimestampMode,
    compact_message,
    format_record_for_copy,
    format_records_for_copy,
    format_relative_timestamp,
    format_timestamp,
)

__all__ = [
    "DisplayOptions",
    "MessageFormatter",
    "SourceLink",
    "TimestampMode",
    "compact_message",
    "format_record_for_copy",
    "format_records_for_copy",
    "format_relative_timestamp",
    "format_timestamp",
]
