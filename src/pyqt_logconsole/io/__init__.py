"""Snapshot persistence for log records."""

from .exceptions import SnapshotError, SnapshotFormatError, EmptySnapshotError
from .snapshot import (
    LoadResult,
    read_snapshot,
    write_snapshot,
    load_snapshot_file,
    validate_entries,
    is_valid_entry,
)

__all__ = [
    "SnapshotError",
    "SnapshotFormatError",
    "EmptySnapshotError",
    "LoadResult",
    "read_snapshot",
    "write_snapshot",
    "load_snapshot_file",
    "validate_entries",
    "is_valid_entry",
]
