"""
Log snapshot persistence.

The snapshot is a JSON array of record objects (camelCase keys, two-space
indent). It is written by the log store on a debounced schedule and read back
by the viewer (bulk load) and by the query tool.
"""

import json
import logging
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path
from typing import Any, Iterable, List, Union

from pyqt_logconsole.io.exceptions import EmptySnapshotError, SnapshotError, SnapshotFormatError
from pyqt_logconsole.models import GroupMarker, LogLevel, LogRecord

logger = logging.getLogger(__name__)

_REQUIRED_STRING_FIELDS = ("id", "level", "message", "category", "sessionId")


@dataclass
class LoadResult:
    """Outcome of validating an externally supplied record array."""
    records: List[LogRecord] = field(default_factory=list)
    skipped: int = 0


def is_valid_entry(entry: Any) -> bool:
    """Check one snapshot entry has the required string/number fields."""
    if not isinstance(entry, dict):
        return False
    for key in _REQUIRED_STRING_FIELDS:
        if not isinstance(entry.get(key), str):
            return False
    timestamp = entry.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, Real):
        return False
    if LogLevel.parse(entry["level"]) is None:
        return False
    group = entry.get("group")
    if group is not None and GroupMarker.parse(group) is None:
        return False
    return True


def validate_entries(data: Any) -> LoadResult:
    """
    Validate a decoded snapshot payload entry by entry.

    Raises:
        SnapshotFormatError: If the payload is not a list
        EmptySnapshotError: If no entry is valid
    """
    if not isinstance(data, list):
        raise SnapshotFormatError("Invalid log file format: expected an array of log entries")

    result = LoadResult()
    for index, entry in enumerate(data):
        if is_valid_entry(entry):
            result.records.append(LogRecord.from_dict(entry))
        else:
            result.skipped += 1
            logger.warning(f"Skipping invalid log entry at index {index}")

    if not result.records:
        raise EmptySnapshotError(result.skipped)
    return result


def write_snapshot(path: Union[str, Path], records: Iterable[LogRecord]) -> None:
    """Write records as an indented JSON array, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [record.to_dict() for record in records]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def read_snapshot(path: Union[str, Path]) -> List[dict]:
    """
    Read the raw snapshot array. A missing file reads as empty.

    Raises:
        SnapshotError: If the file exists but cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SnapshotError(f"Failed to read snapshot {path}: {e}") from e
    return data if isinstance(data, list) else []


def load_snapshot_file(path: Union[str, Path]) -> LoadResult:
    """Read and validate a snapshot chosen by the user for bulk load."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise SnapshotFormatError(f"Failed to parse JSON file: {e}") from e
    except OSError as e:
        raise SnapshotError(f"Failed to load logs: {e}") from e
    result = validate_entries(data)
    logger.info(f"Loaded {len(result.records)} log entries from {path.name} ({result.skipped} skipped)")
    return result
