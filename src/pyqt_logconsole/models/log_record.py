"""
Log record data model.

A LogRecord is one classified debug-output line. Records are created by the
classifier, back-patched (level only) by the group resolver, stored in
arrival order by the log store, and serialized to the snapshot file with
camelCase keys so the query tool and the viewer read the same document.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    """Severity levels a record can carry."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @classmethod
    def parse(cls, value: str) -> Optional["LogLevel"]:
        """Return the level for a wire value, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


ALL_LEVELS = frozenset(LogLevel)


class GroupMarker(str, Enum):
    """Protocol group boundary markers (e.g. box borders around an entry)."""
    START = "start"
    START_COLLAPSED = "startCollapsed"
    END = "end"

    @property
    def is_start(self) -> bool:
        return self is not GroupMarker.END

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["GroupMarker"]:
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(eq=True)
class LogRecord:
    """
    One classified log line.

    Attributes:
        id: Unique identity (session + arrival time + random suffix).
        timestamp: Arrival time in milliseconds since epoch.
        level: Detected severity. The only field mutated after creation.
        message: Cleaned text, leading indentation preserved.
        category: Producer channel (stdout, stderr, console, ...).
        session_id: Debug session that produced the line.
        group: Group boundary marker, if the producer tagged one.
    """
    id: str
    timestamp: int
    level: LogLevel
    message: str
    category: str
    session_id: str
    group: Optional[GroupMarker] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the snapshot's key names; omit absent group."""
        data: Dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "category": self.category,
            "sessionId": self.session_id,
        }
        if self.group is not None:
            data["group"] = self.group.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogRecord":
        """Build a record from snapshot data. Assumes the entry was validated."""
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            level=LogLevel(data["level"]),
            message=data["message"],
            category=data["category"],
            session_id=data["sessionId"],
            group=GroupMarker.parse(data.get("group")),
        )
