"""
Bounded, insertion-ordered store of log records.

The store is the single owner of the record sequence for the active session.
Appends run group level inheritance before anything downstream sees the
record, evict oldest-first past the configured bound, and schedule a
debounced snapshot write.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from pyqt_logconsole.core.debounce_timer import DebounceTimer
from pyqt_logconsole.io.snapshot import write_snapshot
from pyqt_logconsole.models import LogRecord
from pyqt_logconsole.parsing.group_resolver import GroupResolver
from pyqt_logconsole.protocols import get_console_config

logger = logging.getLogger(__name__)


class LogStore(QObject):
    """Ordered record sequence with FIFO eviction and debounced persistence."""

    # Signals
    records_evicted = pyqtSignal(list)        # Oldest records dropped (emitted before records_appended)
    records_appended = pyqtSignal(list, int)  # (new records, count of earlier records whose level was patched)
    store_reset = pyqtSignal()                # Sequence replaced wholesale (session start, clear, load)

    def __init__(
        self,
        max_records: Optional[int] = None,
        snapshot_path: Optional[Path] = None,
        write_debounce_ms: Optional[int] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        config = get_console_config()
        self.max_records = max_records if max_records is not None else config.max_records
        self._records: List[LogRecord] = []
        self._group_resolver = GroupResolver()
        self._snapshot_path: Optional[Path] = None
        self._write_debounce = DebounceTimer(
            write_debounce_ms if write_debounce_ms is not None else config.write_debounce_ms,
            self._write_snapshot,
        )
        if snapshot_path is not None:
            self.set_snapshot_path(snapshot_path)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def snapshot_path(self) -> Optional[Path]:
        return self._snapshot_path

    def set_snapshot_path(self, path: Path) -> None:
        """Set the persisted snapshot location; writes an empty snapshot if none exists."""
        self._snapshot_path = Path(path)
        if not self._snapshot_path.exists():
            self._write_snapshot()

    def records(self) -> List[LogRecord]:
        """Copy of the current sequence, oldest first."""
        return list(self._records)

    def view(self) -> List[LogRecord]:
        """The live sequence. Callers must not mutate it."""
        return self._records

    def append(self, record: LogRecord) -> None:
        """Append one classified record and notify listeners."""
        self._records.append(record)
        patched = self._group_resolver.resolve(self._records)

        evicted: List[LogRecord] = []
        overflow = len(self._records) - self.max_records
        if overflow > 0:
            evicted = self._records[:overflow]
            del self._records[:overflow]
            patched = min(patched, len(self._records) - 1)

        if evicted:
            self.records_evicted.emit(evicted)
        self.records_appended.emit([record], patched)
        self._schedule_write()

    def start_session(self, session_id: str) -> None:
        """Discard records from any previous session."""
        logger.info(f"Debug session started: {session_id}")
        self._records = []
        self.store_reset.emit()
        self._schedule_write()

    def clear(self) -> None:
        """Drop every record and persist the empty snapshot immediately."""
        self._records = []
        self.store_reset.emit()
        self._write_debounce.cancel()
        self._write_snapshot()

    def load(self, records: Iterable[LogRecord]) -> None:
        """Replace the sequence with externally supplied (validated) records."""
        self._records = list(records)
        overflow = len(self._records) - self.max_records
        if overflow > 0:
            del self._records[:overflow]
        logger.info(f"Loaded {len(self._records)} records into store")
        self.store_reset.emit()
        self._write_debounce.cancel()
        self._write_snapshot()

    def flush(self) -> bool:
        """Write a pending snapshot synchronously. Returns whether a write ran."""
        return self._write_debounce.flush()

    def close(self) -> None:
        """Final flush on teardown so no trailing records are lost."""
        if self.flush():
            logger.debug("Flushed pending snapshot on close")

    def _schedule_write(self) -> None:
        if self._snapshot_path is None:
            return
        self._write_debounce.trigger(restart=False)

    def _write_snapshot(self) -> None:
        if self._snapshot_path is None:
            return
        try:
            write_snapshot(self._snapshot_path, self._records)
        except (OSError, TypeError, ValueError) as e:
            # Next append schedules another write
            logger.error(f"Failed to write logs to {self._snapshot_path}: {e}")
