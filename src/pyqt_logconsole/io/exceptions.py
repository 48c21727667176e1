"""Snapshot IO exceptions."""


class SnapshotError(Exception):
    """Raised when a log snapshot cannot be read or loaded."""


class SnapshotFormatError(SnapshotError):
    """Raised when a snapshot document is not an array of log entries."""


class EmptySnapshotError(SnapshotError):
    """Raised when a snapshot holds no valid log entries."""

    def __init__(self, skipped: int):
        super().__init__(f"No valid log entries found ({skipped} skipped)")
        self.skipped = skipped
