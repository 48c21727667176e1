"""pytest configuration and fixtures for pyqt-logconsole tests."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication

from pyqt_logconsole.models import GroupMarker, LogLevel, LogRecord


@pytest.fixture(scope="session")
def qapp():
    """Create QApplication instance for tests."""
    app = QApplication.instance() or QApplication([])
    yield app
    # Don't quit - may cause issues with other tests


@pytest.fixture
def make_record():
    """Factory for records with sequential ids and timestamps."""
    counter = {"n": 0}

    def _make(message="message", level=LogLevel.INFO, group=None, timestamp=None, session_id="s1"):
        counter["n"] += 1
        n = counter["n"]
        return LogRecord(
            id=f"{session_id}-{n}",
            timestamp=timestamp if timestamp is not None else 1_700_000_000_000 + n,
            level=LogLevel(level),
            message=message,
            category="stdout",
            session_id=session_id,
            group=GroupMarker(group) if group is not None else None,
        )

    return _make
