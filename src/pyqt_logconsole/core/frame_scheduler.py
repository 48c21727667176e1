"""Per-frame render coalescing."""

import logging
from typing import Callable

from PyQt6.QtCore import QTimer

logger = logging.getLogger(__name__)


class FrameScheduler:
    """
    Coalesces render requests into at most one callback per frame.

    Any number of schedule() calls made before the frame fires collapse into
    a single callback. A forced request stays forced even if later requests
    in the same frame are not.
    """

    def __init__(self, callback: Callable[[bool], None], interval_ms: int = 16):
        self._callback = callback
        self._forced = False
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)  # ~60fps
        self._timer.timeout.connect(self._run_frame)

    def schedule(self, force: bool = False) -> None:
        """Request a frame. Does nothing extra if one is already pending."""
        self._forced = self._forced or force
        if not self._timer.isActive():
            self._timer.start()

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def run_now(self) -> None:
        """Run a pending frame synchronously (used by tests and teardown)."""
        if self._timer.isActive():
            self._timer.stop()
            self._run_frame()

    def cancel(self) -> None:
        self._timer.stop()
        self._forced = False

    def _run_frame(self) -> None:
        force = self._forced
        self._forced = False
        self._callback(force)
