"""Trailing debounce timer with an explicit pending state."""

from typing import Callable
from PyQt6.QtCore import QTimer


class DebounceTimer:
    """
    Trailing debounce timer.

    Each trigger restarts the countdown; the handler fires once after
    delay_ms without further triggers. flush() runs a pending handler
    immediately, which is what teardown paths need so trailing work is
    never dropped.

    Usage:
        self._write_debounce = DebounceTimer(delay_ms=500, handler=self._write_snapshot)

        def append(self, record):
            ...
            self._write_debounce.trigger(restart=False)

        def close(self):
            self._write_debounce.flush()
    """

    def __init__(self, delay_ms: int, handler: Callable[[], None]):
        self._handler = handler
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self._fire)

    @property
    def delay_ms(self) -> int:
        return self._timer.interval()

    def is_pending(self) -> bool:
        """True while a trigger is waiting to fire."""
        return self._timer.isActive()

    def trigger(self, restart: bool = True) -> None:
        """
        Start (or restart) the countdown.

        With restart=False an already-running countdown is left alone, so a
        continuous stream of triggers still fires once per delay window.
        """
        if not restart and self._timer.isActive():
            return
        self._timer.start()

    def cancel(self) -> None:
        """Drop a pending trigger without running the handler."""
        self._timer.stop()

    def flush(self) -> bool:
        """Run the handler now if a trigger is pending. Returns whether it ran."""
        if not self._timer.isActive():
            return False
        self._timer.stop()
        self._handler()
        return True

    def force(self) -> None:
        """Cancel any pending trigger and run the handler unconditionally."""
        self._timer.stop()
        self._handler()

    def _fire(self) -> None:
        self._handler()
