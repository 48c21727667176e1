"""
Debug session tracking.

Receives the output events of the debug-adapter protocol layer and feeds the
classification pipeline. Only three fields of an output event matter here
(text, category, group); session identity and arrival time are supplied by
the tracker itself.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from pyqt_logconsole.models import GroupMarker
from pyqt_logconsole.parsing.classifier import classify
from pyqt_logconsole.services.log_store import LogStore

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OutputEvent:
    """The parts of a protocol output event the pipeline consumes."""
    text: str
    category: str = "console"
    group: Optional[GroupMarker] = None

    @classmethod
    def from_protocol(cls, message: Mapping[str, Any]) -> Optional["OutputEvent"]:
        """Extract an output event from a raw protocol message, or None if it is not one."""
        if message.get("type") != "event" or message.get("event") != "output":
            return None
        body = message.get("body") or {}
        output = body.get("output")
        if not output:
            return None
        return cls(
            text=output,
            category=body.get("category") or "console",
            group=GroupMarker.parse(body.get("group")),
        )


class SessionTracker:
    """Turns protocol output events into records in the log store."""

    def __init__(self, store: LogStore, clock: Callable[[], int] = _now_ms):
        self.store = store
        self._clock = clock
        self._current_session_id: Optional[str] = None

    @property
    def current_session_id(self) -> Optional[str]:
        return self._current_session_id

    def start_session(self, session_id: str) -> None:
        """A new session starts: records from the previous one are discarded."""
        self._current_session_id = session_id
        self.store.start_session(session_id)

    def end_session(self, session_id: str) -> None:
        if session_id != self._current_session_id:
            return
        logger.info(f"Debug session ended: {session_id}")
        self._current_session_id = None

    def handle_output(self, event: OutputEvent, session_id: Optional[str] = None) -> bool:
        """
        Classify and store one output event.

        Returns:
            True if a record was stored; False for blank text or text that
            cleans to nothing.
        """
        if not event.text or not event.text.strip():
            return False

        session = session_id or self._current_session_id or "detached"
        record = classify(event.text, event.category, session, self._clock(), event.group)
        if record is None:
            return False
        self.store.append(record)
        return True

    def handle_protocol_message(self, message: Mapping[str, Any], session_id: Optional[str] = None) -> bool:
        """Entry point for raw adapter messages; ignores everything but output events."""
        event = OutputEvent.from_protocol(message)
        if event is None:
            return False
        return self.handle_output(event, session_id)

    def handle_line(self, text: str, category: str = "stdout") -> bool:
        """Slot-friendly adapter for line sources (StreamReader.line_received)."""
        return self.handle_output(OutputEvent(text=text, category=category))
