"""Background thread that feeds debug output lines from a text stream."""

import logging
from pathlib import Path
from typing import Optional, TextIO

from PyQt6.QtCore import QThread, pyqtSignal

logger = logging.getLogger(__name__)


class StreamReader(QThread):
    """
    Reads lines from a text stream (stdin, a pipe) or tails a growing file
    without blocking the UI.

    Lines are delivered through line_received on the receiver's thread, so
    classification and store appends stay single-threaded and ordered.
    """

    # Signals
    line_received = pyqtSignal(str, str)  # Emits (text, category)
    finished_reading = pyqtSignal()       # Emits when the stream hits EOF
    error_occurred = pyqtSignal(str)      # Emits error message

    def __init__(self, stream: Optional[TextIO] = None, path: Optional[Path] = None,
                 category: str = "stdout", follow: bool = False):
        super().__init__()
        if stream is None and path is None:
            raise ValueError("StreamReader needs a stream or a path")
        self._stream = stream
        self._path = path
        self._category = category
        self._follow = follow
        self._running = False

    def run(self):
        """Read until EOF (or until stopped, when following a file)."""
        self._running = True
        try:
            if self._stream is not None:
                self._read_stream(self._stream)
            else:
                with open(self._path, 'r', encoding='utf-8', errors='replace') as f:
                    self._read_stream(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Stream reader error: {e}")
            self.error_occurred.emit(str(e))
        self.finished_reading.emit()

    def _read_stream(self, stream: TextIO) -> None:
        while self._running:
            line = stream.readline()
            if not line:
                if not self._follow:
                    return
                # Tail mode: wait for the file to grow
                self.msleep(100)
                continue
            self.line_received.emit(line.rstrip('\r\n'), self._category)

    def stop(self):
        """Stop the reader loop (takes effect at the next line or poll)."""
        self._running = False
