"""
Core PyQt6 utilities.

Timers and background readers with no console-specific logic.
"""

from .debounce_timer import DebounceTimer
from .frame_scheduler import FrameScheduler
from .stream_reader import StreamReader

__all__ = [
    "DebounceTimer",
    "FrameScheduler",
    "StreamReader",
]
