"""Classification pipeline: raw output text to leveled records."""

from .classifier import (
    classify,
    clean_message,
    detect_level,
    LEVEL_MATCHERS,
    LineContext,
)
from .group_resolver import GroupResolver

__all__ = [
    "classify",
    "clean_message",
    "detect_level",
    "LEVEL_MATCHERS",
    "LineContext",
    "GroupResolver",
]
