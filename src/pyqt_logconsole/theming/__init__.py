"""Console color schemes."""

from .log_colors import LogColorScheme

__all__ = [
    "LogColorScheme",
]
