"""Base configuration for the debug console.

Provides hooks for applications to tune store bounds, persistence and
viewport geometry.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


@dataclass
class ConsoleConfig:
    """Configuration for console behavior.

    Applications can subclass this or construct one with overrides.

    Attributes:
        max_records: Store bound; oldest records are evicted past it
        write_debounce_ms: Quiet period before the snapshot is written
        logs_dir: Directory holding the snapshot file (relative to cwd)
        snapshot_filename: Snapshot file name inside logs_dir
        default_levels: Levels active when a console opens
        timestamp_mode: "absolute", "relative" or "hidden"
        auto_hide_timestamps_width: Hide timestamps below this viewport width
        buffer_size: Records materialized above and below the visible window
        default_item_height: Height assumed for unmeasured records
        follow_threshold: Distance from the bottom that still counts as tailing
        frame_interval_ms: Render coalescing interval
        font_family: Monospace family used to render and measure records
        font_point_size: Point size used to render and measure records
    """

    max_records: int = 10000
    write_debounce_ms: int = 500
    logs_dir: str = ".debug_console_plus"
    snapshot_filename: str = "logs.json"
    default_levels: Tuple[str, ...] = ("info", "warn", "error")
    timestamp_mode: str = "absolute"
    auto_hide_timestamps_width: int = 200
    buffer_size: int = 10
    default_item_height: int = 20
    follow_threshold: int = 50
    frame_interval_ms: int = 16
    font_family: str = "Consolas"
    font_point_size: int = 10

    def snapshot_path(self, base_dir: Optional[Path] = None) -> Path:
        """Resolve the snapshot file path against base_dir (default: cwd)."""
        base = base_dir if base_dir is not None else Path.cwd()
        return (base / self.logs_dir / self.snapshot_filename).resolve()


# Global config instance (set by application)
_console_config: Optional[ConsoleConfig] = None


def set_console_config(config: ConsoleConfig) -> None:
    """Set the process-wide console configuration."""
    global _console_config
    _console_config = config


def get_console_config() -> ConsoleConfig:
    """Get the current console configuration.

    Returns:
        Current ConsoleConfig or default if not set
    """
    if _console_config is None:
        return ConsoleConfig()
    return _console_config
