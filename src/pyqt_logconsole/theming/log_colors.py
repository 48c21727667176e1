"""Semantic colors for rendered log records."""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Tuple

from PyQt6.QtGui import QColor
from wcag_contrast_ratio.contrast import rgb as wcag_rgb

from pyqt_logconsole.models import LogLevel

RGB = Tuple[int, int, int]

WCAG_AA_RATIO = 4.5


def contrast_ratio(foreground: RGB, background: RGB) -> float:
    return wcag_rgb(tuple(c / 255.0 for c in foreground), tuple(c / 255.0 for c in background))


@lru_cache(maxsize=256)
def ensure_contrast(color: RGB, background: RGB, min_ratio: float = WCAG_AA_RATIO) -> RGB:
    """Blend color toward white (dark background) or black (light background) until readable."""
    if contrast_ratio(color, background) >= min_ratio:
        return color
    target = 255 if contrast_ratio((255, 255, 255), background) >= contrast_ratio((0, 0, 0), background) else 0
    for step in range(1, 11):
        t = step / 10
        adjusted = tuple(int(round(c + (target - c) * t)) for c in color)
        if contrast_ratio(adjusted, background) >= min_ratio:
            return adjusted
    return (target, target, target)


@dataclass
class LogColorScheme:
    """
    Centralized color scheme for the console with semantic color names.

    Supports light/dark theme variants. Level colors keep at least a 4.5:1
    contrast ratio against the matching background.
    """

    # Log level colors
    log_error_color: RGB = (255, 85, 85)       # Bright red
    log_warning_color: RGB = (255, 140, 0)     # Dark orange
    log_info_color: RGB = (100, 160, 210)      # Steel blue
    log_debug_color: RGB = (160, 160, 160)     # Light gray

    # Metadata
    timestamp_color: RGB = (105, 105, 105)     # Dim gray
    tag_color: RGB = (147, 112, 219)           # Medium slate blue
    background_color: RGB = (30, 30, 30)

    # JSON payloads
    json_key_color: RGB = (156, 220, 254)      # Light blue
    json_string_color: RGB = (206, 145, 120)   # Orange
    json_number_color: RGB = (181, 206, 168)   # Light green
    json_punctuation_color: RGB = (212, 212, 212)
    json_bracket_colors: Tuple[RGB, ...] = field(default_factory=lambda: (
        (255, 215, 0),    # Gold
        (218, 112, 214),  # Orchid
        (23, 159, 255),   # Azure
        (255, 140, 0),    # Dark orange
        (78, 201, 176),   # Teal
        (255, 105, 180),  # Hot pink
    ))

    # Links and search
    file_link_color: RGB = (34, 139, 34)          # Forest green
    external_link_color: RGB = (128, 128, 128)
    url_color: RGB = (86, 156, 214)
    search_highlight_bg: RGB = (98, 88, 20)

    @classmethod
    def create_dark_theme(cls) -> 'LogColorScheme':
        """Dark theme variant with brighter colors for contrast."""
        return cls(
            log_error_color=(255, 100, 100),
            log_info_color=(120, 180, 230),
            timestamp_color=(160, 160, 160),
            json_string_color=(236, 175, 150),
            json_number_color=(200, 230, 190),
        )

    @classmethod
    def create_light_theme(cls) -> 'LogColorScheme':
        """Light theme variant with darker colors for light backgrounds."""
        return cls(
            log_error_color=(180, 20, 40),
            log_warning_color=(200, 100, 0),
            log_info_color=(30, 80, 130),
            log_debug_color=(90, 90, 90),
            timestamp_color=(60, 60, 60),
            tag_color=(100, 60, 160),
            background_color=(255, 255, 255),
            json_key_color=(0, 80, 160),
            json_string_color=(150, 80, 60),
            json_number_color=(70, 110, 50),
            json_punctuation_color=(60, 60, 60),
            file_link_color=(20, 100, 20),
            search_highlight_bg=(255, 235, 120),
        )

    def level_color(self, level: LogLevel) -> RGB:
        """Level color, adjusted to stay readable on the background."""
        return ensure_contrast({
            LogLevel.ERROR: self.log_error_color,
            LogLevel.WARN: self.log_warning_color,
            LogLevel.INFO: self.log_info_color,
            LogLevel.DEBUG: self.log_debug_color,
        }[level], self.background_color)

    def bracket_color(self, depth: int) -> RGB:
        return self.json_bracket_colors[max(0, depth) % len(self.json_bracket_colors)]

    @staticmethod
    def to_hex(color_tuple: RGB) -> str:
        r, g, b = color_tuple
        return f"#{r:02x}{g:02x}{b:02x}"

    @staticmethod
    def to_qcolor(color_tuple: RGB) -> QColor:
        r, g, b = color_tuple
        return QColor(r, g, b)
