"""
Configuration and provider hooks.

Applications customize the console by installing a ConsoleConfig before
constructing any console components.
"""

from .console_config import ConsoleConfig, set_console_config, get_console_config

__all__ = [
    "ConsoleConfig",
    "set_console_config",
    "get_console_config",
]
