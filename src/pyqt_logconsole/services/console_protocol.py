"""
Messages exchanged between the console view and its controller.

The view sends ViewCommand messages; the controller answers with ViewUpdate
messages. Payloads are plain dicts so any host (the Qt widget, a test, a
remote view) can speak the protocol.

Command payloads:
    READY              {}
    TOGGLE_LEVEL       {"level": "debug|info|warn|error"}
    SET_SEARCH         {"query": str}
    TOGGLE_REGEX       {"enabled": bool}  (omitted: flip)
    TOGGLE_COMBINE_MODE {}
    CLEAR              {}
    LOAD               {"entries": list} or {"path": str}
    RESIZE             {"width": int, "height": int}
    SCROLL             {"offset": int}
    TOGGLE_TIMESTAMPS  {}
    TOGGLE_COMPACT     {}
    TOGGLE_TAGS        {}
    COPY_ALL           {}
    COPY_RANGE         {"start": int, "end": int}  (inclusive filtered indices)
    SHOW_UNFILTERED    {"record_id": str}

Update payloads:
    FRAME              {"frame": RenderFrame, "markup": [str, ...]}
    FILTER_STATE       {"levels": [str], "search": str, "regex": bool,
                        "regex_error": str|None, "combine_mode": "AND|OR",
                        "combine_enabled": bool, "total": int, "filtered": int}
    DISPLAY_OPTIONS    {"timestamp_mode": str, "compact": bool, "highlight_tags": bool}
    CLIPBOARD          {"text": str}
    SCROLL_TO          {"offset": int}
    LOAD_FAILED        {"error": str}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class ViewCommand(str, Enum):
    READY = "ready"
    TOGGLE_LEVEL = "toggleLevel"
    SET_SEARCH = "setSearch"
    TOGGLE_REGEX = "toggleRegex"
    TOGGLE_COMBINE_MODE = "toggleCombineMode"
    CLEAR = "clear"
    LOAD = "load"
    RESIZE = "resize"
    SCROLL = "scroll"
    TOGGLE_TIMESTAMPS = "toggleTimestamps"
    TOGGLE_COMPACT = "toggleCompact"
    TOGGLE_TAGS = "toggleTags"
    COPY_ALL = "copyAll"
    COPY_RANGE = "copyRange"
    SHOW_UNFILTERED = "showUnfiltered"


class ViewUpdate(str, Enum):
    FRAME = "frame"
    FILTER_STATE = "filterState"
    DISPLAY_OPTIONS = "displayOptions"
    CLIPBOARD = "clipboard"
    SCROLL_TO = "scrollTo"
    LOAD_FAILED = "loadFailed"


@dataclass(frozen=True)
class ConsoleMessage:
    """View -> controller."""
    command: ViewCommand
    payload: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsoleMessage":
        """Parse {"type": <command value>, ...payload}. Unknown types raise ValueError."""
        data = dict(data)
        command = ViewCommand(data.pop("type"))
        return cls(command, data)


@dataclass(frozen=True)
class ConsoleUpdate:
    """Controller -> view."""
    kind: ViewUpdate
    payload: Dict[str, Any] = field(default_factory=dict)
