"""
Display formatting for log records.

Turns a record into Qt rich text (the HTML subset QLabel and QTextDocument
understand) and into the plain-text copy form. Message decoration is layered
on a per-character style map so overlapping decorations (a search hit inside
a JSON string inside a link) compose instead of producing nested, broken
markup:

    tags  ->  JSON tokens  ->  URLs / file links  ->  search highlight

Later layers win for the attributes they set.
"""

import html
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from itertools import groupby
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlparse

from pygments.lexers import JsonLexer
from pygments.token import Token

from pyqt_logconsole.models import LogRecord
from pyqt_logconsole.theming import LogColorScheme

if TYPE_CHECKING:
    from pyqt_logconsole.services.filter_engine import SearchMatcher

logger = logging.getLogger(__name__)

# Compact mode
COMPACT_PREFIX_REGEX = re.compile(
    r'^(?:\[\w+\]\s*\|\s*\d{1,2}:\d{2}:\d{2}\s+\d+ms\s*\|\s*'
    r'|\d{2}:\d{2}:\d{2}\.\d{3}\s+(?:DEBUG|INFO|WARNING|ERROR|WARN)\s+'
    r'|[DIWEV]/[\w.]+:\s*)'
)
BRACKET_TIMESTAMP_REGEX = re.compile(r'\[\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d+)?\]\s*')
BOX_DRAWING_REGEX = re.compile(r'[│├└┌┐┘┴┬┼─║╔╗╚╝╠╣╦╩╬]+\s*')

# Decorations
TAG_REGEX = re.compile(r'\[([A-Za-z][\w. =-]*)\]')
URL_REGEX = re.compile(r'https?://[^\s"\'<>)\]},]+')
FILE_PATH_REGEX = re.compile(
    r'(package:|dart:)?'
    r'([a-zA-Z0-9_+\-./\\]+\.(?:dart|kt|java|ts|js|tsx|jsx|py|rb|go|rs|cpp|c|h|hpp|swift|m|mm'
    r'|json|xml|yaml|yml|gradle|properties|txt|md|html|css|scss|less))'
    r':(\d+)(?::(\d+))?'
)

LEVEL_TAG_WORDS = frozenset({'debug', 'info', 'warn', 'warning', 'error', 'trace', 'exception'})

SOURCE_LINK_SCHEME = "source"


class TimestampMode(str, Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    HIDDEN = "hidden"

    def next(self) -> "TimestampMode":
        """Cycle absolute -> relative -> hidden -> absolute."""
        order = list(TimestampMode)
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class DisplayOptions:
    """View-side presentation toggles; none of them affect filtering."""
    timestamp_mode: TimestampMode = TimestampMode.ABSOLUTE
    compact: bool = False
    highlight_tags: bool = True


@dataclass(frozen=True)
class SourceLink:
    """Target of a clicked file reference."""
    path: str
    line: int
    column: int = 1
    scheme: str = ""

    def to_href(self) -> str:
        query = urlencode({"path": self.path, "line": self.line, "col": self.column, "scheme": self.scheme})
        return f"{SOURCE_LINK_SCHEME}:?{query}"

    @classmethod
    def from_href(cls, href: str) -> Optional["SourceLink"]:
        parsed = urlparse(href)
        if parsed.scheme != SOURCE_LINK_SCHEME:
            return None
        params = parse_qs(parsed.query)
        try:
            return cls(
                path=params["path"][0],
                line=int(params["line"][0]),
                column=int(params.get("col", ["1"])[0]),
                scheme=params.get("scheme", [""])[0],
            )
        except (KeyError, IndexError, ValueError):
            logger.debug(f"Malformed source link: {href}")
            return None


# ----------------------------------------------------------------------
# Timestamps and copy
# ----------------------------------------------------------------------

def format_timestamp(timestamp_ms: int) -> str:
    """Local wall-clock time as HH:MM:SS.mmm."""
    seconds, millis = divmod(int(timestamp_ms), 1000)
    return f"{datetime.fromtimestamp(seconds):%H:%M:%S}.{millis:03d}"


def format_relative_timestamp(timestamp_ms: int, launch_ms: Optional[int]) -> str:
    """Offset from the first record as +MM:SS.mmm, or +H:MM:SS.mmm past an hour."""
    if launch_ms is None or timestamp_ms < launch_ms:
        return "+00:00.000"
    total_ms = timestamp_ms - launch_ms
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds = "{:02d}.{:03d}".format(*divmod(remainder, 1000))
    if hours:
        return f"+{hours}:{minutes:02d}:{seconds}"
    return f"+{minutes:02d}:{seconds}"


def timestamp_text(record: LogRecord, mode: TimestampMode, launch_ms: Optional[int] = None) -> str:
    if mode is TimestampMode.ABSOLUTE:
        return format_timestamp(record.timestamp)
    if mode is TimestampMode.RELATIVE:
        return format_relative_timestamp(record.timestamp, launch_ms)
    return ""


def format_record_for_copy(record: LogRecord, mode: TimestampMode, launch_ms: Optional[int] = None) -> str:
    """Copy line as `<ts> <LEVEL> <message>`, or the bare message when timestamps are hidden."""
    if mode is TimestampMode.HIDDEN:
        return record.message
    return f"{timestamp_text(record, mode, launch_ms)} {record.level.value.upper()} {record.message}"


def format_records_for_copy(records: Iterable[LogRecord], mode: TimestampMode,
                            launch_ms: Optional[int] = None) -> str:
    return "\n".join(format_record_for_copy(record, mode, launch_ms) for record in records)


def compact_message(message: str) -> str:
    """Strip verbose logger prefixes, bracketed ISO timestamps and box-drawing runs."""
    message = COMPACT_PREFIX_REGEX.sub('', message, count=1)
    message = BRACKET_TIMESTAMP_REGEX.sub('', message)
    return BOX_DRAWING_REGEX.sub('', message)


# ----------------------------------------------------------------------
# Span discovery
# ----------------------------------------------------------------------

def find_balanced_json_end(text: str, start: int) -> int:
    """
    Index one past the bracket closing text[start], or -1 if unbalanced.

    Brackets inside double-quoted strings are ignored.
    """
    opening = text[start]
    closing = '}' if opening == '{' else ']'
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opening:
            depth += 1
        elif char == closing:
            depth -= 1
            if depth == 0:
                return index + 1
    return -1


def find_json_spans(text: str) -> List[Tuple[int, int]]:
    """Balanced {...} / [...] regions that lex as JSON."""
    spans = []
    index = 0
    while index < len(text):
        if text[index] in '{[':
            end = find_balanced_json_end(text, index)
            if end > index + 2 and _lexes_as_json(text[index:end]):
                spans.append((index, end))
                index = end
                continue
        index += 1
    return spans


def _lexes_as_json(chunk: str) -> bool:
    return not any(token in Token.Error for _, token, _ in JsonLexer().get_tokens_unprocessed(chunk))


def find_search_spans(text: str, search: Optional["SearchMatcher"]) -> List[Tuple[int, int]]:
    if search is None or not search.active:
        return []
    if search.is_regex:
        return [match.span() for match in search.pattern.finditer(text) if match.end() > match.start()]
    needle = search.query.lower()
    haystack = text.lower()
    spans = []
    index = haystack.find(needle)
    while index != -1:
        spans.append((index, min(index + len(needle), len(text))))
        index = haystack.find(needle, index + len(needle))
    return spans


# ----------------------------------------------------------------------
# Formatter
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class _Style:
    color: Optional[str] = None
    background: Optional[str] = None
    bold: bool = False
    css_class: Optional[str] = None
    href: Optional[str] = None


_PLAIN = _Style()


class MessageFormatter:
    """Builds rich-text markup for records using a LogColorScheme."""

    def __init__(self, color_scheme: Optional[LogColorScheme] = None,
                 local_package_names: Iterable[str] = ()):
        self.color_scheme = color_scheme or LogColorScheme()
        self.local_package_names: FrozenSet[str] = frozenset(local_package_names)
        self.setup_token_colors()

    def setup_token_colors(self) -> None:
        """Map Pygments JSON tokens to hex colors from the color scheme."""
        cs = self.color_scheme
        self.token_colors = {
            Token.Name.Tag: cs.to_hex(cs.json_key_color),
            Token.String: cs.to_hex(cs.json_string_color),
            Token.String.Double: cs.to_hex(cs.json_string_color),
            Token.Number: cs.to_hex(cs.json_number_color),
            Token.Number.Integer: cs.to_hex(cs.json_number_color),
            Token.Number.Float: cs.to_hex(cs.json_number_color),
            Token.Keyword.Constant: cs.to_hex(cs.json_number_color),
            Token.Punctuation: cs.to_hex(cs.json_punctuation_color),
        }

    def set_local_package_names(self, names: Iterable[str]) -> None:
        self.local_package_names = frozenset(names)

    def _token_color(self, token) -> Optional[str]:
        while token is not None:
            if token in self.token_colors:
                return self.token_colors[token]
            token = token.parent
        return None

    # -- record level ---------------------------------------------------

    def format_record(self, record: LogRecord, options: DisplayOptions,
                      search: Optional["SearchMatcher"] = None,
                      launch_ms: Optional[int] = None) -> str:
        """Full row markup: timestamp, level badge and decorated message."""
        cs = self.color_scheme
        parts = []
        ts = timestamp_text(record, options.timestamp_mode, launch_ms)
        if ts:
            parts.append(f'<span class="timestamp" style="color:{cs.to_hex(cs.timestamp_color)}">{ts}</span> ')
        level_hex = cs.to_hex(cs.level_color(record.level))
        parts.append(
            f'<span class="level" style="color:{level_hex}; font-weight:bold">'
            f'{record.level.value.upper()}</span> '
        )
        parts.append(f'<span style="color:{level_hex}">{self.format_message(record.message, options, search)}</span>')
        return f'<span style="white-space:pre-wrap">{"".join(parts)}</span>'

    # -- message level --------------------------------------------------

    def format_message(self, message: str, options: DisplayOptions,
                       search: Optional["SearchMatcher"] = None) -> str:
        """Escaped, decorated message markup."""
        text = compact_message(message) if options.compact else message
        if not text:
            return ""
        styles: List[_Style] = [_PLAIN] * len(text)

        if options.highlight_tags:
            self._apply_tags(text, styles)
        self._apply_json(text, styles)
        self._apply_urls(text, styles)
        self._apply_file_links(text, styles)
        for start, end in find_search_spans(text, search):
            self._paint(styles, start, end, background=self.color_scheme.to_hex(self.color_scheme.search_highlight_bg),
                        css_class="search-highlight")

        return self._emit(text, styles)

    def _apply_tags(self, text: str, styles: List[_Style]) -> None:
        color = self.color_scheme.to_hex(self.color_scheme.tag_color)
        for match in TAG_REGEX.finditer(text):
            if match.group(1).lower() in LEVEL_TAG_WORDS:
                continue
            self._paint(styles, match.start(), match.end(), color=color, css_class="log-tag")

    def _apply_json(self, text: str, styles: List[_Style]) -> None:
        cs = self.color_scheme
        for start, end in find_json_spans(text):
            depth = 0
            for offset, token, value in JsonLexer().get_tokens_unprocessed(text[start:end]):
                position = start + offset
                if token in Token.Punctuation:
                    # The lexer merges adjacent punctuation ("]}", ":") into one token
                    for index, char in enumerate(value, start=position):
                        if char in '}]':
                            depth -= 1
                        color = (cs.bracket_color(depth) if char in '{[]}'
                                 else cs.json_punctuation_color)
                        self._paint(styles, index, index + 1, color=cs.to_hex(color))
                        if char in '{[':
                            depth += 1
                    continue
                color = self._token_color(token)
                if color:
                    self._paint(styles, position, position + len(value), color=color)

    def _apply_urls(self, text: str, styles: List[_Style]) -> None:
        color = self.color_scheme.to_hex(self.color_scheme.url_color)
        for match in URL_REGEX.finditer(text):
            self._paint(styles, match.start(), match.end(), color=color, css_class="url-link", href=match.group(0))

    def _apply_file_links(self, text: str, styles: List[_Style]) -> None:
        cs = self.color_scheme
        for match in FILE_PATH_REGEX.finditer(text):
            if any(styles[i].href for i in range(match.start(), match.end())):
                continue
            prefix, path, line, column = match.groups()
            scheme = prefix[:-1] if prefix else ""
            link = SourceLink(path=path, line=int(line), column=int(column or 1), scheme=scheme)
            external = self.is_external(scheme, path)
            self._paint(
                styles, match.start(), match.end(),
                color=cs.to_hex(cs.external_link_color if external else cs.file_link_color),
                css_class="file-link file-link--external" if external else "file-link",
                href=link.to_href(),
            )

    def is_external(self, scheme: str, path: str) -> bool:
        """SDK sources and packages outside the workspace render dimmed."""
        if scheme == "dart":
            return True
        if scheme == "package" and "/" in path:
            return path.split("/")[0] not in self.local_package_names
        return False

    @staticmethod
    def _paint(styles: List[_Style], start: int, end: int, **changes) -> None:
        for index in range(max(0, start), min(end, len(styles))):
            styles[index] = replace(styles[index], **changes)

    @staticmethod
    def _emit(text: str, styles: List[_Style]) -> str:
        out = []
        position = 0
        for style, group in groupby(styles):
            length = sum(1 for _ in group)
            chunk = html.escape(text[position:position + length], quote=False)
            position += length
            if style == _PLAIN:
                out.append(chunk)
                continue
            css = []
            if style.color:
                css.append(f"color:{style.color}")
            if style.background:
                css.append(f"background-color:{style.background}")
            if style.bold:
                css.append("font-weight:bold")
            class_attr = f' class="{style.css_class}"' if style.css_class else ""
            span = f'<span{class_attr} style="{"; ".join(css)}">{chunk}</span>'
            if style.href:
                href = html.escape(style.href, quote=True)
                span = f'<a href="{href}" style="text-decoration:none">{span}</a>'
            out.append(span)
        return "".join(out)
