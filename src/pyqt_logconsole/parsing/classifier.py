"""
Debug output classifier.

Turns one raw protocol output line into a LogRecord: strips runtime and
platform prefixes plus terminal color codes, then detects the level with an
ordered chain of independent matchers (first match wins). Explicit intent
from the producer (bracketed tags, structured prefixes) outranks content
heuristics, which outrank the producer-reported category.
"""

import logging
import random
import re
import string
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from pyqt_logconsole.models import GroupMarker, LogLevel, LogRecord

logger = logging.getLogger(__name__)


# Pre-compiled patterns, shared by every classification call
_RUNTIME_PREFIX_RE = re.compile(r'^flutter:\s*', re.MULTILINE)
_PLATFORM_TAG_PREFIX_RE = re.compile(r'[VDIWEF]/[\w.-]+\s*\(\s*\d+\s*\):\s*')
_ANSI_ESCAPE_RE = re.compile(r'\x1b\[[0-9;]*m')
_ANSI_LITERAL_RE = re.compile(r'\[\d+(?:;\d+)*m')

_LEVEL_WORDS = 'debug|info|warn|warning|error|trace|exception'
_LEVEL_TAG_RE = re.compile(rf'\[({_LEVEL_WORDS})\]', re.IGNORECASE)
_LEVEL_PREFIX_RE = re.compile(
    rf'^\d{{1,2}}:\d{{2}}:\d{{2}}\.\d{{3}}\s+({_LEVEL_WORDS})\s+', re.IGNORECASE
)

_ERROR_SUFFIX_RE = re.compile(r'exception:|error:|failed:|failure:', re.IGNORECASE)
_ERROR_WORD_RE = re.compile(r'\b(exception|error)\b', re.IGNORECASE)
_EXCEPTION_TAG_RE = re.compile(r'\[exception\]', re.IGNORECASE)
_STACK_FRAME_RE = re.compile(r'^#\d+\s+')
_PACKAGE_LOCATOR_RE = re.compile(r'\(package:[^)]+\)$')
_FRAME_CALL_RE = re.compile(r'^\s*#\d+\s+\S+\s+\(')

_PLATFORM_LEVEL_RE = re.compile(r'([VDIWEF])/[\w.-]+\s*\(')

_WORD_LEVELS = {
    'debug': LogLevel.DEBUG,
    'trace': LogLevel.DEBUG,
    'info': LogLevel.INFO,
    'warn': LogLevel.WARN,
    'warning': LogLevel.WARN,
    'error': LogLevel.ERROR,
    'exception': LogLevel.ERROR,
}

_PLATFORM_LEVELS = {
    'V': LogLevel.DEBUG,
    'D': LogLevel.DEBUG,
    'I': LogLevel.INFO,
    'W': LogLevel.WARN,
    'E': LogLevel.ERROR,
    'F': LogLevel.ERROR,
}

_ID_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class LineContext:
    """Inputs visible to a level matcher."""
    message: str   # cleaned text
    raw_text: str  # text as the producer sent it
    category: str


LevelMatcher = Callable[[LineContext], Optional[LogLevel]]


def clean_message(text: str) -> str:
    """Strip runtime/platform prefixes and color codes, keep leading indentation."""
    cleaned = _RUNTIME_PREFIX_RE.sub('', text)
    cleaned = _PLATFORM_TAG_PREFIX_RE.sub('', cleaned)
    cleaned = _ANSI_ESCAPE_RE.sub('', cleaned)
    cleaned = _ANSI_LITERAL_RE.sub('', cleaned)
    return cleaned.rstrip()


def normalize_level_word(word: str) -> LogLevel:
    """Map a level word (any case, incl. aliases) onto the four-value enum."""
    return _WORD_LEVELS.get(word.lower(), LogLevel.INFO)


def match_level_tag(ctx: LineContext) -> Optional[LogLevel]:
    """Bracketed tag anywhere in the text: [debug], [WARN], [exception]..."""
    match = _LEVEL_TAG_RE.search(ctx.message)
    if match:
        return normalize_level_word(match.group(1))
    return None


def match_level_prefix(ctx: LineContext) -> Optional[LogLevel]:
    """Structured logger prefix: 'HH:MM:SS.mmm LEVEL message'."""
    match = _LEVEL_PREFIX_RE.match(ctx.message)
    if match:
        return normalize_level_word(match.group(1))
    return None


def is_error_content(message: str) -> bool:
    """Exception/stack-trace heuristics."""
    if _ERROR_SUFFIX_RE.search(message):
        return True
    if _ERROR_WORD_RE.search(message) and ':' in message:
        return True
    if _EXCEPTION_TAG_RE.search(message):
        return True

    stripped = message.strip()
    if _STACK_FRAME_RE.match(stripped):
        return True
    if _PACKAGE_LOCATOR_RE.search(stripped):
        return True
    return bool(_FRAME_CALL_RE.match(message))


def match_error_content(ctx: LineContext) -> Optional[LogLevel]:
    return LogLevel.ERROR if is_error_content(ctx.message) else None


def match_platform_tag(ctx: LineContext) -> Optional[LogLevel]:
    """Single-letter platform tag (E/MyApp(123):), checked before and after cleaning."""
    match = _PLATFORM_LEVEL_RE.search(ctx.message) or _PLATFORM_LEVEL_RE.search(ctx.raw_text)
    if match:
        return _PLATFORM_LEVELS[match.group(1)]
    return None


def match_category(ctx: LineContext) -> Optional[LogLevel]:
    """Fallback on the producer channel. Always matches."""
    if ctx.category == 'stderr':
        return LogLevel.ERROR
    return LogLevel.INFO


# Priority order; first non-None wins
LEVEL_MATCHERS: Tuple[LevelMatcher, ...] = (
    match_level_tag,
    match_level_prefix,
    match_error_content,
    match_platform_tag,
    match_category,
)


def detect_level(
    message: str,
    category: str,
    raw_text: Optional[str] = None,
    matchers: Sequence[LevelMatcher] = LEVEL_MATCHERS,
) -> LogLevel:
    """Run the matcher chain over a cleaned message."""
    ctx = LineContext(message=message, raw_text=raw_text if raw_text is not None else message,
                      category=category)
    for matcher in matchers:
        level = matcher(ctx)
        if level is not None:
            return level
    return LogLevel.INFO


def make_record_id(session_id: str, arrival_time: int) -> str:
    suffix = ''.join(random.choices(_ID_ALPHABET, k=9))
    return f"{session_id}-{arrival_time}-{suffix}"


def classify(
    raw_text: str,
    category: str,
    session_id: str,
    arrival_time: int,
    group: Optional[GroupMarker] = None,
) -> Optional[LogRecord]:
    """
    Classify one raw output line.

    Args:
        raw_text: Output text as received from the debug adapter
        category: Producer channel (stdout, stderr, console...)
        session_id: Producing debug session
        arrival_time: Arrival time in ms since epoch
        group: Optional group boundary marker

    Returns:
        LogRecord, or None when nothing is left after cleaning.
    """
    message = clean_message(raw_text)
    if not message.strip():
        return None

    level = detect_level(message, category, raw_text=raw_text)
    return LogRecord(
        id=make_record_id(session_id, arrival_time),
        timestamp=arrival_time,
        level=level,
        message=message,
        category=category,
        session_id=session_id,
        group=group,
    )
