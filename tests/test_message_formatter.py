"""Tests for record display formatting and color contrast."""

from datetime import datetime

import pytest

from pyqt_logconsole.models import LogLevel
from pyqt_logconsole.rendering import (
    DisplayOptions,
    MessageFormatter,
    SourceLink,
    TimestampMode,
    compact_message,
    format_record_for_copy,
    format_records_for_copy,
    format_relative_timestamp,
    format_timestamp,
)
from pyqt_logconsole.rendering.message_formatter import find_json_spans, find_search_spans
from pyqt_logconsole.services.filter_engine import SearchMatcher
from pyqt_logconsole.theming import LogColorScheme
from pyqt_logconsole.theming.log_colors import WCAG_AA_RATIO, contrast_ratio, ensure_contrast

PLAIN = DisplayOptions(TimestampMode.HIDDEN, highlight_tags=True)


@pytest.fixture
def formatter():
    return MessageFormatter(LogColorScheme.create_dark_theme(), local_package_names=["my_app"])


def test_absolute_timestamp_is_local_time():
    ts = 1_700_000_123_456
    moment = datetime.fromtimestamp(ts // 1000)
    assert format_timestamp(ts) == moment.strftime("%H:%M:%S") + ".456"


@pytest.mark.parametrize("offset_ms, expected", [
    (0, "+00:00.000"),
    (1_234, "+00:01.234"),
    (65_005, "+01:05.005"),
    (3_600_000 + 2 * 60_000 + 3_500, "+1:02:03.500"),
])
def test_relative_timestamp(offset_ms, expected):
    assert format_relative_timestamp(1000 + offset_ms, 1000) == expected


def test_relative_timestamp_without_launch():
    assert format_relative_timestamp(5000, None) == "+00:00.000"
    assert format_relative_timestamp(500, 1000) == "+00:00.000"


def test_copy_format(make_record):
    record = make_record("boom", LogLevel.ERROR, timestamp=2000)
    assert format_record_for_copy(record, TimestampMode.RELATIVE, launch_ms=1000) == "+00:01.000 ERROR boom"
    assert format_record_for_copy(record, TimestampMode.HIDDEN) == "boom"

    other = make_record("ok", timestamp=2500)
    text = format_records_for_copy([record, other], TimestampMode.RELATIVE, launch_ms=1000)
    assert text == "+00:01.000 ERROR boom\n+00:01.500 INFO ok"


def test_compact_strips_prefixes():
    assert compact_message("12:00:01.123 INFO started") == "started"
    assert compact_message("[2024-01-02T03:04:05.678] ready") == "ready"
    assert compact_message("│ ┌── inside") == "inside"
    assert compact_message("plain message") == "plain message"


def test_message_is_html_escaped(formatter):
    markup = formatter.format_message("a < b && c > d", PLAIN)
    assert "&lt;" in markup and "&amp;&amp;" in markup and "&gt;" in markup
    assert "<b" not in markup


def test_tags_are_highlighted_but_not_level_tags(formatter):
    markup = formatter.format_message("[Network] [INFO] request sent", PLAIN)
    assert markup.count('class="log-tag"') == 1
    assert ">[Network]<" in markup

    off = formatter.format_message("[Network] sent", DisplayOptions(TimestampMode.HIDDEN, highlight_tags=False))
    assert "log-tag" not in off


def test_file_link_round_trip(formatter):
    markup = formatter.format_message("at lib/src/widget.dart:42:7", PLAIN)
    assert 'class="file-link"' in markup
    href = markup.split('href="')[1].split('"')[0].replace("&amp;", "&")
    assert SourceLink.from_href(href) == SourceLink(path="lib/src/widget.dart", line=42, column=7)


def test_external_file_links(formatter):
    sdk = formatter.format_message("dart:core/errors.dart:12", PLAIN)
    assert "file-link--external" in sdk

    local = formatter.format_message("package:my_app/main.dart:3:1", PLAIN)
    assert "file-link--external" not in local and 'class="file-link"' in local

    dependency = formatter.format_message("package:http/client.dart:3:1", PLAIN)
    assert "file-link--external" in dependency


def test_url_link(formatter):
    markup = formatter.format_message("see https://example.com/docs?q=1 now", PLAIN)
    assert 'class="url-link"' in markup
    assert 'href="https://example.com/docs?q=1"' in markup


def test_json_is_token_colored(formatter):
    cs = formatter.color_scheme
    markup = formatter.format_message('payload {"user": 42, "ok": true}', PLAIN)
    assert cs.to_hex(cs.json_key_color) in markup
    assert cs.to_hex(cs.json_number_color) in markup
    assert cs.to_hex(cs.bracket_color(0)) in markup


def test_json_spans_require_valid_json():
    assert find_json_spans('x {"a": [1, 2]} y') == [(2, 15)]
    assert find_json_spans("list [not json here]") == []
    assert find_json_spans("{}") == []
    assert find_json_spans('{"a": "}"}') == [(0, 10)]


def test_search_highlight(formatter):
    search = SearchMatcher("TIME")
    markup = formatter.format_message("timeout after time", PLAIN, search)
    assert markup.count('class="search-highlight"') == 2


def test_regex_search_spans():
    spans = find_search_spans("user_1 and user_22", SearchMatcher(r"user_\d+", use_regex=True))
    assert spans == [(0, 6), (11, 18)]
    assert find_search_spans("anything", SearchMatcher("   ")) == []


def test_record_markup_contains_level_and_timestamp(formatter, make_record):
    record = make_record("hello", LogLevel.WARN)
    markup = formatter.format_record(record, DisplayOptions(TimestampMode.RELATIVE), launch_ms=record.timestamp)
    assert 'class="timestamp"' in markup and "+00:00.000" in markup
    assert ">WARN<" in markup

    hidden = formatter.format_record(record, PLAIN)
    assert 'class="timestamp"' not in hidden


@pytest.mark.parametrize("scheme", [LogColorScheme.create_dark_theme(), LogColorScheme.create_light_theme()])
def test_level_colors_meet_contrast(scheme):
    for level in LogLevel:
        assert contrast_ratio(scheme.level_color(level), scheme.background_color) >= WCAG_AA_RATIO


def test_ensure_contrast_keeps_readable_colors():
    assert ensure_contrast((255, 255, 255), (0, 0, 0)) == (255, 255, 255)
    assert contrast_ratio(ensure_contrast((40, 40, 40), (30, 30, 30)), (30, 30, 30)) >= WCAG_AA_RATIO
