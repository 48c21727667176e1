"""Tests for group boundary level inheritance."""

from pyqt_logconsole.models import LogLevel
from pyqt_logconsole.parsing import GroupResolver


def _append(records, resolver, record):
    records.append(record)
    return resolver.resolve(records)


def test_group_takes_level_of_its_content(make_record):
    """start -> content -> end: both markers end up with the content's level."""
    resolver = GroupResolver()
    records = []
    start = make_record("┌──────", LogLevel.INFO, group="start")
    content = make_record("│ Exception: boom", LogLevel.ERROR)
    end = make_record("└──────", LogLevel.INFO, group="end")

    assert _append(records, resolver, start) == 0
    assert _append(records, resolver, content) == 1
    assert _append(records, resolver, end) == 0

    assert [r.level for r in records] == [LogLevel.ERROR, LogLevel.ERROR, LogLevel.ERROR]


def test_run_of_start_markers_is_patched(make_record):
    resolver = GroupResolver()
    records = []
    _append(records, resolver, make_record("outer", LogLevel.INFO, group="start"))
    _append(records, resolver, make_record("inner", LogLevel.INFO, group="startCollapsed"))
    patched = _append(records, resolver, make_record("content", LogLevel.WARN))

    assert patched == 2
    assert all(r.level is LogLevel.WARN for r in records)


def test_content_stops_at_previous_content(make_record):
    resolver = GroupResolver()
    records = []
    _append(records, resolver, make_record("earlier", LogLevel.DEBUG))
    _append(records, resolver, make_record("start", LogLevel.INFO, group="start"))
    _append(records, resolver, make_record("content", LogLevel.ERROR))

    assert records[0].level is LogLevel.DEBUG
    assert records[1].level is LogLevel.ERROR


def test_end_copies_nearest_content_line(make_record):
    resolver = GroupResolver()
    records = []
    _append(records, resolver, make_record("content", LogLevel.WARN))
    _append(records, resolver, make_record("end", LogLevel.INFO, group="end"))
    assert records[-1].level is LogLevel.WARN


def test_end_without_content_keeps_own_level(make_record):
    resolver = GroupResolver()
    records = []
    _append(records, resolver, make_record("start", LogLevel.DEBUG, group="start"))
    _append(records, resolver, make_record("end", LogLevel.INFO, group="end"))
    assert records[-1].level is LogLevel.INFO


def test_start_marker_does_not_patch_anything(make_record):
    resolver = GroupResolver()
    records = []
    _append(records, resolver, make_record("content", LogLevel.ERROR))
    assert _append(records, resolver, make_record("start", LogLevel.INFO, group="start")) == 0
    assert records[0].level is LogLevel.ERROR
    assert records[1].level is LogLevel.INFO


def test_empty_sequence():
    assert GroupResolver().resolve([]) == 0
