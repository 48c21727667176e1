"""Tests for the variable-height virtual viewport."""

import pytest

from pyqt_logconsole.viewport import VirtualViewport


def _viewport(measure=lambda record, width: 20, buffer_size=2):
    return VirtualViewport(measure, buffer_size=buffer_size, default_height=20, follow_threshold=50)


@pytest.fixture
def records(make_record):
    return [make_record(f"line {i}") for i in range(50)]


def test_visible_range_covers_viewport_plus_buffer(records):
    viewport = _viewport()
    viewport.set_records(records)
    viewport.resize(400, 100)
    viewport.scroll_to(200)

    start, end = viewport.visible_range()
    positions = viewport.state.positions
    on_screen = [i for i, top in enumerate(positions) if top < 300 and top + 20 > 200]

    assert on_screen
    assert start <= on_screen[0] and on_screen[-1] < end
    # record 9 ends exactly at the offset and still counts as first visible
    assert start == 9 - 2
    assert end <= len(records)


def test_visible_range_is_clamped(records):
    viewport = _viewport(buffer_size=100)
    viewport.set_records(records)
    viewport.resize(400, 100)
    viewport.scroll_to(0)
    assert viewport.visible_range() == (0, len(records))


def test_empty_sequence_renders_empty_frame():
    viewport = _viewport()
    viewport.resize(400, 100)
    frame = viewport.render()
    assert frame.is_empty
    assert frame.total_extent == 0
    assert viewport.visible_range() == (0, 0)


def test_anchor_record_keeps_screen_position(make_record):
    """Measuring newly visible records never moves the first visible record."""
    records = [make_record(f"line {i}") for i in range(100)]
    viewport = _viewport(measure=lambda record, width: 40, buffer_size=20)
    viewport.set_records(records)
    viewport.resize(400, 200)
    viewport.scroll_to(600)
    assert not viewport.state.auto_follow

    anchor = viewport.anchor_index(600)
    screen_y = viewport.state.positions[anchor] - viewport.state.scroll_offset
    frame = viewport.render()

    assert anchor == 30
    assert viewport.state.positions[anchor] - frame.scroll_offset == screen_y
    assert all(height == 40 for height in frame.heights)


def test_auto_follow_stays_at_tail(records):
    viewport = _viewport(measure=lambda record, width: 30)
    viewport.set_records(records[:10])
    viewport.resize(400, 100)
    assert viewport.state.auto_follow

    viewport.append_records(records[10:15])
    frame = viewport.render()

    assert frame.scroll_offset == viewport.max_scroll
    assert viewport.is_near_bottom()


def test_scrolling_up_stops_following(records):
    viewport = _viewport()
    viewport.set_records(records)
    viewport.resize(400, 100)
    viewport.scroll_to(0)
    viewport.append_records([])
    assert viewport.state.scroll_offset == 0

    viewport.scroll_to_bottom()
    assert viewport.state.auto_follow
    assert viewport.state.scroll_offset == viewport.max_scroll


def test_selection_skips_unchanged_frames(records):
    viewport = _viewport()
    viewport.set_records(records)
    viewport.resize(400, 100)
    assert viewport.render() is not None

    assert viewport.render(has_selection=True) is None
    assert viewport.render(force=True, has_selection=True) is not None


def test_evict_front_shifts_scroll_offset(records):
    measured = []
    viewport = _viewport(measure=lambda record, width: measured.append(record.id) or 20)
    viewport.set_records(records)
    viewport.resize(400, 100)
    viewport.scroll_to(400)
    viewport.render()

    viewport.evict([r.id for r in records[:5]], removed_front=5)

    assert len(viewport) == 45
    assert viewport.state.scroll_offset == 300
    assert viewport.state.positions[0] == 0
    assert all(r.id not in viewport.state.heights for r in records[:5])


def test_evict_without_filtered_records_only_forgets_heights(records):
    viewport = _viewport()
    viewport.set_records(records)
    viewport.state.heights[records[0].id] = 60
    viewport.evict([records[0].id])
    assert records[0].id not in viewport.state.heights
    assert len(viewport) == 50


def test_small_width_change_keeps_heights(records):
    viewport = _viewport(measure=lambda record, width: 35)
    viewport.set_records(records)
    viewport.resize(400, 100)
    viewport.render()
    assert viewport.state.heights

    assert viewport.resize(403, 100) is False
    assert viewport.state.heights

    assert viewport.resize(500, 100) is True
    assert viewport.state.heights == {}


def test_append_with_removed_tail(records):
    viewport = _viewport()
    viewport.set_records(records[:5])
    viewport.append_records([records[5]], removed_tail=2)
    assert [r.id for r in viewport.records] == [r.id for r in records[:3]] + [records[5].id]
    assert viewport.state.total_extent == 80
    assert viewport.state.positions == [0, 20, 40, 60]


def test_scroll_to_record_centers(records):
    viewport = _viewport()
    viewport.set_records(records)
    viewport.resize(400, 100)
    assert viewport.scroll_to_record(records[20].id)
    assert viewport.state.scroll_offset == 400 - 50
    assert not viewport.scroll_to_record("missing")


def test_record_at(records):
    viewport = _viewport()
    viewport.set_records(records)
    assert viewport.record_at(45) == 2
    assert viewport.record_at(-1) is None
    assert viewport.record_at(viewport.state.total_extent) is None


def test_clear_resets_geometry(records):
    viewport = _viewport()
    viewport.set_records(records)
    viewport.resize(400, 100)
    viewport.render()
    viewport.clear()
    assert len(viewport) == 0
    assert viewport.state.heights == {}
    assert viewport.state.scroll_offset == 0
    assert viewport.state.auto_follow
