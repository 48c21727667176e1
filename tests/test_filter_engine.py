"""Tests for the level/search filter engine."""

import pytest

from pyqt_logconsole.models import ALL_LEVELS, LogLevel
from pyqt_logconsole.parsing import GroupResolver
from pyqt_logconsole.services.filter_engine import (
    CombineMode,
    FilterEngine,
    FilterState,
    SearchMatcher,
    filter_records,
)


@pytest.fixture
def mixed_records(make_record):
    levels = [LogLevel.DEBUG, LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR]
    return [make_record(f"line {i} {'timeout' if i % 3 == 0 else 'ok'}", levels[i % 4]) for i in range(40)]


def test_default_state_hides_debug():
    state = FilterState()
    assert state.active_levels == {LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR}
    assert state.combine_mode is CombineMode.AND


def test_level_and_search_combine_with_and(make_record):
    records = [make_record("timeout a", LogLevel.ERROR), make_record("timeout b", LogLevel.DEBUG),
               make_record("fine", LogLevel.ERROR)]
    state = FilterState(active_levels=frozenset({LogLevel.ERROR}), search_query="timeout")
    assert [r.message for r in filter_records(records, state)] == ["timeout a"]


def test_level_and_search_combine_with_or(make_record):
    records = [make_record("timeout a", LogLevel.ERROR), make_record("timeout b", LogLevel.DEBUG),
               make_record("fine", LogLevel.ERROR), make_record("other", LogLevel.DEBUG)]
    state = FilterState(active_levels=frozenset({LogLevel.ERROR}), search_query="timeout",
                        combine_mode=CombineMode.OR)
    assert [r.message for r in filter_records(records, state)] == ["timeout a", "timeout b", "fine"]


def test_combine_mode_is_inert_without_query(make_record):
    records = [make_record("a", LogLevel.ERROR), make_record("b", LogLevel.DEBUG)]
    state = FilterState(active_levels=frozenset({LogLevel.ERROR}), search_query="   ",
                        combine_mode=CombineMode.OR)
    assert [r.message for r in filter_records(records, state)] == ["a"]
    assert state.with_combine_mode_toggled() is state


def test_search_is_case_insensitive():
    assert SearchMatcher("TimeOut")("request timeout after 5s")


def test_regex_search():
    matcher = SearchMatcher(r"user_\d+", use_regex=True)
    assert matcher.is_regex
    assert matcher("login by USER_42")
    assert not matcher("login by user_x")


def test_invalid_regex_falls_back_to_substring():
    """A query that does not compile matches as literal text, never raises."""
    matcher = SearchMatcher("[unclosed", use_regex=True)
    assert not matcher.is_regex
    assert matcher.regex_error
    assert matcher("value [unclosed bracket")
    assert not matcher("value unclosed")


def test_state_transitions_are_immutable():
    state = FilterState()
    toggled = state.with_level_toggled(LogLevel.DEBUG)
    assert LogLevel.DEBUG not in state.active_levels
    assert toggled.active_levels == ALL_LEVELS
    assert toggled.is_unfiltered

    searched = toggled.with_search("x")
    assert searched.with_combine_mode_toggled().combine_mode is CombineMode.OR


def test_from_level_names_ignores_unknown():
    state = FilterState.from_level_names(["info", "bogus", "error"])
    assert state.active_levels == {LogLevel.INFO, LogLevel.ERROR}


@pytest.mark.parametrize("split", [0, 1, 17, 39, 40])
def test_incremental_equals_full_recompute(mixed_records, split):
    """Appending in two steps yields exactly the full recompute result."""
    state = FilterState(active_levels=frozenset({LogLevel.WARN, LogLevel.ERROR}), search_query="timeout",
                        combine_mode=CombineMode.OR)
    engine = FilterEngine(state)
    engine.full_recompute(mixed_records[:split])
    engine.append(mixed_records)

    assert engine.filtered == filter_records(mixed_records, state)
    assert engine.source_length == len(mixed_records)


def test_one_at_a_time_equals_full_recompute(mixed_records):
    engine = FilterEngine(FilterState(search_query="timeout"))
    for i in range(1, len(mixed_records) + 1):
        engine.append(mixed_records[:i])
    assert engine.filtered == filter_records(mixed_records, engine.state)


def test_full_recompute_is_idempotent(mixed_records):
    engine = FilterEngine()
    first = list(engine.full_recompute(mixed_records))
    second = list(engine.full_recompute(mixed_records))
    assert first == second


def test_append_before_first_compute_does_full_pass(mixed_records):
    engine = FilterEngine()
    delta = engine.append(mixed_records)
    assert engine.is_computed
    assert delta.added == filter_records(mixed_records, engine.state)


def test_rewind_reevaluates_back_patched_records(make_record):
    """A start marker that becomes ERROR after it was filtered out is picked up."""
    state = FilterState(active_levels=frozenset({LogLevel.ERROR}))
    engine = FilterEngine(state)
    resolver = GroupResolver()
    records = []

    records.append(make_record("┌──", LogLevel.INFO, group="start"))
    resolver.resolve(records)
    engine.append(records)
    assert engine.filtered == []

    records.append(make_record("Exception: boom", LogLevel.ERROR))
    patched = resolver.resolve(records)
    delta = engine.append(records, rewind=patched)

    assert [r.message for r in engine.filtered] == ["┌──", "Exception: boom"]
    assert engine.filtered == filter_records(records, state)
    assert delta.removed_tail == 0
    assert len(delta.added) == 2


def test_rewind_removes_stale_tail(make_record):
    """A start marker that was shown under its provisional level is dropped if it changes."""
    state = FilterState(active_levels=frozenset({LogLevel.INFO}))
    engine = FilterEngine(state)
    resolver = GroupResolver()
    records = [make_record("┌──", LogLevel.INFO, group="start")]
    resolver.resolve(records)
    engine.append(records)
    assert len(engine.filtered) == 1

    records.append(make_record("debug body", LogLevel.DEBUG))
    delta = engine.append(records, rewind=resolver.resolve(records))

    assert engine.filtered == []
    assert delta.removed_tail == 1


def test_evict_keeps_engine_aligned(mixed_records):
    engine = FilterEngine(FilterState(active_levels=ALL_LEVELS))
    engine.full_recompute(mixed_records)

    removed = engine.evict(mixed_records[:5])
    remaining = mixed_records[5:]

    assert removed == 5
    assert engine.source_length == len(remaining)
    engine.append(remaining)
    assert engine.filtered == remaining


def test_evict_counts_only_filtered_records(mixed_records):
    state = FilterState(active_levels=frozenset({LogLevel.ERROR}))
    engine = FilterEngine(state)
    engine.full_recompute(mixed_records)
    # first four records: debug, info, warn, error -> one filtered record evicted
    assert engine.evict(mixed_records[:4]) == 1
    assert engine.filtered == filter_records(mixed_records[4:], state)
