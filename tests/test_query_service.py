"""Tests for snapshot querying."""

import pytest

from pyqt_logconsole.io import write_snapshot
from pyqt_logconsole.models import LogLevel
from pyqt_logconsole.services.filter_engine import CombineMode, FilterState, filter_records
from pyqt_logconsole.services.query_service import (
    DEFAULT_LIMIT,
    QueryRequest,
    load_query_records,
    run_query,
)


@pytest.fixture
def records(make_record):
    return [
        make_record("boot", LogLevel.INFO, timestamp=100),
        make_record("db timeout", LogLevel.ERROR, timestamp=200),
        make_record("cache miss", LogLevel.DEBUG, timestamp=300),
        make_record("slow timeout", LogLevel.WARN, timestamp=400),
        make_record("done", LogLevel.INFO, timestamp=500),
    ]


def test_omitted_levels_mean_all_levels(records):
    result = run_query(records, QueryRequest())
    assert result.total == 5
    assert result.filtered == 5


def test_tail_orders_most_recent_first(records):
    result = run_query(records, QueryRequest(tail=True))
    assert [r.timestamp for r in result.records] == [500, 400, 300, 200, 100]


def test_head_orders_oldest_first(records):
    result = run_query(records, QueryRequest(tail=False))
    assert [r.timestamp for r in result.records] == [100, 200, 300, 400, 500]


def test_limit_applies_after_sorting(records):
    result = run_query(records, QueryRequest(limit=2))
    assert [r.message for r in result.records] == ["done", "slow timeout"]
    assert result.filtered == 5


def test_non_positive_limit_uses_default(records):
    request = QueryRequest(limit=0)
    assert len(run_query(records, request).records) == min(DEFAULT_LIMIT, len(records))


def test_stable_for_equal_timestamps(make_record):
    same = [make_record(f"m{i}", timestamp=1) for i in range(4)]
    result = run_query(same, QueryRequest(tail=False))
    assert [r.message for r in result.records] == ["m0", "m1", "m2", "m3"]


def test_same_predicate_as_viewer(records):
    """The query tool and the interactive view agree on what matches."""
    request = QueryRequest(levels=[LogLevel.ERROR], search="timeout", logic=CombineMode.OR, tail=False)
    state = FilterState(active_levels=frozenset({LogLevel.ERROR}), search_query="timeout",
                        combine_mode=CombineMode.OR)
    assert run_query(records, request).records == filter_records(records, state)


def test_regex_query(records):
    result = run_query(records, QueryRequest(search=r"^(db|slow) ", regex=True))
    assert {r.message for r in result.records} == {"db timeout", "slow timeout"}


def test_from_mapping_wire_form():
    request = QueryRequest.from_mapping({
        "levels": ["error", "warn", "nonsense"],
        "search": "x",
        "regex": True,
        "logic": "or",
        "tail": False,
        "limit": 5,
    })
    assert request.levels == [LogLevel.ERROR, LogLevel.WARN]
    assert request.logic is CombineMode.OR
    assert request.regex is True
    assert request.tail is False
    assert request.limit == 5


def test_from_mapping_defaults():
    request = QueryRequest.from_mapping(None)
    assert request.levels is None
    assert request.tail is True
    assert request.limit == DEFAULT_LIMIT
    assert request.logic is CombineMode.AND


def test_result_dict_shape(records):
    data = run_query(records, QueryRequest(limit=1)).to_dict()
    assert set(data) == {"total", "filtered", "logs"}
    assert data["logs"][0]["sessionId"] == "s1"


def test_load_query_records(tmp_path, records):
    path = tmp_path / "logs.json"
    write_snapshot(path, records)
    assert load_query_records(path) == records


def test_load_query_records_unreadable_is_empty(tmp_path):
    path = tmp_path / "logs.json"
    path.write_text("garbage", encoding="utf-8")
    assert load_query_records(path) == []
    assert load_query_records(tmp_path / "missing.json") == []
