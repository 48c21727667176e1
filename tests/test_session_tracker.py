"""Tests for protocol output event intake."""

from pyqt_logconsole.models import GroupMarker, LogLevel
from pyqt_logconsole.services.log_store import LogStore
from pyqt_logconsole.services.session_tracker import OutputEvent, SessionTracker


def _tracker():
    store = LogStore()
    return SessionTracker(store, clock=lambda: 1_700_000_000_000), store


def test_output_event_becomes_record(qapp):
    tracker, store = _tracker()
    tracker.start_session("abc")

    assert tracker.handle_output(OutputEvent("[WARN] disk almost full", "stdout"))
    record = store.records()[0]
    assert record.level is LogLevel.WARN
    assert record.session_id == "abc"
    assert record.timestamp == 1_700_000_000_000
    assert record.category == "stdout"


def test_blank_output_is_dropped(qapp):
    tracker, store = _tracker()
    assert not tracker.handle_output(OutputEvent("   \n"))
    assert not tracker.handle_output(OutputEvent("flutter: "))
    assert len(store) == 0


def test_protocol_message_parsing(qapp):
    tracker, store = _tracker()
    message = {
        "type": "event",
        "event": "output",
        "body": {"output": "┌───", "category": "stdout", "group": "start"},
    }
    assert tracker.handle_protocol_message(message, session_id="s9")
    record = store.records()[0]
    assert record.group is GroupMarker.START
    assert record.session_id == "s9"


def test_non_output_messages_are_ignored(qapp):
    tracker, store = _tracker()
    assert not tracker.handle_protocol_message({"type": "event", "event": "stopped", "body": {}})
    assert not tracker.handle_protocol_message({"type": "response", "command": "threads"})
    assert not tracker.handle_protocol_message({"type": "event", "event": "output", "body": {}})
    assert len(store) == 0


def test_output_event_defaults():
    event = OutputEvent.from_protocol({"type": "event", "event": "output", "body": {"output": "hi"}})
    assert event.category == "console"
    assert event.group is None


def test_start_session_discards_previous_records(qapp):
    tracker, store = _tracker()
    tracker.start_session("one")
    tracker.handle_line("first")
    tracker.start_session("two")
    tracker.handle_line("second")
    assert [r.message for r in store.records()] == ["second"]
    assert store.records()[0].session_id == "two"


def test_end_session_ignores_other_sessions(qapp):
    tracker, _ = _tracker()
    tracker.start_session("one")
    tracker.end_session("other")
    assert tracker.current_session_id == "one"
    tracker.end_session("one")
    assert tracker.current_session_id is None


def test_records_without_session_are_detached(qapp):
    tracker, store = _tracker()
    tracker.handle_line("stray line", "stderr")
    record = store.records()[0]
    assert record.session_id == "detached"
    assert record.level is LogLevel.ERROR
