"""Unit tests for the activity log"""

from fastlane.services.activity_log import ActivityLog


def test_log_appends_entry():
    log = ActivityLog()
    entry = log.log("Server started on port 1234")

    assert entry.message == "Server started on port 1234"
    assert entry.timestamp.tzinfo is not None
    assert log.entries() == [entry]


def test_log_is_bounded_to_capacity():
    """Inserting 150 events keeps the latest 100 in order"""
    log = ActivityLog(capacity=100)
    for i in range(150):
        log.log(f"event {i}")

    messages = [e.message for e in log.entries()]
    assert len(messages) == 100
    assert messages[0] == "event 50"
    assert messages[-1] == "event 149"
    assert messages == [f"event {i}" for i in range(50, 150)]


def test_clear_empties_log():
    log = ActivityLog()
    log.log("one")
    log.log("two")

    log.clear()

    assert log.entries() == []
    assert len(log) == 0


def test_entries_is_a_snapshot():
    log = ActivityLog()
    log.log("one")
    snapshot = log.entries()

    log.log("two")

    assert len(snapshot) == 1
    assert len(log.entries()) == 2


def test_public_view_uses_wire_names():
    log = ActivityLog()
    entry = log.log("hello")

    public = entry.to_public()
    assert set(public) == {"timestamp", "message"}
    assert public["message"] == "hello"
