import logging
from datetime import datetime, timezone

import pytest

from fieldmark.observability import (
    EventRecorder,
    attach_logging_observer,
    configure_logging,
    get_event_recorder,
    reset_event_recorder,
    set_event_recorder,
)


def test_scoped_recorder_shares_observers() -> None:
    recorder = EventRecorder(service="templates")
    scoped = recorder.scoped("repository")
    events = []

    recorder.register(events.append)
    scoped.record("template.saved", {"template_id": "t1"})

    assert scoped.service == "templates.repository"
    assert len(events) == 1
    assert events[0].service == "templates.repository"
    assert events[0].payload == {"template_id": "t1"}


def test_disabled_recorder_does_not_dispatch() -> None:
    recorder = EventRecorder()
    events = []
    recorder.register(events.append)

    recorder.scoped("child").enabled = False
    event = recorder.record("template.saved")

    assert events == []
    assert event.name == "template.saved"


def test_temporary_observer_unregisters() -> None:
    recorder = EventRecorder()
    events = []

    with recorder.temporary_observer(events.append):
        recorder.record("inside")
    recorder.record("outside")

    assert [event.name for event in events] == ["inside"]


def test_register_is_idempotent() -> None:
    recorder = EventRecorder()
    events = []
    recorder.register(events.append)
    observer = events.append
    recorder.register(observer)

    recorder.record("once")

    assert len(events) == 1


def test_record_uses_explicit_timestamp() -> None:
    stamp = datetime(2024, 1, 15, tzinfo=timezone.utc)

    assert EventRecorder().record("x", timestamp=stamp).timestamp == stamp


def test_failing_observer_is_logged_and_others_still_run(caplog) -> None:
    recorder = EventRecorder(service="templates")
    events = []

    def broken(event):
        raise RuntimeError("observer down")

    recorder.register(broken)
    recorder.register(events.append)

    with caplog.at_level(logging.ERROR, logger="fieldmark.observability.events"):
        recorder.record("template.saved")

    assert len(events) == 1
    assert "Event observer failed for templates.template.saved" in caplog.text


def test_global_recorder_can_be_replaced() -> None:
    replacement = EventRecorder(service="custom")
    set_event_recorder(replacement)
    try:
        assert get_event_recorder() is replacement
        assert get_event_recorder("api").service == "custom.api"
    finally:
        reset_event_recorder()

    assert get_event_recorder() is not replacement


def test_logging_observer_reports_import_summary(caplog) -> None:
    recorder = EventRecorder(service="templates")
    attach_logging_observer(recorder)

    with caplog.at_level(logging.INFO, logger="fieldmark.observability.logging"):
        recorder.record("import.complete", {"imported": 2, "failed": 1, "total": 3})

    assert "Imported 2 of 3 templates (1 failed)" in caplog.text


def test_logging_observer_reports_index_failures(caplog) -> None:
    recorder = EventRecorder()
    attach_logging_observer(recorder)

    with caplog.at_level(logging.WARNING, logger="fieldmark.observability.logging"):
        recorder.record("index.update_failed", {"template_id": "t1", "error": "disk full"})
        recorder.record("index.repaired", {"added": ["a"], "removed": [], "refreshed": []})

    assert "Template t1 was written but the metadata index was not updated: disk full" in caplog.text
    assert "Metadata index repaired: 1 entries added, 0 removed" in caplog.text


def test_configure_logging_rejects_unknown_level() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("chatty")


def test_configure_logging_sets_package_level() -> None:
    configure_logging("debug")

    assert logging.getLogger("fieldmark").level == logging.DEBUG
    logging.getLogger("fieldmark").setLevel(logging.NOTSET)


def test_observer_can_subscribe_to_selected_events() -> None:
    recorder = EventRecorder(service="templates")
    events = []
    recorder.register(events.append, names={"template.deleted"})

    recorder.record("template.saved", {"template_id": "t1"})
    recorder.record("template.deleted", {"template_id": "t1"})

    assert [event.name for event in events] == ["template.deleted"]
    assert events[0].template_id == "t1"


def test_unregister_unknown_observer_is_harmless() -> None:
    EventRecorder().unregister(print)
