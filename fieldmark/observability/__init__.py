"""Observability primitives for fieldmark services."""

from fieldmark.observability.events import (
    EventObserver,
    EventRecorder,
    TemplateEvent,
    get_event_recorder,
    reset_event_recorder,
    set_event_recorder,
)
from fieldmark.observability.logging import (
    attach_logging_observer,
    configure_logging,
    logging_observer,
)

__all__ = [
    "EventObserver",
    "EventRecorder",
    "TemplateEvent",
    "attach_logging_observer",
    "configure_logging",
    "get_event_recorder",
    "logging_observer",
    "reset_event_recorder",
    "set_event_recorder",
]
