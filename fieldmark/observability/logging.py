"""Logging setup and the logging observer for template events."""

from __future__ import annotations

import logging

from fieldmark.observability.events import EventRecorder, TemplateEvent


LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

LOGGED_EVENTS = (
    "template.saved",
    "template.deleted",
    "import.complete",
    "index.update_failed",
    "index.repaired",
)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once for CLI and API entry points."""

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger("fieldmark").setLevel(numeric)


def logging_observer(event: TemplateEvent) -> None:
    payload = event.payload
    if event.name == "template.saved":
        LOGGER.debug("Saved template %s (%s)", payload.get("template_id"), payload.get("name"))
    elif event.name == "template.deleted":
        LOGGER.debug("Deleted template %s", payload.get("template_id"))
    elif event.name == "import.complete":
        LOGGER.info(
            "Imported %s of %s templates (%s failed)",
            payload.get("imported"),
            payload.get("total"),
            payload.get("failed"),
        )
    elif event.name == "index.update_failed":
        LOGGER.error(
            "Template %s was written but the metadata index was not updated: %s",
            payload.get("template_id"),
            payload.get("error"),
        )
    elif event.name == "index.repaired":
        LOGGER.warning(
            "Metadata index repaired: %s entries added, %s removed",
            len(payload.get("added", ())),
            len(payload.get("removed", ())),
        )


def attach_logging_observer(recorder: EventRecorder) -> None:
    recorder.register(logging_observer, LOGGED_EVENTS)
