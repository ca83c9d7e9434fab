"""Factory helpers for record store backends."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import RecordStore
from .memory import MemoryRecordStore
from .sqlite import SqlRecordStore

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from fieldmark.configuration import FieldmarkConfig


LOGGER = logging.getLogger(__name__)


def create_record_store(config: "FieldmarkConfig") -> RecordStore:
    settings = config.store
    if settings.backend == "memory":
        LOGGER.debug("Using in-memory record store")
        return MemoryRecordStore(quota_bytes=settings.quota_bytes)

    if settings.database_url is None:
        config.storage.ensure_directories()
    url = config.record_store_url
    LOGGER.debug("Opening record store at %s", url)
    return SqlRecordStore(url, quota_bytes=settings.quota_bytes)
