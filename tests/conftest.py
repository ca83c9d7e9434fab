"""Pytest configuration and shared fixtures for fieldmark tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Tuple

import pytest

from fieldmark.errors import StoreError
from fieldmark.observability import EventRecorder, TemplateEvent
from fieldmark.store import MemoryRecordStore
from fieldmark.templates import TemplateRepository
from fieldmark.types import Template, TemplateField


class FlakyStore(MemoryRecordStore):
    """Memory store that can be told to reject writes to specific keys."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_keys: set[str] = set()
        self.calls: List[Tuple[str, Any]] = []

    async def get(self, key):
        self.calls.append(("get", key))
        return await super().get(key)

    async def get_many(self, keys):
        keys = list(keys)
        self.calls.append(("get_many", tuple(keys)))
        return await super().get_many(keys)

    async def set(self, key, value):
        self.calls.append(("set", key))
        if key in self.fail_keys:
            raise StoreError(f"write to {key} rejected")
        await super().set(key, value)

    async def remove(self, key):
        self.calls.append(("remove", key))
        if key in self.fail_keys:
            raise StoreError(f"remove of {key} rejected")
        await super().remove(key)


class Clock:
    """Deterministic replacement for ``utc_now_iso``; advances one second per call."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> str:
        self.current += timedelta(seconds=1)
        return self.current.isoformat(timespec="microseconds").replace("+00:00", "Z")


def make_template(
    template_id: str = "t1",
    name: str = "Users",
    url: str | None = "https://ex.com/admin/users/*",
    updated_at: str | None = None,
    fields: List[TemplateField] | None = None,
) -> Template:
    """Helper to create test Template objects."""
    return Template(
        id=template_id,
        name=name,
        url=url,
        fields=fields
        if fields is not None
        else [TemplateField(id="f1", name="Name", selector="#name", data_type="value")],
        updated_at=updated_at,
    )


@pytest.fixture
def memory_store():
    """Provide an empty in-memory record store."""
    return MemoryRecordStore()


@pytest.fixture
def flaky_store():
    """Provide a memory store with write failure injection and call tracking."""
    return FlakyStore()


@pytest.fixture
def recorder():
    return EventRecorder(service="templates")


@pytest.fixture
def events(recorder) -> List[TemplateEvent]:
    """Collect events published through the test recorder."""
    collected: List[TemplateEvent] = []
    recorder.register(collected.append)
    return collected


@pytest.fixture
def repository(memory_store, recorder):
    return TemplateRepository(memory_store, recorder=recorder)


@pytest.fixture
def flaky_repository(flaky_store, recorder):
    return TemplateRepository(flaky_store, recorder=recorder)


@pytest.fixture
def clock(monkeypatch):
    """Make repository timestamps deterministic and strictly increasing."""
    fake = Clock(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
    monkeypatch.setattr("fieldmark.templates.repository.utc_now_iso", fake)
    return fake


@pytest.fixture
def users_template():
    """The template from the admin users page example."""
    return make_template()


@pytest.fixture
def template_factory():
    """Provide the ``make_template`` helper to tests."""
    return make_template
