from __future__ import annotations

import pytest

from fieldmark.errors import StoreError
from fieldmark.store import MemoryRecordStore, SqlRecordStore


QUOTA = 2048


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryRecordStore(quota_bytes=QUOTA)
    return SqlRecordStore(f"sqlite:///{tmp_path / 'records.db'}", quota_bytes=QUOTA)


@pytest.mark.asyncio
async def test_get_returns_none_for_missing_key(store) -> None:
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_set_then_get_returns_value(store) -> None:
    await store.set("template_a", {"id": "a", "fields": [{"id": "f1"}]})

    assert await store.get("template_a") == {"id": "a", "fields": [{"id": "f1"}]}


@pytest.mark.asyncio
async def test_set_replaces_previous_value(store) -> None:
    await store.set("key", {"version": 1})
    await store.set("key", {"version": 2})

    assert await store.get("key") == {"version": 2}


@pytest.mark.asyncio
async def test_get_many_returns_only_present_keys(store) -> None:
    await store.set("a", 1)
    await store.set("b", 2)

    result = await store.get_many(["a", "b", "c"])

    assert result == {"a": 1, "b": 2}


@pytest.mark.asyncio
async def test_get_many_with_no_keys(store) -> None:
    assert await store.get_many([]) == {}


@pytest.mark.asyncio
async def test_remove_is_idempotent(store) -> None:
    await store.set("a", {"x": 1})

    await store.remove("a")
    await store.remove("a")

    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_bytes_in_use_counts_key_and_encoded_value(store) -> None:
    await store.set("a", {"x": 1})
    await store.set("bb", [1, 2])

    assert await store.bytes_in_use(["a"]) == len("a") + len('{"x":1}')
    assert await store.bytes_in_use() == len("a") + len('{"x":1}') + len("bb") + len("[1,2]")
    assert await store.bytes_in_use(["missing"]) == 0


@pytest.mark.asyncio
async def test_write_over_quota_is_rejected_and_store_unchanged(store) -> None:
    await store.set("small", {"x": 1})
    before = await store.bytes_in_use()

    with pytest.raises(StoreError, match="quota"):
        await store.set("big", "x" * QUOTA)

    assert await store.get("big") is None
    assert await store.bytes_in_use() == before


@pytest.mark.asyncio
async def test_replacing_a_key_does_not_double_count_it(store) -> None:
    value = "x" * (QUOTA - 100)
    await store.set("big", value)

    await store.set("big", value)

    assert await store.get("big") == value


@pytest.mark.asyncio
async def test_non_json_value_is_rejected(store) -> None:
    with pytest.raises(StoreError, match="not JSON serializable"):
        await store.set("bad", {"value": object()})


@pytest.mark.asyncio
async def test_keys_filters_by_prefix(store) -> None:
    await store.set("template_b", {})
    await store.set("template_a", {})
    await store.set("templates_metadata", {})
    await store.set("settings", {})

    assert await store.keys("template_") == ["template_a", "template_b"]
    assert len(await store.keys()) == 4


def test_quota_bytes_reports_configured_limit(store) -> None:
    assert store.quota_bytes == QUOTA


@pytest.mark.asyncio
async def test_memory_store_returns_copies() -> None:
    store = MemoryRecordStore()
    original = {"fields": [{"id": "f1"}]}
    await store.set("key", original)

    original["fields"].append({"id": "f2"})
    loaded = await store.get("key")
    loaded["fields"].clear()

    assert await store.get("key") == {"fields": [{"id": "f1"}]}


@pytest.mark.asyncio
async def test_sql_store_persists_across_instances(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'records.db'}"
    first = SqlRecordStore(url)
    await first.set("template_a", {"name": "A"})
    await first.close()

    second = SqlRecordStore(url)

    assert await second.get("template_a") == {"name": "A"}
    await second.close()


@pytest.mark.asyncio
async def test_sql_store_supports_in_memory_url() -> None:
    store = SqlRecordStore("sqlite://")

    await store.set("a", {"x": 1})

    assert await store.get("a") == {"x": 1}
