"""Tests for the template manager and its construction from configuration."""

import pytest

from fieldmark.configuration import FieldmarkConfig, ObservabilitySettings, StoreSettings
from fieldmark.errors import ValidationError
from fieldmark.observability import get_event_recorder, reset_event_recorder
from fieldmark.store import MemoryRecordStore, SqlRecordStore
from fieldmark.templates import TemplateRepository, storage_key
from fieldmark.templates.service import TemplateManager, create_manager
from fieldmark.types import Template, TemplateField


@pytest.fixture
def manager(repository):
    return TemplateManager(repository)


@pytest.fixture(autouse=True)
def _clean_global_recorder():
    reset_event_recorder()
    yield
    reset_event_recorder()


@pytest.mark.asyncio
async def test_templates_for_url_ranks_specific_first(
    manager, repository, users_template, template_factory, clock
) -> None:
    await repository.save(users_template)
    await repository.save(template_factory(template_id="all", name="Everything", url="*"))
    await repository.save(
        template_factory(template_id="orders", name="Orders", url="https://ex.com/admin/orders/*")
    )

    result = await manager.templates_for_url("https://ex.com/admin/users/123")

    assert [t.id for t in result] == ["t1", "all"]


@pytest.mark.asyncio
async def test_search(manager, repository, users_template, template_factory, clock) -> None:
    await repository.save(users_template)
    await repository.save(template_factory(template_id="o", name="Orders", url="*"))

    assert [t.id for t in await manager.search("order")] == ["o"]


@pytest.mark.asyncio
async def test_validate_and_save_rejects_invalid_templates(manager, memory_store) -> None:
    template = Template(
        id="t1",
        name="Users",
        fields=[TemplateField(id="f1", name="", selector="div[")],
    )

    with pytest.raises(ValidationError) as excinfo:
        await manager.validate_and_save(template)

    assert len(excinfo.value.errors) == 2
    assert str(excinfo.value).startswith("Template is invalid: Field 1: field name is required")
    assert await memory_store.keys() == []


@pytest.mark.asyncio
async def test_validate_and_save_persists_valid_templates(manager, users_template, clock) -> None:
    saved = await manager.validate_and_save(users_template)

    assert (await manager.repository.load("t1")) == saved


@pytest.mark.asyncio
async def test_clone_saves_a_copy(manager, repository, users_template, clock) -> None:
    await repository.save(users_template)

    cloned = await manager.clone("t1")

    assert cloned.name == "Users (copy)"
    assert cloned.fields[0].selector == "#name"
    assert cloned.fields[0].id != "f1"
    assert {t.id for t in await repository.get_all()} == {"t1", cloned.id}


@pytest.mark.asyncio
async def test_clone_of_missing_template_returns_none(manager) -> None:
    assert await manager.clone("missing") is None


@pytest.mark.asyncio
async def test_template_stats_on_empty_store(manager) -> None:
    stats = await manager.template_stats()

    assert stats.total_templates == 0
    assert stats.last_updated is None


@pytest.mark.asyncio
async def test_template_stats(manager, repository, template_factory, clock) -> None:
    fields = [TemplateField(id=f"f{i}", name=f"F{i}", selector=f"#f{i}") for i in range(3)]
    await repository.save(template_factory(template_id="a", fields=fields))
    await repository.save(template_factory(template_id="b", url="*", fields=[]))
    await repository.save(template_factory(template_id="c", url="", fields=fields[:1]))

    stats = await manager.template_stats()

    assert stats.total_templates == 3
    assert stats.total_fields == 4
    assert stats.templates_with_specific_url == 1
    assert stats.universal_templates == 2
    assert stats.average_fields_per_template == 1.3
    assert stats.oldest_template == "2024-01-15T10:30:01.000000Z"
    assert stats.last_updated == "2024-01-15T10:30:03.000000Z"


@pytest.mark.asyncio
async def test_average_fields_rounds_half_up(manager, repository, template_factory, clock) -> None:
    field = TemplateField(id="f1", name="F1", selector="#f1")
    await repository.save(template_factory(template_id="a", fields=[field]))
    for template_id in ("b", "c", "d"):
        await repository.save(template_factory(template_id=template_id, fields=[]))

    stats = await manager.template_stats()

    assert stats.total_fields == 1
    assert stats.average_fields_per_template == 0.3



@pytest.mark.asyncio
async def test_settings_round_trip_through_manager(manager) -> None:
    settings = await manager.settings().load()
    settings.highlight_fields = True

    await manager.settings().save(settings)

    assert (await manager.settings().load()).highlight_fields is True


# ============================================================================
# create_manager
# ============================================================================


@pytest.mark.asyncio
async def test_create_manager_with_memory_backend(tmp_path) -> None:
    config = FieldmarkConfig.with_root(
        tmp_path, store=StoreSettings(backend="memory", quota_bytes=4096)
    )

    manager = await create_manager(config)
    try:
        assert isinstance(manager.store, MemoryRecordStore)
        assert manager.store.quota_bytes == 4096
    finally:
        await manager.close()


@pytest.mark.asyncio
async def test_create_manager_repairs_index_on_startup(tmp_path, users_template) -> None:
    config = FieldmarkConfig.with_root(tmp_path)
    config.storage.ensure_directories()
    store = SqlRecordStore(config.record_store_url)
    await store.set(storage_key(users_template.id), users_template.to_dict())
    await store.close()

    manager = await create_manager(config)
    try:
        assert isinstance(manager.store, SqlRecordStore)
        assert [t.id for t in await manager.repository.get_all()] == ["t1"]
    finally:
        await manager.close()


@pytest.mark.asyncio
async def test_create_manager_can_skip_startup_repair(tmp_path, users_template) -> None:
    config = FieldmarkConfig.with_root(
        tmp_path, store=StoreSettings(repair_index_on_startup=False)
    )
    config.storage.ensure_directories()
    store = SqlRecordStore(config.record_store_url)
    await store.set(storage_key(users_template.id), users_template.to_dict())
    await store.close()

    manager = await create_manager(config)
    try:
        assert await manager.repository.get_all() == []
    finally:
        await manager.close()


@pytest.mark.asyncio
async def test_create_manager_honours_event_switch(tmp_path) -> None:
    config = FieldmarkConfig.with_root(
        tmp_path,
        store=StoreSettings(backend="memory"),
        observability=ObservabilitySettings(enable_template_events=False),
    )
    seen = []

    manager = await create_manager(config)
    try:
        get_event_recorder().register(seen.append)
        await manager.repository.save(Template(id="t1", name="Users"))
    finally:
        await manager.close()

    assert seen == []


def test_repository_exposes_its_store(memory_store) -> None:
    repository = TemplateRepository(memory_store)

    assert repository.store is memory_store
