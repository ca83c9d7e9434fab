"""Tests for the settings record."""

import pytest

from fieldmark.settings import SETTINGS_KEY, SettingsStore
from fieldmark.types import ExtensionSettings


@pytest.mark.asyncio
async def test_defaults_when_nothing_stored(memory_store) -> None:
    settings = await SettingsStore(memory_store).load()

    assert settings == ExtensionSettings(auto_copy=True, show_notifications=True, highlight_fields=False)


@pytest.mark.asyncio
async def test_save_writes_camel_case_record(memory_store) -> None:
    await SettingsStore(memory_store).save(ExtensionSettings(auto_copy=False))

    assert await memory_store.get(SETTINGS_KEY) == {
        "autoCopy": False,
        "showNotifications": True,
        "highlightFields": False,
    }


@pytest.mark.asyncio
async def test_partial_record_falls_back_to_defaults(memory_store) -> None:
    await memory_store.set(SETTINGS_KEY, {"highlightFields": True})

    settings = await SettingsStore(memory_store).load()

    assert settings.highlight_fields is True
    assert settings.auto_copy is True


@pytest.mark.asyncio
async def test_malformed_record_is_ignored(memory_store) -> None:
    await memory_store.set(SETTINGS_KEY, ["not", "a", "record"])

    assert await SettingsStore(memory_store).load() == ExtensionSettings()
