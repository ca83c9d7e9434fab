"""Persistence of the UI settings record."""

from __future__ import annotations

from fieldmark.store.base import RecordStore
from fieldmark.types import ExtensionSettings

SETTINGS_KEY = "settings"


class SettingsStore:
    """Read and write :class:`ExtensionSettings` under the ``settings`` key."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def load(self) -> ExtensionSettings:
        raw = await self._store.get(SETTINGS_KEY)
        return ExtensionSettings.from_dict(raw if isinstance(raw, dict) else None)

    async def save(self, settings: ExtensionSettings) -> ExtensionSettings:
        await self._store.set(SETTINGS_KEY, settings.to_dict())
        return settings
