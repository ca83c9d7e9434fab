"""In-memory record store."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from fieldmark.errors import StoreError

from .base import DEFAULT_QUOTA_BYTES, RecordStore, encode_value, entry_size


class MemoryRecordStore(RecordStore):
    """Dict-backed store; values are copied through JSON on every read and write."""

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self._quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    async def get(self, key: str) -> Optional[Any]:
        encoded = self._data.get(key)
        return json.loads(encoded) if encoded is not None else None

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {
            key: json.loads(self._data[key]) for key in keys if key in self._data
        }

    async def set(self, key: str, value: Any) -> None:
        encoded = encode_value(key, value)
        used = self._usage(exclude=key)
        if used + entry_size(key, encoded) > self._quota_bytes:
            raise StoreError(
                f"QUOTA_BYTES quota exceeded writing '{key}' "
                f"({self._quota_bytes} bytes available)"
            )
        self._data[key] = encoded

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def bytes_in_use(self, keys: Optional[Iterable[str]] = None) -> int:
        if keys is None:
            return self._usage()
        return sum(
            entry_size(key, self._data[key]) for key in set(keys) if key in self._data
        )

    async def keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self._data if key.startswith(prefix))

    def _usage(self, *, exclude: str | None = None) -> int:
        return sum(
            entry_size(key, encoded)
            for key, encoded in self._data.items()
            if key != exclude
        )
