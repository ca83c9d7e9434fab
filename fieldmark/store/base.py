"""
RecordStore: abstract base class for asynchronous key-value storage.

Backends persist JSON documents under string keys with last-write-wins
semantics. No operation is atomic across multiple keys; composite invariants
that span keys belong to the caller.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from fieldmark.errors import StoreError

DEFAULT_QUOTA_BYTES = 5_242_880


def encode_value(key: str, value: Any) -> str:
    """Serialize a value for storage, raising :class:`StoreError` if it is not JSON."""

    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Value for key '{key}' is not JSON serializable: {exc}") from exc


def entry_size(key: str, encoded: str) -> int:
    """Return the number of bytes a key/value pair counts against the quota."""

    return len(key.encode("utf-8")) + len(encoded.encode("utf-8"))


class RecordStore(ABC):
    """
    Abstract base class for record store implementations.

    Every method may raise :class:`~fieldmark.errors.StoreError`; failures are
    never swallowed.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key`` or None when absent."""

    @abstractmethod
    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Return a mapping containing only the keys that are present."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key``; removing an absent key is a no-op."""

    @abstractmethod
    async def bytes_in_use(self, keys: Optional[Iterable[str]] = None) -> int:
        """Return bytes used by ``keys``, or by the whole store when None."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """Return all stored keys starting with ``prefix``."""

    @property
    @abstractmethod
    def quota_bytes(self) -> int:
        """Maximum number of bytes the store accepts."""

    async def close(self) -> None:
        """Release backend resources."""
