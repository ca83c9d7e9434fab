"""Record store backends for template persistence."""

from .base import DEFAULT_QUOTA_BYTES, RecordStore
from .factory import create_record_store
from .memory import MemoryRecordStore
from .sqlite import SqlRecordStore

__all__ = [
    "DEFAULT_QUOTA_BYTES",
    "MemoryRecordStore",
    "RecordStore",
    "SqlRecordStore",
    "create_record_store",
]
