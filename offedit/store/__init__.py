from __future__ import annotations

from .base import RecordStore, size_of
from .framing import join_records, split_records
from .memory import MemoryRecordStore
from .redis_store import RedisRecordStore
from .sql_store import SqlRecordStore

__all__ = [
    "RecordStore",
    "MemoryRecordStore",
    "RedisRecordStore",
    "SqlRecordStore",
    "size_of",
    "join_records",
    "split_records",
]
