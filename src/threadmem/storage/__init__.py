"""Key-value storage adapters."""

from threadmem.storage.base import KVStore
from threadmem.storage.sqlite import SQLiteKVStore
from threadmem.storage.upstash import UpstashKVStore

__all__ = ["KVStore", "SQLiteKVStore", "UpstashKVStore"]
