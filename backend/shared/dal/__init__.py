"""Data access layer: key-value store interface, errors and in-memory backend."""

from shared.dal.errors import CorruptDataError, StorageError, StorageIOError
from shared.dal.kv_store import KeyValueStore
from shared.dal.memory_store import InMemoryKeyValueStore

__all__ = [
    "CorruptDataError",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "StorageError",
    "StorageIOError",
]
