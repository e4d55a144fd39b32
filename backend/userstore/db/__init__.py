from .kv_store import (
    KeyValueStore,
    InMemoryKeyValueStore,
    SQLiteKeyValueStore,
    create_kv_store
)

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "create_kv_store"
]
