import os
import logging
import aiosqlite
from abc import ABC, abstractmethod
from typing import Optional, Dict, List

from userstore.core.config import Settings
from userstore.db.schema import KV_SCHEMA

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String-keyed durable blob store the user store persists into"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent"""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Create or replace the value under key"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key; absent keys are ignored"""

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """List keys starting with prefix"""

    async def close(self) -> None:
        """Release any underlying resources"""


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and throwaway runs"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]


class SQLiteKeyValueStore(KeyValueStore):
    """Durable store keeping every key as a row of one SQLite table"""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    def _ensure_directory(self):
        """Ensure the database directory exists"""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    async def connect(self):
        """Open the connection and create the table on first use"""
        if not self._connection:
            self._ensure_directory()
            self._connection = await aiosqlite.connect(self.db_path)
            await self._connection.executescript(KV_SCHEMA)
            await self._connection.commit()
            logger.info(f"Connected key-value store at {self.db_path}")

    async def close(self) -> None:
        """Close database connection"""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def get(self, key: str) -> Optional[str]:
        await self.connect()
        cursor = await self._connection.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        await self.connect()
        await self._connection.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = excluded.updated_at""",
            (key, value)
        )
        await self._connection.commit()

    async def delete(self, key: str) -> None:
        await self.connect()
        await self._connection.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await self._connection.commit()

    async def keys(self, prefix: str = "") -> List[str]:
        await self.connect()
        cursor = await self._connection.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix)
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]


def create_kv_store(settings: Settings) -> KeyValueStore:
    """Build the key-value backend named by KV_BACKEND"""
    backend = settings.KV_BACKEND.lower()
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "sqlite":
        return SQLiteKeyValueStore(settings.KV_DATABASE_PATH)
    raise ValueError(f"Unknown key-value backend: {settings.KV_BACKEND}")
