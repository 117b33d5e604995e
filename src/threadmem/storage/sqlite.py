"""SQLite key-value store for the local provider."""

import time
from pathlib import Path

import aiosqlite

from threadmem.core.errors import StorageError
from threadmem.core.logging import get_logger
from threadmem.storage.base import KVStore, redis_slice

logger = get_logger("storage.sqlite")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL  -- unix time, NULL = never
);

-- Lists: higher seq = closer to head
CREATE TABLE IF NOT EXISTS kv_lists (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    value TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_kv_lists_key ON kv_lists(key, seq);
"""


class SQLiteKVStore(KVStore):
    """aiosqlite-backed KV store with Redis-like lists."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"Connected to KV store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("KV store not connected. Call connect() first.")
        return self._conn

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        expires_at = time.time() + ttl if ttl else None
        try:
            await self.conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
                (key, value, expires_at),
            )
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"SET {key} failed: {e}") from e
        return True

    async def get(self, key: str) -> str | None:
        try:
            async with self.conn.execute(
                "SELECT value, expires_at FROM kv WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"GET {key} failed: {e}") from e

        if not row:
            return None
        value, expires_at = row
        if expires_at is not None and expires_at <= time.time():
            await self.delete(key)
            return None
        return value

    async def delete(self, key: str) -> bool:
        try:
            cursor = await self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            removed = cursor.rowcount
            cursor = await self.conn.execute("DELETE FROM kv_lists WHERE key = ?", (key,))
            removed += cursor.rowcount
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"DEL {key} failed: {e}") from e
        return removed > 0

    async def list_push(self, key: str, value: str) -> bool:
        try:
            await self.conn.execute(
                "INSERT INTO kv_lists (key, value) VALUES (?, ?)", (key, value)
            )
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"LPUSH {key} failed: {e}") from e
        return True

    async def list_remove(self, key: str, value: str) -> int:
        try:
            cursor = await self.conn.execute(
                "DELETE FROM kv_lists WHERE key = ? AND value = ?", (key, value)
            )
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"LREM {key} failed: {e}") from e
        return cursor.rowcount

    async def list_range(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        try:
            async with self.conn.execute(
                "SELECT value FROM kv_lists WHERE key = ? ORDER BY seq DESC", (key,)
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"LRANGE {key} failed: {e}") from e
        return redis_slice([row[0] for row in rows], start, end)
