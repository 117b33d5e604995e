"""SQLite vector index: brute-force cosine search for the local provider."""

import json
from pathlib import Path
from typing import Any

import aiosqlite

from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.typing import JSONDict, Vector
from threadmem.vector.base import (
    Metric,
    VectorIndex,
    VectorMatch,
    cosine_similarity,
    matches_filter,
)

logger = get_logger("vector.sqlite")

SCHEMA = """
CREATE TABLE IF NOT EXISTS vectors (
    index_name TEXT NOT NULL,
    id TEXT NOT NULL,
    vector TEXT NOT NULL,    -- JSON array
    metadata TEXT,           -- JSON object
    PRIMARY KEY (index_name, id)
);
"""


class SQLiteVectorIndex(VectorIndex):
    """Vectors stored as JSON rows, scored in Python."""

    metric = Metric.COSINE

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"Connected to vector index: {self.db_path}")

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Vector index not connected. Call connect() first.")
        return self._conn

    async def upsert(
        self,
        index_name: str,
        ids: list[str],
        vectors: list[Vector],
        metadata: list[JSONDict] | None = None,
    ) -> None:
        if len(ids) != len(vectors):
            raise ValueError("ids and vectors must have the same length")
        metadata = metadata or [{} for _ in ids]
        rows = [
            (index_name, id_, json.dumps(vec), json.dumps(meta))
            for id_, vec, meta in zip(ids, vectors, metadata)
        ]
        try:
            await self.conn.executemany(
                "INSERT OR REPLACE INTO vectors (index_name, id, vector, metadata) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise ProviderUnavailableError(f"Vector upsert failed: {e}") from e

    async def query(
        self,
        index_name: str,
        vector: Vector,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        try:
            async with self.conn.execute(
                "SELECT id, vector, metadata FROM vectors WHERE index_name = ?",
                (index_name,),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise ProviderUnavailableError(f"Vector query failed: {e}") from e

        matches = []
        for id_, raw_vector, raw_meta in rows:
            meta = json.loads(raw_meta) if raw_meta else {}
            if not matches_filter(meta, filter):
                continue
            score = cosine_similarity(vector, json.loads(raw_vector))
            matches.append(VectorMatch(id=id_, score=score, metadata=meta))

        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete(self, index_name: str, ids: list[str]) -> None:
        if not ids:
            return
        try:
            await self.conn.executemany(
                "DELETE FROM vectors WHERE index_name = ? AND id = ?",
                [(index_name, id_) for id_ in ids],
            )
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise ProviderUnavailableError(f"Vector delete failed: {e}") from e
