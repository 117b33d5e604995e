"""Embedding provider interface."""

import asyncio
from abc import ABC, abstractmethod

from threadmem.core.typing import Vector

DEFAULT_BATCH_SIZE = 16


class EmbeddingProvider(ABC):
    """Text to fixed-dimension vector."""

    batch_size: int = DEFAULT_BATCH_SIZE

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Vector size."""
        ...

    @abstractmethod
    async def embed(self, text: str) -> Vector:
        """Embed a single text."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[Vector]:
        """Embed texts in chunks.

        Items within a chunk are embedded concurrently; chunks run one after
        another so at most ``batch_size`` requests are in flight.
        """
        vectors: list[Vector] = []
        for start in range(0, len(texts), self.batch_size):
            chunk = texts[start : start + self.batch_size]
            vectors.extend(await asyncio.gather(*(self.embed(t) for t in chunk)))
        return vectors
