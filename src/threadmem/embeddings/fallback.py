"""Primary embedding provider with a deterministic fallback."""

from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.typing import Vector
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.embeddings.hashing import HashEmbedding

logger = get_logger("embeddings.fallback")


class FallbackEmbedding(EmbeddingProvider):
    """Use primary; on ProviderUnavailableError switch to the fallback for that call.

    Both providers must share a dimension so fallback vectors stay queryable
    in the same index.
    """

    def __init__(self, primary: EmbeddingProvider, fallback: EmbeddingProvider | None = None):
        self.primary = primary
        self.fallback = fallback or HashEmbedding(dimension=primary.dimension)
        if self.fallback.dimension != primary.dimension:
            raise ValueError(
                f"Fallback dimension {self.fallback.dimension} != "
                f"primary dimension {primary.dimension}"
            )
        self.batch_size = primary.batch_size

    @property
    def dimension(self) -> int:
        return self.primary.dimension

    async def embed(self, text: str) -> Vector:
        try:
            return await self.primary.embed(text)
        except ProviderUnavailableError as e:
            logger.warning(f"Primary embedding failed, using fallback: {e}")
            return await self.fallback.embed(text)

    async def embed_batch(self, texts: list[str]) -> list[Vector]:
        try:
            return await self.primary.embed_batch(texts)
        except ProviderUnavailableError as e:
            logger.warning(f"Primary batch embedding failed, using fallback: {e}")
            return await self.fallback.embed_batch(texts)
