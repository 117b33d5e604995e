"""
Local sentence-transformers models.

Requires the ``local-embeddings`` extra. The model loads lazily on first use
and encoding runs in a worker thread.
"""

import asyncio
from typing import Any

from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.typing import Vector
from threadmem.embeddings.base import DEFAULT_BATCH_SIZE, EmbeddingProvider

logger = get_logger("embeddings.local")


class SentenceTransformerEmbedding(EmbeddingProvider):
    """Embeddings from a local transformer model."""

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(
        self,
        model_name: str | None = None,
        dimension: int = 384,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.model_name = model_name or self.DEFAULT_MODEL
        self._dimension = dimension
        self.batch_size = batch_size
        self._model: Any = None

    @property
    def model(self) -> Any:
        """Lazy load the model."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ProviderUnavailableError(
                    "sentence-transformers not installed; "
                    "install the local-embeddings extra"
                ) from e
            self._model = SentenceTransformer(self.model_name)
            self._dimension = self._model.get_sentence_embedding_dimension() or self._dimension
            logger.info(f"Loaded embedding model: {self.model_name}")
        return self._model

    @property
    def dimension(self) -> int:
        return self._dimension

    def _encode(self, texts: list[str]) -> list[Vector]:
        embeddings = self.model.encode(texts, convert_to_numpy=True)
        return [e.tolist() for e in embeddings]

    async def embed(self, text: str) -> Vector:
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[Vector]:
        vectors: list[Vector] = []
        for start in range(0, len(texts), self.batch_size):
            chunk = texts[start : start + self.batch_size]
            try:
                vectors.extend(await asyncio.to_thread(self._encode, chunk))
            except ProviderUnavailableError:
                raise
            except Exception as e:
                raise ProviderUnavailableError(f"Local embedding failed: {e}") from e
        return vectors
