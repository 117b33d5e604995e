"""Hosted embedding models through litellm."""

from typing import Any

import litellm

from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.typing import Vector
from threadmem.embeddings.base import DEFAULT_BATCH_SIZE, EmbeddingProvider

logger = get_logger("embeddings.litellm")

litellm.suppress_debug_info = True


def _vector(item: Any) -> Vector:
    # litellm returns dicts for most providers, objects for some
    if isinstance(item, dict):
        return list(item["embedding"])
    return list(item.embedding)


class LiteLLMEmbedding(EmbeddingProvider):
    """Embeddings via litellm.aembedding (OpenAI, Cohere, Ollama, ...)."""

    def __init__(
        self,
        model: str,
        dimension: int = 384,
        api_key: str | None = None,
        api_base: str | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.model = model
        self._dimension = dimension
        self.api_key = api_key
        self.api_base = api_base
        self.batch_size = batch_size

    @property
    def dimension(self) -> int:
        return self._dimension

    async def _request(self, texts: list[str]) -> list[Vector]:
        kwargs: dict[str, Any] = {"model": self.model, "input": texts}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = await litellm.aembedding(**kwargs)
        except Exception as e:
            raise ProviderUnavailableError(f"Embedding model {self.model} failed: {e}") from e

        vectors = [_vector(item) for item in response.data]
        if len(vectors) != len(texts):
            raise ProviderUnavailableError(
                f"Embedding model {self.model} returned {len(vectors)} vectors "
                f"for {len(texts)} inputs"
            )
        return vectors

    async def embed(self, text: str) -> Vector:
        return (await self._request([text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[Vector]:
        # One request per chunk; the API batches server-side
        vectors: list[Vector] = []
        for start in range(0, len(texts), self.batch_size):
            vectors.extend(await self._request(texts[start : start + self.batch_size]))
        return vectors
