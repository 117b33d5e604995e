"""
Embedding providers.

- HashEmbedding: deterministic offline vectors, no model needed
- LiteLLMEmbedding: hosted embedding models through litellm
- SentenceTransformerEmbedding: local transformer models (optional extra)
- FallbackEmbedding: primary provider backed by HashEmbedding
"""

from threadmem.core.config import Settings
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.embeddings.fallback import FallbackEmbedding
from threadmem.embeddings.hashing import HashEmbedding
from threadmem.embeddings.litellm_adapter import LiteLLMEmbedding
from threadmem.embeddings.local import SentenceTransformerEmbedding

SENTENCE_TRANSFORMERS_PREFIX = "sentence-transformers/"


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Pick an embedding provider from settings."""
    model = settings.embedding_model.strip()
    dimension = settings.embedding_dimension
    batch_size = settings.embedding_batch_size

    if not model:
        return HashEmbedding(dimension=dimension, batch_size=batch_size)

    if model.startswith(SENTENCE_TRANSFORMERS_PREFIX):
        primary: EmbeddingProvider = SentenceTransformerEmbedding(
            model_name=model.removeprefix(SENTENCE_TRANSFORMERS_PREFIX),
            dimension=dimension,
            batch_size=batch_size,
        )
    else:
        primary = LiteLLMEmbedding(model=model, dimension=dimension, batch_size=batch_size)

    return FallbackEmbedding(primary, HashEmbedding(dimension=dimension, batch_size=batch_size))


__all__ = [
    "EmbeddingProvider",
    "FallbackEmbedding",
    "HashEmbedding",
    "LiteLLMEmbedding",
    "SentenceTransformerEmbedding",
    "create_embedding_provider",
]
