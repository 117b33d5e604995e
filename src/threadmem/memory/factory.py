"""Construct a memory store from settings."""

from threadmem.core.config import MemoryConfig, Settings, get_settings, load_memory_config
from threadmem.core.errors import ValidationError
from threadmem.core.logging import get_logger
from threadmem.embeddings import create_embedding_provider
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.memory.store import LocalMemoryStore, MemoryStore, UpstashMemoryStore
from threadmem.processors.base import MemoryProcessor

logger = get_logger("memory.factory")


def create_memory_store(
    settings: Settings | None = None,
    config: MemoryConfig | None = None,
    embedder: EmbeddingProvider | None = None,
    processors: list[MemoryProcessor] | None = None,
) -> MemoryStore:
    """Build the store for ``settings.provider``. Call connect() before use."""
    settings = settings or get_settings()
    config = config or load_memory_config(settings.memory_config)
    embedder = embedder or create_embedding_provider(settings)

    if settings.provider == "upstash":
        if not settings.upstash_redis_url or not settings.upstash_redis_token:
            raise ValidationError(
                "Upstash provider requires THREADMEM_UPSTASH_REDIS_URL "
                "and THREADMEM_UPSTASH_REDIS_TOKEN"
            )
        if not settings.upstash_vector_url:
            logger.warning("No Upstash Vector URL configured; recall uses text overlap only")
        return UpstashMemoryStore(
            redis_url=settings.upstash_redis_url,
            redis_token=settings.upstash_redis_token,
            vector_url=settings.upstash_vector_url or None,
            vector_token=settings.upstash_vector_token or None,
            embedder=embedder,
            config=config,
            processors=processors,
            key_prefix=settings.key_prefix,
            index_name=settings.vector_index,
            timeout=settings.http_timeout,
        )

    return LocalMemoryStore(
        settings.db_path,
        embedder=embedder,
        config=config,
        processors=processors,
        key_prefix=settings.key_prefix,
        index_name=settings.vector_index,
    )
