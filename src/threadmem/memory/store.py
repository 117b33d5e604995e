"""
Memory store facade.

Agents talk to MemoryStore: threads, messages (recent or query-biased, run
through the processor pipeline) and working memory. Provider variants only
differ in which adapters they construct.
"""

from pathlib import Path
from typing import Any

from threadmem.core.config import MemoryConfig
from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.types import Message, MessageRole, MessageType, Thread, WorkingMemory
from threadmem.core.typing import JSONDict, MessageContent
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.embeddings.hashing import HashEmbedding
from threadmem.memory.keys import DEFAULT_PREFIX, KeyLayout
from threadmem.memory.recall import SemanticRecall
from threadmem.memory.threads import ThreadStore
from threadmem.memory.working import WorkingMemoryStore
from threadmem.processors.base import MemoryProcessor, ProcessorPipeline
from threadmem.processors.registry import build_processors
from threadmem.storage.base import KVStore
from threadmem.storage.sqlite import SQLiteKVStore
from threadmem.storage.upstash import UpstashKVStore
from threadmem.vector.base import VectorIndex
from threadmem.vector.sqlite import SQLiteVectorIndex
from threadmem.vector.upstash import UpstashVectorIndex

logger = get_logger("memory.store")

DEFAULT_INDEX = "mastra-memory"


class MemoryStore:
    """Conversation memory over a KV store and an optional vector index."""

    provider = "custom"

    def __init__(
        self,
        kv: KVStore,
        vector: VectorIndex | None = None,
        embedder: EmbeddingProvider | None = None,
        config: MemoryConfig | None = None,
        processors: list[MemoryProcessor] | None = None,
        key_prefix: str = DEFAULT_PREFIX,
        index_name: str = DEFAULT_INDEX,
    ):
        self.kv = kv
        self.vector = vector
        self.embedder = embedder or HashEmbedding()
        self.config = config or MemoryConfig()
        self.keys = KeyLayout(key_prefix)

        self.threads = ThreadStore(
            kv,
            self.keys,
            self.config,
            vector=vector,
            embedder=self.embedder,
            index_name=index_name,
        )
        self.recall = SemanticRecall(
            self.threads,
            self.embedder,
            vector=vector,
            config=self.config.semantic_recall,
            index_name=index_name,
        )
        self.working_memory = WorkingMemoryStore(kv, self.keys, self.config.working_memory)
        if processors is None:
            processors = build_processors(self.config.processors)
        self.pipeline = ProcessorPipeline(processors)

    async def connect(self) -> None:
        await self.kv.connect()
        if self.vector is not None:
            await self.vector.connect()
        logger.info(f"Memory store ready ({self.provider})")

    async def close(self) -> None:
        await self.threads.drain()
        if self.vector is not None:
            await self.vector.close()
        await self.kv.close()

    # Threads

    async def create_thread(
        self,
        thread_id: str | None = None,
        resource_id: str | None = None,
        title: str | None = None,
        metadata: JSONDict | None = None,
    ) -> Thread:
        return await self.threads.create_thread(thread_id, resource_id, title, metadata)

    async def get_thread(self, thread_id: str, include_messages: bool = False) -> Thread | None:
        return await self.threads.get_thread(thread_id, include_messages=include_messages)

    async def update_thread(
        self,
        thread_id: str,
        title: str | None = None,
        resource_id: str | None = None,
        metadata: JSONDict | None = None,
    ) -> Thread:
        return await self.threads.update_thread(thread_id, title, resource_id, metadata)

    async def delete_thread(self, thread_id: str) -> bool:
        return await self.threads.delete_thread(thread_id)

    async def list_threads(
        self,
        resource_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Thread]:
        return await self.threads.list_threads(resource_id, limit=limit, offset=offset)

    # Messages

    async def add_message(
        self,
        thread_id: str,
        content: MessageContent,
        role: MessageRole | str = MessageRole.USER,
        type: MessageType | str = MessageType.TEXT,
        metadata: JSONDict | None = None,
        name: str | None = None,
    ) -> Message:
        return await self.threads.add_message(
            thread_id,
            content,
            role=MessageRole(role),
            type=MessageType(type),
            metadata=metadata,
            name=name,
        )

    async def get_messages(
        self,
        thread_id: str,
        limit: int | None = None,
        semantic_query: str | None = None,
        before: str | None = None,
        after: str | None = None,
        process: bool = True,
    ) -> list[Message]:
        """Messages for the model: recent, or recalled for ``semantic_query``.

        Semantic recall falls back to recency when the query cannot be
        embedded. The processor pipeline runs unless ``process`` is False.
        """
        limit = limit or self.config.last_messages
        messages = None

        if semantic_query and self.config.semantic_recall.enabled:
            try:
                result = await self.recall.recall(thread_id, semantic_query)
                messages = result.messages
            except ProviderUnavailableError as e:
                logger.warning(f"Semantic recall unavailable, using recent messages: {e}")

        if messages is None:
            messages = await self.threads.get_messages(
                thread_id, limit=limit, before=before, after=after
            )

        return self.pipeline.run(messages) if process else messages

    # Working memory

    async def get_working_memory(self, thread_id: str) -> WorkingMemory | None:
        return await self.working_memory.get(thread_id)

    async def update_working_memory(self, thread_id: str, data: Any) -> Any:
        return await self.working_memory.update(thread_id, data)


class LocalMemoryStore(MemoryStore):
    """SQLite for messages and vectors."""

    provider = "local"

    def __init__(
        self,
        db_path: Path,
        embedder: EmbeddingProvider | None = None,
        config: MemoryConfig | None = None,
        processors: list[MemoryProcessor] | None = None,
        key_prefix: str = DEFAULT_PREFIX,
        index_name: str = DEFAULT_INDEX,
    ):
        vector_path = db_path.with_name(f"{db_path.stem}-vectors{db_path.suffix or '.db'}")
        super().__init__(
            kv=SQLiteKVStore(db_path),
            vector=SQLiteVectorIndex(vector_path),
            embedder=embedder,
            config=config,
            processors=processors,
            key_prefix=key_prefix,
            index_name=index_name,
        )


class UpstashMemoryStore(MemoryStore):
    """Upstash Redis for messages, Upstash Vector (if configured) for recall."""

    provider = "upstash"

    def __init__(
        self,
        redis_url: str,
        redis_token: str,
        vector_url: str | None = None,
        vector_token: str | None = None,
        embedder: EmbeddingProvider | None = None,
        config: MemoryConfig | None = None,
        processors: list[MemoryProcessor] | None = None,
        key_prefix: str = DEFAULT_PREFIX,
        index_name: str = DEFAULT_INDEX,
        timeout: float = 10.0,
    ):
        vector = None
        if vector_url and vector_token:
            vector = UpstashVectorIndex(vector_url, vector_token, timeout=timeout)
        super().__init__(
            kv=UpstashKVStore(redis_url, redis_token, timeout=timeout),
            vector=vector,
            embedder=embedder,
            config=config,
            processors=processors,
            key_prefix=key_prefix,
            index_name=index_name,
        )
