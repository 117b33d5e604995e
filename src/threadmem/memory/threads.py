"""
Thread and message store.

Threads and messages are JSON records under single keys; each thread keeps a
list of message ids (newest at the head). Reads return messages in
chronological order, sorted by created_at with append order breaking ties,
so interleaved concurrent appends still read back correctly.

When a vector index is attached, every appended message is embedded and
mirrored in a background task. Mirror failures are logged, never raised.
"""

import asyncio
import json

from threadmem.core.config import MemoryConfig
from threadmem.core.errors import NotFoundError, PartialFailureError
from threadmem.core.logging import get_logger
from threadmem.core.types import (
    MemoryRecord,
    Message,
    MessageRole,
    MessageType,
    Thread,
    new_id,
    utc_now,
)
from threadmem.core.typing import JSONDict, MessageContent
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.memory.keys import KeyLayout
from threadmem.storage.base import KVStore
from threadmem.vector.base import VectorIndex

logger = get_logger("memory.threads")


def chronological(messages: list[Message]) -> list[Message]:
    """Stable sort by creation time."""
    return sorted(messages, key=lambda m: m.created_at)


class ThreadStore:
    """CRUD for threads and messages on top of a KVStore."""

    def __init__(
        self,
        kv: KVStore,
        keys: KeyLayout,
        config: MemoryConfig | None = None,
        vector: VectorIndex | None = None,
        embedder: EmbeddingProvider | None = None,
        index_name: str = "mastra-memory",
    ):
        self.kv = kv
        self.keys = keys
        self.config = config or MemoryConfig()
        self.vector = vector
        self.embedder = embedder
        self.index_name = index_name
        self._pending: set[asyncio.Task] = set()
        # Serializes read-modify-write of thread records within this process
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def mirrors_vectors(self) -> bool:
        return (
            self.config.semantic_recall.enabled
            and self.vector is not None
            and self.embedder is not None
        )

    # Threads

    def _lock(self, thread_id: str) -> asyncio.Lock:
        return self._locks.setdefault(thread_id, asyncio.Lock())

    async def create_thread(
        self,
        thread_id: str | None = None,
        resource_id: str | None = None,
        title: str | None = None,
        metadata: JSONDict | None = None,
    ) -> Thread:
        """Create a thread; an existing thread with the same id is returned as-is."""
        if thread_id:
            existing = await self.get_thread(thread_id)
            if existing:
                return existing

        now = utc_now()
        thread = Thread(
            id=thread_id or new_id(),
            resource_id=resource_id,
            title=title,
            created_at=now,
            updated_at=now,
            metadata=metadata or {},
        )
        await self._save_thread(thread)
        await self.kv.list_push(self.keys.threads(), thread.id)
        logger.debug(f"Created thread {thread.id}")
        return thread

    async def get_thread(self, thread_id: str, include_messages: bool = False) -> Thread | None:
        raw = await self.kv.get(self.keys.thread(thread_id))
        if raw is None:
            return None
        thread = Thread.from_dict(json.loads(raw))
        if include_messages:
            thread.messages = await self.get_messages(thread_id)
        return thread

    async def require_thread(self, thread_id: str) -> Thread:
        thread = await self.get_thread(thread_id)
        if thread is None:
            raise NotFoundError("thread", thread_id)
        return thread

    async def update_thread(
        self,
        thread_id: str,
        title: str | None = None,
        resource_id: str | None = None,
        metadata: JSONDict | None = None,
    ) -> Thread:
        """Update title/resource and merge metadata."""
        async with self._lock(thread_id):
            thread = await self.require_thread(thread_id)
            if title is not None:
                thread.title = title
            if resource_id is not None:
                thread.resource_id = resource_id
            if metadata:
                thread.metadata = {**thread.metadata, **metadata}
            thread.updated_at = utc_now()
            await self._save_thread(thread)
        return thread

    async def delete_thread(self, thread_id: str) -> bool:
        """Delete a thread, its messages, working memory and vector mirrors.

        KV deletions are not rolled back if the vector cleanup fails.
        """
        thread = await self.get_thread(thread_id)
        if thread is None:
            return False

        await self.drain()
        message_ids = await self.message_ids(thread_id)
        for message_id in message_ids:
            await self.kv.delete(self.keys.message(message_id))
        await self.kv.delete(self.keys.thread_messages(thread_id))
        await self.kv.delete(self.keys.working_memory(thread_id))
        await self.kv.delete(self.keys.thread(thread_id))
        await self.kv.list_remove(self.keys.threads(), thread_id)
        self._locks.pop(thread_id, None)

        try:
            await self._delete_vectors(message_ids)
        except PartialFailureError as e:
            logger.warning(str(e))

        logger.info(f"Deleted thread {thread_id} ({len(message_ids)} messages)")
        return True

    async def list_threads(
        self,
        resource_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Thread]:
        """Known threads, most recently updated first.

        ``offset``/``limit`` page through the sorted, filtered result.
        """
        if offset < 0 or (limit is not None and limit < 0):
            raise ValueError("limit and offset must be non-negative")
        seen: set[str] = set()
        threads = []
        for thread_id in await self.kv.list_range(self.keys.threads()):
            if thread_id in seen:
                continue
            seen.add(thread_id)
            thread = await self.get_thread(thread_id)
            # Expired, or deleted by another process mid-listing
            if thread is None:
                continue
            if resource_id is not None and thread.resource_id != resource_id:
                continue
            threads.append(thread)
        threads.sort(key=lambda t: t.updated_at, reverse=True)
        end = offset + limit if limit is not None else None
        return threads[offset:end]

    async def _save_thread(self, thread: Thread) -> None:
        await self.kv.set(self.keys.thread(thread.id), json.dumps(thread.to_dict()))

    # Messages

    async def add_message(
        self,
        thread_id: str,
        content: MessageContent,
        role: MessageRole = MessageRole.USER,
        type: MessageType = MessageType.TEXT,
        metadata: JSONDict | None = None,
        name: str | None = None,
        message_id: str | None = None,
    ) -> Message:
        """Append a message to a thread.

        Missing threads are created when ``auto_create_threads`` is set,
        otherwise NotFoundError is raised.
        """
        thread = await self.get_thread(thread_id)
        if thread is None:
            if not self.config.auto_create_threads:
                raise NotFoundError("thread", thread_id)
            thread = await self.create_thread(thread_id=thread_id)

        message = Message(
            id=message_id or new_id(),
            thread_id=thread_id,
            role=role,
            type=type,
            content=content,
            name=name,
            created_at=utc_now(),
            metadata=metadata or {},
        )
        await self.kv.set(
            self.keys.message(message.id),
            json.dumps(message.to_dict()),
            ttl=self.config.message_ttl,
        )
        await self.kv.list_push(self.keys.thread_messages(thread_id), message.id)

        # Re-read so concurrent metadata edits are not overwritten
        async with self._lock(thread_id):
            latest = await self.get_thread(thread_id) or thread
            latest.updated_at = max(latest.updated_at, message.created_at)
            await self._save_thread(latest)

        if self.mirrors_vectors:
            self._schedule_mirror(message)
        return message

    async def get_message(self, message_id: str) -> Message | None:
        raw = await self.kv.get(self.keys.message(message_id))
        if raw is None:
            return None
        return Message.from_dict(json.loads(raw))

    async def message_ids(self, thread_id: str, newest: int | None = None) -> list[str]:
        """Message ids in append order, optionally only the newest N."""
        end = newest - 1 if newest else -1
        ids = await self.kv.list_range(self.keys.thread_messages(thread_id), 0, end)
        ids.reverse()
        return ids

    async def load_messages(self, message_ids: list[str]) -> list[Message]:
        """Fetch messages by id, skipping expired or missing keys."""
        loaded = await asyncio.gather(*(self.get_message(mid) for mid in message_ids))
        messages = []
        for message_id, message in zip(message_ids, loaded):
            if message is None:
                logger.debug(f"Message {message_id} listed but missing")
                continue
            messages.append(message)
        return messages

    async def get_messages(
        self,
        thread_id: str,
        limit: int | None = None,
        before: str | None = None,
        after: str | None = None,
    ) -> list[Message]:
        """Raw chronological messages, no processors applied.

        ``before``/``after`` are exclusive message-id cursors; ``limit`` keeps
        the most recent messages of the bounded window.
        """
        if before is None and after is None:
            messages = chronological(
                await self.load_messages(await self.message_ids(thread_id, newest=limit))
            )
            return messages[-limit:] if limit else messages

        messages = chronological(await self.load_messages(await self.message_ids(thread_id)))
        positions = {m.id: i for i, m in enumerate(messages)}
        start, end = 0, len(messages)
        if after is not None:
            if after not in positions:
                raise NotFoundError("message", after)
            start = positions[after] + 1
        if before is not None:
            if before not in positions:
                raise NotFoundError("message", before)
            end = positions[before]
        window = messages[start:end]
        return window[-limit:] if limit else window

    # Vector mirroring

    def _schedule_mirror(self, message: Message) -> None:
        task = asyncio.create_task(self._mirror(message))
        self._pending.add(task)
        task.add_done_callback(self._on_mirror_done)

    def _on_mirror_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(str(error))

    async def _mirror(self, message: Message) -> None:
        assert self.vector is not None and self.embedder is not None
        try:
            vector = await self.embedder.embed(message.text)
            record = MemoryRecord.from_message(message, vector)
            await self.vector.upsert(self.index_name, [record.id], [record.vector], [record.metadata])
        except Exception as e:
            raise PartialFailureError(
                f"Vector mirror failed for message {message.id}: {e}"
            ) from e

    async def mirror_messages(self, messages: list[Message]) -> int:
        """Embed and upsert messages in batches. Returns the number mirrored."""
        if not self.mirrors_vectors or not messages:
            return 0
        assert self.vector is not None and self.embedder is not None
        vectors = await self.embedder.embed_batch([m.text for m in messages])
        records = [MemoryRecord.from_message(m, v) for m, v in zip(messages, vectors)]
        await self.vector.upsert(
            self.index_name,
            [r.id for r in records],
            [r.vector for r in records],
            [r.metadata for r in records],
        )
        return len(records)

    async def drain(self) -> None:
        """Wait for in-flight vector mirrors."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _delete_vectors(self, message_ids: list[str]) -> None:
        if self.vector is None or not message_ids:
            return
        try:
            await self.vector.delete(self.index_name, message_ids)
        except Exception as e:
            raise PartialFailureError(
                f"Vector cleanup failed for {len(message_ids)} messages: {e}"
            ) from e
