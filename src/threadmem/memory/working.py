"""Per-thread working memory scratchpad."""

import json
from typing import Any

from threadmem.core.config import WorkingMemoryConfig
from threadmem.core.logging import get_logger
from threadmem.core.types import WorkingMemory, utc_now
from threadmem.core.typing import JSONDict
from threadmem.memory.keys import KeyLayout
from threadmem.storage.base import KVStore

logger = get_logger("memory.working")


def default_template() -> JSONDict:
    return {
        "user": {"preferences": {}, "context": {}},
        "conversation": {"topics": [], "lastUpdated": utc_now().isoformat()},
    }


class WorkingMemoryStore:
    """Lazily created, wholesale-overwritten blob per thread."""

    def __init__(self, kv: KVStore, keys: KeyLayout, config: WorkingMemoryConfig | None = None):
        self.kv = kv
        self.keys = keys
        self.config = config or WorkingMemoryConfig()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def initial_data(self) -> Any:
        """Template contents: parsed JSON, free text, or the default structure."""
        template = self.config.template
        if template is None or not template.strip():
            return default_template()

        stripped = template.strip()
        if stripped[0] not in "{[":
            return template
        try:
            return json.loads(stripped)
        except json.JSONDecodeError as e:
            logger.warning(f"Working memory template is not valid JSON, using default: {e}")
            return default_template()

    async def get(self, thread_id: str) -> WorkingMemory | None:
        """Stored working memory, created from the template on first read."""
        if not self.enabled:
            return None

        raw = await self.kv.get(self.keys.working_memory(thread_id))
        if raw is not None:
            try:
                return WorkingMemory.from_dict(json.loads(raw))
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                logger.warning(f"Corrupt working memory for {thread_id}, resetting: {e}")

        memory = WorkingMemory(thread_id=thread_id, data=self.initial_data())
        await self._save(memory)
        return memory

    async def update(self, thread_id: str, data: Any) -> Any:
        """Replace working memory and return the stored record.

        When disabled, nothing is stored and ``data`` comes back unchanged.
        """
        if not self.enabled:
            return data
        memory = WorkingMemory(thread_id=thread_id, data=data, last_updated=utc_now())
        await self._save(memory)
        return memory

    async def clear(self, thread_id: str) -> bool:
        return await self.kv.delete(self.keys.working_memory(thread_id))

    async def _save(self, memory: WorkingMemory) -> None:
        await self.kv.set(
            self.keys.working_memory(memory.thread_id),
            json.dumps(memory.to_dict(), default=str),
        )
