"""
Conversation memory.

- ThreadStore: threads and messages on a KV store
- SemanticRecall: query-driven retrieval with fallbacks
- WorkingMemoryStore: per-thread scratchpad
- MemoryStore: facade, with LocalMemoryStore / UpstashMemoryStore variants
"""

from threadmem.memory.factory import create_memory_store
from threadmem.memory.keys import KeyLayout
from threadmem.memory.recall import RecallResult, SemanticRecall
from threadmem.memory.store import LocalMemoryStore, MemoryStore, UpstashMemoryStore
from threadmem.memory.threads import ThreadStore
from threadmem.memory.working import WorkingMemoryStore

__all__ = [
    "KeyLayout",
    "LocalMemoryStore",
    "MemoryStore",
    "RecallResult",
    "SemanticRecall",
    "ThreadStore",
    "UpstashMemoryStore",
    "WorkingMemoryStore",
    "create_memory_store",
]
