"""
Core components.

- Settings: Configuration from env/.env
- MemoryConfig: Per-store memory options (YAML)
- Errors: Exception taxonomy
- Types: Thread, Message, WorkingMemory
"""

from threadmem.core.config import MemoryConfig, Settings, get_settings, load_memory_config
from threadmem.core.errors import (
    NotFoundError,
    PartialFailureError,
    ProviderUnavailableError,
    StorageError,
    ThreadMemoryError,
    ValidationError,
)
from threadmem.core.types import Message, MessageRole, MessageType, Thread, WorkingMemory

__all__ = [
    "MemoryConfig",
    "Message",
    "MessageRole",
    "MessageType",
    "NotFoundError",
    "PartialFailureError",
    "ProviderUnavailableError",
    "Settings",
    "StorageError",
    "Thread",
    "ThreadMemoryError",
    "ValidationError",
    "WorkingMemory",
    "get_settings",
    "load_memory_config",
]
