"""
Key-value store interface.

Values are opaque strings. Lists follow Redis semantics: list_push prepends,
list_range takes inclusive start/end indexes where negatives count from the end.
"""

from abc import ABC, abstractmethod


class KVStore(ABC):
    """Abstract key-value and list storage."""

    async def connect(self) -> None:
        """Open backend resources."""
        return None

    async def close(self) -> None:
        """Release backend resources."""
        return None

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store value, optionally expiring after ttl seconds."""
        ...

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get value or None."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key (value or list). Returns True if something was removed."""
        ...

    @abstractmethod
    async def list_push(self, key: str, value: str) -> bool:
        """Prepend value to list."""
        ...

    @abstractmethod
    async def list_remove(self, key: str, value: str) -> int:
        """Remove every occurrence of value from list. Returns the count removed."""
        ...

    @abstractmethod
    async def list_range(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        """Get list slice, head first."""
        ...


def redis_slice(values: list[str], start: int, end: int) -> list[str]:
    """Apply LRANGE index rules to an in-memory list."""
    length = len(values)
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = length + end
    if start >= length or start > end:
        return []
    return values[start : end + 1]
