"""
Exception taxonomy.

Storage primitives raise StorageError to the caller. ProviderUnavailableError
and PartialFailureError mark best-effort paths that callers degrade around.
"""


class ThreadMemoryError(Exception):
    """Base class for all memory subsystem errors."""


class NotFoundError(ThreadMemoryError):
    """Thread or message does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ProviderUnavailableError(ThreadMemoryError):
    """Embedding or vector backend could not serve the request."""


class ValidationError(ThreadMemoryError):
    """Malformed configuration or schema."""


class PartialFailureError(ThreadMemoryError):
    """A best-effort side effect failed after the primary write succeeded."""


class StorageError(ThreadMemoryError):
    """Key-value primitive failed."""
