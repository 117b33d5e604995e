"""Vector index adapters."""

from threadmem.vector.base import VectorIndex, VectorMatch
from threadmem.vector.sqlite import SQLiteVectorIndex
from threadmem.vector.upstash import UpstashVectorIndex

__all__ = ["SQLiteVectorIndex", "UpstashVectorIndex", "VectorIndex", "VectorMatch"]
