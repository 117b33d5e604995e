"""
Vector index interface.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from threadmem.core.typing import JSONDict, Vector


class Metric(Enum):
    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT_PRODUCT = "dot_product"


@dataclass
class VectorMatch:
    """Single query hit."""

    id: str
    score: float
    metadata: JSONDict = field(default_factory=dict)


class VectorIndex(ABC):
    """Abstract vector storage with metadata filters."""

    metric: Metric = Metric.COSINE

    async def connect(self) -> None:
        """Open backend resources."""
        return None

    async def close(self) -> None:
        """Release backend resources."""
        return None

    @abstractmethod
    async def upsert(
        self,
        index_name: str,
        ids: list[str],
        vectors: list[Vector],
        metadata: list[JSONDict] | None = None,
    ) -> None:
        """Insert or replace vectors."""
        ...

    @abstractmethod
    async def query(
        self,
        index_name: str,
        vector: Vector,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Nearest neighbours, best first."""
        ...

    @abstractmethod
    async def delete(self, index_name: str, ids: list[str]) -> None:
        """Remove vectors by id."""
        ...


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity in [-1, 1]; 0 for empty or mismatched vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def matches_filter(metadata: JSONDict, filter: dict[str, Any] | None) -> bool:
    if not filter:
        return True
    return all(metadata.get(key) == value for key, value in filter.items())
