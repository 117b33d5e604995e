"""
Deterministic offline embeddings.

Each word is hashed to a bucket (md5) with a sign (sha256) and weighted by
term frequency; the result is L2-normalized. Same text, same vector, on any
machine, which keeps semantic recall usable without a model.
"""

import hashlib
import math
import re

from threadmem.core.typing import Vector
from threadmem.embeddings.base import DEFAULT_BATCH_SIZE, EmbeddingProvider

WORD_RE = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    return [w for w in WORD_RE.findall(text.lower()) if len(w) > 2]


class HashEmbedding(EmbeddingProvider):
    """Hashed bag-of-words vectors."""

    def __init__(self, dimension: int = 384, batch_size: int = DEFAULT_BATCH_SIZE):
        self._dimension = dimension
        self.batch_size = batch_size

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_sync(self, text: str) -> Vector:
        vector = [0.0] * self._dimension
        words = tokenize(text)
        if not words:
            return vector

        for word in words:
            encoded = word.encode()
            index = int(hashlib.md5(encoded).hexdigest(), 16) % self._dimension
            sign = 1.0 if int(hashlib.sha256(encoded).hexdigest(), 16) % 2 == 0 else -1.0
            vector[index] += sign / len(words)

        magnitude = math.sqrt(sum(x * x for x in vector))
        if magnitude == 0:
            return vector
        return [x / magnitude for x in vector]

    async def embed(self, text: str) -> Vector:
        return self.embed_sync(text)

    async def embed_batch(self, texts: list[str]) -> list[Vector]:
        return [self.embed_sync(t) for t in texts]
