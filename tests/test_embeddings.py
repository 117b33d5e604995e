"""Tests for embedding providers."""

import asyncio
import math
from types import SimpleNamespace

import pytest

from threadmem.core.config import Settings
from threadmem.core.errors import ProviderUnavailableError
from threadmem.embeddings import (
    FallbackEmbedding,
    HashEmbedding,
    LiteLLMEmbedding,
    SentenceTransformerEmbedding,
    create_embedding_provider,
)
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.vector.base import cosine_similarity


class CountingEmbedding(EmbeddingProvider):
    """Tracks how many embed calls run at once."""

    def __init__(self, batch_size: int):
        self.batch_size = batch_size
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def dimension(self) -> int:
        return 1

    async def embed(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        return [float(len(text))]


class BrokenEmbedding(EmbeddingProvider):
    @property
    def dimension(self) -> int:
        return 384

    async def embed(self, text: str) -> list[float]:
        raise ProviderUnavailableError("model offline")


@pytest.mark.asyncio
async def test_hash_embedding_deterministic():
    """Same text gives the same unit vector."""
    embedder = HashEmbedding()
    first = await embedder.embed("The quick brown fox")
    second = await embedder.embed("The quick brown fox")
    assert first == second
    assert len(first) == 384
    assert math.sqrt(sum(x * x for x in first)) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_hash_embedding_empty_text():
    """Text without words embeds to zeros."""
    vector = await HashEmbedding(dimension=16).embed("?!")
    assert vector == [0.0] * 16


@pytest.mark.asyncio
async def test_hash_embedding_similarity():
    """Shared words bring vectors closer."""
    embedder = HashEmbedding()
    base = await embedder.embed("favourite programming language python")
    related = await embedder.embed("python programming language")
    unrelated = await embedder.embed("sunny weather tomorrow morning")
    assert cosine_similarity(base, related) > cosine_similarity(base, unrelated)


@pytest.mark.asyncio
async def test_embed_batch_chunks_concurrency():
    """Batches never run more than batch_size embeds at once and keep order."""
    embedder = CountingEmbedding(batch_size=4)
    texts = ["x" * n for n in range(1, 11)]
    vectors = await embedder.embed_batch(texts)
    assert vectors == [[float(n)] for n in range(1, 11)]
    assert 1 < embedder.max_in_flight <= 4


@pytest.mark.asyncio
async def test_fallback_embedding():
    """Primary failure falls back to deterministic vectors."""
    embedder = FallbackEmbedding(BrokenEmbedding())
    vector = await embedder.embed("hello world again")
    assert vector == await HashEmbedding().embed("hello world again")

    batch = await embedder.embed_batch(["one thing", "two things"])
    assert len(batch) == 2


def test_fallback_dimension_mismatch():
    """Fallback must match the primary dimension."""
    with pytest.raises(ValueError):
        FallbackEmbedding(BrokenEmbedding(), HashEmbedding(dimension=128))


@pytest.mark.asyncio
async def test_litellm_embedding(monkeypatch):
    """litellm responses are unpacked in order."""
    calls = []

    async def fake_aembedding(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(
            data=[{"embedding": [float(i)] * 3} for i, _ in enumerate(kwargs["input"])]
        )

    monkeypatch.setattr("threadmem.embeddings.litellm_adapter.litellm.aembedding", fake_aembedding)
    embedder = LiteLLMEmbedding(model="text-embedding-3-small", dimension=3, batch_size=2)

    assert await embedder.embed("hi") == [0.0, 0.0, 0.0]
    vectors = await embedder.embed_batch(["a", "b", "c"])
    assert vectors == [[0.0] * 3, [1.0] * 3, [0.0] * 3]
    assert [c["input"] for c in calls[1:]] == [["a", "b"], ["c"]]
    assert calls[0]["model"] == "text-embedding-3-small"


@pytest.mark.asyncio
async def test_litellm_embedding_failure(monkeypatch):
    """Provider errors surface as ProviderUnavailableError."""

    async def failing(**kwargs):
        raise RuntimeError("rate limited")

    monkeypatch.setattr("threadmem.embeddings.litellm_adapter.litellm.aembedding", failing)
    with pytest.raises(ProviderUnavailableError, match="rate limited"):
        await LiteLLMEmbedding(model="m").embed("text")


def test_create_embedding_provider():
    """Settings pick the provider."""
    offline = create_embedding_provider(Settings(_env_file=None))
    assert isinstance(offline, HashEmbedding)

    hosted = create_embedding_provider(
        Settings(embedding_model="text-embedding-3-small", _env_file=None)
    )
    assert isinstance(hosted, FallbackEmbedding)
    assert isinstance(hosted.primary, LiteLLMEmbedding)

    local = create_embedding_provider(
        Settings(embedding_model="sentence-transformers/all-MiniLM-L6-v2", _env_file=None)
    )
    assert isinstance(local, FallbackEmbedding)
    assert isinstance(local.primary, SentenceTransformerEmbedding)
    assert local.primary.model_name == "all-MiniLM-L6-v2"
