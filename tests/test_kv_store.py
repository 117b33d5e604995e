"""Tests for key-value store adapters."""

import json
import os
import time
from pathlib import Path

import httpx
import pytest

from threadmem.core.errors import StorageError
from threadmem.storage.base import redis_slice
from threadmem.storage.sqlite import SQLiteKVStore
from threadmem.storage.upstash import UpstashKVStore


@pytest.fixture
async def kv_store(tmp_path: Path):
    """Create a temporary KV store."""
    store = SQLiteKVStore(tmp_path / "kv.db")
    await store.connect()
    yield store
    await store.close()


@pytest.mark.asyncio
async def test_set_get(kv_store: SQLiteKVStore):
    """Values round-trip and can be overwritten."""
    assert await kv_store.set("a", "1")
    assert await kv_store.get("a") == "1"
    await kv_store.set("a", "2")
    assert await kv_store.get("a") == "2"


@pytest.mark.asyncio
async def test_get_missing(kv_store: SQLiteKVStore):
    """Missing keys return None."""
    assert await kv_store.get("nope") is None


@pytest.mark.asyncio
async def test_delete(kv_store: SQLiteKVStore):
    """Delete removes values and lists."""
    await kv_store.set("a", "1")
    await kv_store.list_push("l", "x")
    assert await kv_store.delete("a")
    assert await kv_store.delete("l")
    assert await kv_store.get("a") is None
    assert await kv_store.list_range("l") == []
    assert not await kv_store.delete("a")


@pytest.mark.asyncio
async def test_list_push_prepends(kv_store: SQLiteKVStore):
    """Lists behave like Redis LPUSH/LRANGE."""
    for value in ["a", "b", "c"]:
        await kv_store.list_push("l", value)

    assert await kv_store.list_range("l", 0, -1) == ["c", "b", "a"]
    assert await kv_store.list_range("l", 0, 1) == ["c", "b"]
    assert await kv_store.list_range("l", -2, -1) == ["b", "a"]
    assert await kv_store.list_range("l", 5, 10) == []


@pytest.mark.asyncio
async def test_list_remove(kv_store: SQLiteKVStore):
    """Every occurrence of the value is removed; order of the rest is kept."""
    for value in ["a", "b", "a", "c"]:
        await kv_store.list_push("l", value)

    assert await kv_store.list_remove("l", "a") == 2
    assert await kv_store.list_range("l") == ["c", "b"]
    assert await kv_store.list_remove("l", "missing") == 0


@pytest.mark.asyncio
async def test_lists_are_per_key(kv_store: SQLiteKVStore):
    """Lists under different keys do not mix."""
    await kv_store.list_push("one", "a")
    await kv_store.list_push("two", "b")
    assert await kv_store.list_range("one") == ["a"]
    assert await kv_store.list_range("two") == ["b"]


@pytest.mark.asyncio
async def test_ttl_expiry(kv_store: SQLiteKVStore, monkeypatch):
    """Keys with a TTL disappear after it elapses."""
    await kv_store.set("temp", "v", ttl=60)
    assert await kv_store.get("temp") == "v"

    real_time = time.time
    monkeypatch.setattr("threadmem.storage.sqlite.time.time", lambda: real_time() + 120)
    assert await kv_store.get("temp") is None


@pytest.mark.asyncio
async def test_not_connected(tmp_path: Path):
    """Using the store before connect() fails loudly."""
    store = SQLiteKVStore(tmp_path / "kv.db")
    with pytest.raises(RuntimeError, match="not connected"):
        await store.get("a")


def test_redis_slice():
    """LRANGE index rules."""
    values = ["a", "b", "c", "d"]
    assert redis_slice(values, 0, -1) == values
    assert redis_slice(values, 1, 2) == ["b", "c"]
    assert redis_slice(values, -3, -2) == ["b", "c"]
    assert redis_slice(values, 2, 100) == ["c", "d"]
    assert redis_slice(values, 3, 1) == []
    assert redis_slice([], 0, -1) == []


def _upstash(handler) -> UpstashKVStore:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://redis.test"
    )
    return UpstashKVStore("https://redis.test", "token", client=client)


@pytest.mark.asyncio
async def test_upstash_commands():
    """Commands are sent as JSON arrays."""
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        command = json.loads(request.content)
        sent.append(command)
        results = {
            "SET": "OK",
            "GET": "value",
            "DEL": 1,
            "LPUSH": 2,
            "LRANGE": ["b", "a"],
        }
        return httpx.Response(200, json={"result": results[command[0]]})

    store = _upstash(handler)
    await store.connect()

    assert await store.set("k", "v")
    assert await store.set("k", "v", ttl=60)
    assert await store.get("k") == "value"
    assert await store.delete("k")
    assert await store.list_push("l", "b")
    assert await store.list_range("l", 0, -1) == ["b", "a"]

    assert sent == [
        ["SET", "k", "v"],
        ["SET", "k", "v", "EX", "60"],
        ["GET", "k"],
        ["DEL", "k"],
        ["LPUSH", "l", "b"],
        ["LRANGE", "l", "0", "-1"],
    ]


@pytest.mark.asyncio
async def test_upstash_get_missing():
    """Null result maps to None."""
    store = _upstash(lambda request: httpx.Response(200, json={"result": None}))
    await store.connect()
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_upstash_error_payload():
    """Redis errors become StorageError."""
    store = _upstash(lambda request: httpx.Response(200, json={"error": "WRONGTYPE"}))
    await store.connect()
    with pytest.raises(StorageError, match="WRONGTYPE"):
        await store.get("k")


@pytest.mark.asyncio
async def test_upstash_http_error():
    """HTTP failures become StorageError."""
    store = _upstash(lambda request: httpx.Response(500))
    await store.connect()
    with pytest.raises(StorageError, match="HTTP 500"):
        await store.set("k", "v")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_upstash_live_round_trip():
    """Round-trip against a real Upstash database."""
    url = os.getenv("THREADMEM_UPSTASH_REDIS_URL", "")
    token = os.getenv("THREADMEM_UPSTASH_REDIS_TOKEN", "")
    if not url or not token:
        pytest.skip("THREADMEM_UPSTASH_REDIS_URL/TOKEN not set")

    store = UpstashKVStore(url, token)
    await store.connect()
    try:
        await store.set("threadmem:test:key", "value", ttl=60)
        assert await store.get("threadmem:test:key") == "value"
        await store.delete("threadmem:test:key")
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_upstash_list_remove():
    """LREM with count 0 removes all occurrences."""
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"result": 2})

    store = _upstash(handler)
    await store.connect()
    assert await store.list_remove("threads", "t1") == 2
    assert sent == [["LREM", "threads", "0", "t1"]]
