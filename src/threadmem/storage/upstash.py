"""
Upstash Redis key-value store.

Talks to the Upstash REST API: each command is POSTed as a JSON array and
the reply arrives as {"result": ...} or {"error": ...}.
"""

from typing import Any

import httpx

from threadmem.core.errors import StorageError
from threadmem.core.logging import get_logger
from threadmem.storage.base import KVStore

logger = get_logger("storage.upstash")


class UpstashKVStore(KVStore):
    """Redis over HTTP."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        logger.info(f"Using Upstash Redis at {self.url}")

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("KV store not connected. Call connect() first.")
        return self._client

    async def command(self, *args: Any) -> Any:
        """Run one Redis command and return its result."""
        name = str(args[0])
        try:
            response = await self.client.post("/", json=[str(a) for a in args])
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise StorageError(f"{name} failed: HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise StorageError(f"{name} timed out") from e
        except httpx.RequestError as e:
            raise StorageError(f"{name} request error: {e}") from e

        if "error" in payload:
            raise StorageError(f"{name} failed: {payload['error']}")
        return payload.get("result")

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        if ttl:
            result = await self.command("SET", key, value, "EX", ttl)
        else:
            result = await self.command("SET", key, value)
        return result == "OK"

    async def get(self, key: str) -> str | None:
        return await self.command("GET", key)

    async def delete(self, key: str) -> bool:
        return bool(await self.command("DEL", key))

    async def list_push(self, key: str, value: str) -> bool:
        return bool(await self.command("LPUSH", key, value))

    async def list_remove(self, key: str, value: str) -> int:
        # count 0 removes all occurrences
        return int(await self.command("LREM", key, 0, value) or 0)

    async def list_range(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        return list(await self.command("LRANGE", key, start, end) or [])
