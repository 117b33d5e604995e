"""
Upstash Vector index.

Index names map to Upstash namespaces. Filters are equality-only and are
rendered to the Upstash filter syntax (``threadId = 'abc' AND role = 'user'``).
"""

from typing import Any

import httpx

from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.typing import JSONDict, Vector
from threadmem.vector.base import Metric, VectorIndex, VectorMatch

logger = get_logger("vector.upstash")


def render_filter(filter: dict[str, Any] | None) -> str:
    if not filter:
        return ""
    clauses = []
    for key, value in filter.items():
        if isinstance(value, str):
            escaped = value.replace("'", "\\'")
            clauses.append(f"{key} = '{escaped}'")
        elif isinstance(value, bool):
            clauses.append(f"{key} = {str(value).lower()}")
        else:
            clauses.append(f"{key} = {value}")
    return " AND ".join(clauses)


class UpstashVectorIndex(VectorIndex):
    """Vector index over the Upstash REST API."""

    def __init__(
        self,
        url: str,
        token: str,
        metric: Metric = Metric.COSINE,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url.rstrip("/")
        self.token = token
        self.metric = metric
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
        logger.info(f"Using Upstash Vector at {self.url}")

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Vector index not connected. Call connect() first.")
        return self._client

    async def _post(self, path: str, body: Any) -> Any:
        try:
            response = await self.client.post(path, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailableError(
                f"Upstash Vector {path} failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderUnavailableError(f"Upstash Vector {path} timed out") from e
        except httpx.RequestError as e:
            raise ProviderUnavailableError(f"Upstash Vector {path} error: {e}") from e

        if isinstance(payload, dict) and "error" in payload:
            raise ProviderUnavailableError(f"Upstash Vector {path}: {payload['error']}")
        return payload.get("result") if isinstance(payload, dict) else payload

    async def upsert(
        self,
        index_name: str,
        ids: list[str],
        vectors: list[Vector],
        metadata: list[JSONDict] | None = None,
    ) -> None:
        if len(ids) != len(vectors):
            raise ValueError("ids and vectors must have the same length")
        metadata = metadata or [{} for _ in ids]
        body = [
            {"id": id_, "vector": vec, "metadata": meta}
            for id_, vec, meta in zip(ids, vectors, metadata)
        ]
        await self._post(f"/upsert/{index_name}", body)

    async def query(
        self,
        index_name: str,
        vector: Vector,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        body: JSONDict = {"vector": vector, "topK": top_k, "includeMetadata": True}
        rendered = render_filter(filter)
        if rendered:
            body["filter"] = rendered

        result = await self._post(f"/query/{index_name}", body)
        return [
            VectorMatch(
                id=str(hit["id"]),
                score=float(hit.get("score", 0.0)),
                metadata=hit.get("metadata") or {},
            )
            for hit in result or []
        ]

    async def delete(self, index_name: str, ids: list[str]) -> None:
        if not ids:
            return
        await self._post(f"/delete/{index_name}", ids)
