"""HTTP cross-encoder reranker: POST {query, passages} -> {scores}."""

from typing import List, Optional

import httpx

from recommender.errors import BackendUnavailableError


class HttpReranker:
    """RerankerBackend for a BGE-style reranker service at RERANKER_ENDPOINT_URL."""

    def __init__(self, endpoint_url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.endpoint_url = endpoint_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def rerank(self, query: str, passages: List[str]) -> List[float]:
        if not passages:
            return []
        try:
            response = await self._client.post(
                self.endpoint_url, json={"query": query, "passages": passages}
            )
            response.raise_for_status()
            scores = response.json().get("scores") or []
        except httpx.HTTPError as e:
            raise BackendUnavailableError("reranker", str(e) or type(e).__name__) from e
        if len(scores) != len(passages):
            raise BackendUnavailableError(
                "reranker", f"expected {len(passages)} scores, got {len(scores)}"
            )
        return [float(s) for s in scores]

    async def is_available(self) -> bool:
        try:
            response = await self._client.get(f"{self.endpoint_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._client.aclose()
