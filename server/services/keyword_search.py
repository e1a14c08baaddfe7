"""
Typesense Keyword Search

Full-text search over the events collection through the Typesense REST API.
Filters are expressed in Typesense filter_by syntax joined with " && ":
    city:=New York && start_time:>=1773511200 && start_time:<=1773522000
Timestamps are epoch seconds.
"""

import logging
from typing import List, Optional

import httpx

from recommender.backends import KeywordFilters, KeywordSearchResponse, SearchHit
from recommender.errors import BackendUnavailableError

from .payloads import event_from_payload

logger = logging.getLogger(__name__)

QUERY_BY = "title,description,venue_name,neighborhood,tags"
SORT_BY = "_text_match:desc,start_time:asc"
# Typesense caps per_page at 250
MAX_PER_PAGE = 250


def build_filter_by(filters: KeywordFilters) -> str:
    """Typesense filter_by expression for the given filters ("" when none are set)."""
    parts: List[str] = []
    if filters.city:
        parts.append(f"city:=`{filters.city}`")
    if filters.category:
        parts.append(f"category:=`{filters.category}`")
    if filters.start_after:
        parts.append(f"start_time:>={int(filters.start_after.timestamp())}")
    if filters.start_before:
        parts.append(f"start_time:<={int(filters.start_before.timestamp())}")
    if filters.price_max is not None:
        parts.append(f"price_min:<={filters.price_max}")
    return " && ".join(parts)


class TypesenseKeywordSearch:
    """
    KeywordSearchBackend over Typesense.

    Usage:
        search = TypesenseKeywordSearch("http://localhost:8108", api_key="xyz")
        response = await search.search("jazz", KeywordFilters(city="New York"))
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        collection: str = "events",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        headers = {"X-TYPESENSE-API-KEY": api_key} if api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    async def search(
        self,
        query: str,
        filters: KeywordFilters,
        page: int = 1,
        limit: int = 100,
    ) -> KeywordSearchResponse:
        params = {
            "q": query or "*",
            "query_by": QUERY_BY,
            "sort_by": SORT_BY,
            "page": page,
            "per_page": min(limit, MAX_PER_PAGE),
        }
        filter_by = build_filter_by(filters)
        if filter_by:
            params["filter_by"] = filter_by

        try:
            response = await self._client.get(
                f"/collections/{self.collection}/documents/search", params=params
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise BackendUnavailableError("typesense", str(e) or type(e).__name__) from e

        hits = []
        for hit in data.get("hits", []):
            document = hit.get("document", {})
            score = float(hit.get("text_match", 0) or 0)
            hits.append(SearchHit(
                event=event_from_payload(document.get("id"), document, "keyword", score),
                score=score,
            ))
        logger.debug("[typesense] %d hits (found %s) for %r", len(hits), data.get("found"), query)
        return KeywordSearchResponse(hits=hits, found=int(data.get("found", len(hits))))

    async def is_available(self) -> bool:
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._client.aclose()
