"""
Qdrant Event Store

Vector search over the events collection, filtered by city, plus batch vector
fetch by event id (the embedding store used for taste matching).

Points carry the event document as payload, keyed by "event_id" (or "eventId"
from the ingest job). Point ids are opaque to the pipeline.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models

from recommender.backends import SearchHit
from recommender.errors import BackendUnavailableError

from .payloads import event_from_payload

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "events"
# Payload keys holding the event id: snake_case, or camelCase from the ingest job
EVENT_ID_KEYS = ("event_id", "eventId")


class QdrantEventStore:
    """
    Async Qdrant adapter implementing VectorSearchBackend and EmbeddingStore.

    Usage:
        store = QdrantEventStore(qdrant_url="http://localhost:6333")
        hits = await store.search(embedding, "New York", top_k=100)
        vectors = await store.fetch_embeddings(["evt_1", "evt_2"])
    """

    # Retry configuration for availability checks
    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds

    def __init__(
        self,
        qdrant_url: str,
        api_key: Optional[str] = None,
        collection: str = DEFAULT_COLLECTION,
        timeout: float = 10.0,
        client: Optional[AsyncQdrantClient] = None,
    ):
        self.qdrant_url = qdrant_url
        self.api_key = api_key
        self.collection = collection
        self.timeout = timeout
        self._client: Optional[AsyncQdrantClient] = client

    @property
    def client(self) -> AsyncQdrantClient:
        if self._client is None:
            self._client = AsyncQdrantClient(
                url=self.qdrant_url,
                api_key=self.api_key,
                timeout=int(self.timeout),
            )
        return self._client

    async def is_available(self) -> bool:
        """Check if Qdrant answers, retrying transient connection errors."""
        for attempt in range(self.MAX_RETRIES):
            try:
                await self.client.get_collections()
                return True
            except Exception as e:
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAY)
                else:
                    logger.warning("[qdrant] not reachable at %s: %s", self.qdrant_url, e)
        return False

    async def search(self, embedding: List[float], city: Optional[str], top_k: int) -> List[SearchHit]:
        query_filter = None
        if city:
            query_filter = models.Filter(must=[
                models.FieldCondition(key="city", match=models.MatchValue(value=city)),
            ])
        try:
            response = await self.client.query_points(
                collection_name=self.collection,
                query=embedding,
                query_filter=query_filter,
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            raise BackendUnavailableError("qdrant", str(e)) from e

        return [
            SearchHit(
                event=event_from_payload(point.id, point.payload, "vector", point.score),
                score=point.score,
            )
            for point in response.points
        ]

    async def fetch_embeddings(self, event_ids: List[str]) -> Dict[str, List[float]]:
        """Vectors by event id. Events without a stored point are omitted."""
        if not event_ids:
            return {}
        try:
            points, _ = await self.client.scroll(
                collection_name=self.collection,
                scroll_filter=models.Filter(should=[
                    models.FieldCondition(key=key, match=models.MatchAny(any=list(event_ids)))
                    for key in EVENT_ID_KEYS
                ]),
                limit=len(event_ids),
                with_payload=list(EVENT_ID_KEYS),
                with_vectors=True,
            )
        except Exception as e:
            raise BackendUnavailableError("qdrant", str(e)) from e

        embeddings: Dict[str, List[float]] = {}
        for point in points:
            payload = point.payload or {}
            event_id = payload.get("event_id") or payload.get("eventId") or str(point.id)
            vector = point.vector
            # Named-vector collections store the default vector under "default"
            if isinstance(vector, dict):
                vector = vector.get("default")
            if vector:
                embeddings[event_id] = list(vector)
        return embeddings

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


async def check_qdrant_available(store: Optional[QdrantEventStore]) -> Tuple[bool, str]:
    """
    Check if Qdrant is configured and connected.

    Returns:
        (is_available, message)
    """
    if store is None:
        return False, "QDRANT_URL not set"
    try:
        if await store.is_available():
            return True, f"Qdrant connected at {store.qdrant_url}"
        return False, f"Qdrant not responding at {store.qdrant_url}"
    except Exception as e:
        return False, f"Qdrant connection failed: {e}"
