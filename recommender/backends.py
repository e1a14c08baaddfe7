"""
External collaborator contracts.

Protocols for every backend the pipeline talks to, plus the response schemas they
return. Adapters (server/services) decode wire payloads into these schemas at the
boundary; the pipeline never sees raw backend dicts. Every method is async and may
raise; callers own the fallback policy.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel, Field

from .models.event import CandidateEvent, SocialHeat
from .models.slate import StoredSlatePolicy


# =============================================================================
# Response schemas
# =============================================================================

class SearchHit(BaseModel):
    """One search result: the decoded event and the backend's relevance score."""

    event: CandidateEvent
    score: float = 0.0


class KeywordFilters(BaseModel):
    city: Optional[str] = None
    category: Optional[str] = None
    start_after: Optional[datetime] = None
    start_before: Optional[datetime] = None
    price_max: Optional[float] = None


class KeywordSearchResponse(BaseModel):
    hits: List[SearchHit] = Field(default_factory=list)
    found: int = 0


class NoveltyScore(BaseModel):
    event_id: str
    # 0-1, higher = less similar to what the user has already seen
    novelty: float = 0.5
    similar_viewed: int = 0


class FriendSignal(BaseModel):
    event_id: str
    friend_count: int = 0
    friend_ids: List[str] = Field(default_factory=list)


class SimilarEvent(BaseModel):
    event_id: str
    similarity: float = 0.0
    relation: str = "SIMILAR"


class RankerSnapshot(BaseModel):
    id: str
    weights: Dict[str, Any] = Field(default_factory=dict)
    version: Optional[str] = None
    created_at: Optional[str] = None


class LogContext(BaseModel):
    session_id: str
    trace_id: str
    user_id: Optional[str] = None


EventType = Literal["QUERY", "SLATE_IMPRESSION"]


# =============================================================================
# Protocols
# =============================================================================

class QueryEmbedder(Protocol):
    async def embed(self, text: str) -> List[float]:
        """Embedding vector for a query string."""
        ...


class VectorSearchBackend(Protocol):
    async def search(self, embedding: List[float], city: Optional[str], top_k: int) -> List[SearchHit]:
        """Nearest events to the embedding, filtered by city, best first."""
        ...


class KeywordSearchBackend(Protocol):
    async def search(
        self,
        query: str,
        filters: KeywordFilters,
        page: int = 1,
        limit: int = 100,
    ) -> KeywordSearchResponse:
        """Keyword-matched events, best first."""
        ...


class RerankerBackend(Protocol):
    async def rerank(self, query: str, passages: List[str]) -> List[float]:
        """Relevance scores aligned by index with passages."""
        ...


class GraphBackend(Protocol):
    """Social / novelty graph. Each query is independently fallible."""

    async def similar_events(self, event_id: str, limit: int = 10) -> List[SimilarEvent]:
        ...

    async def novelty_for_user(self, user_id: str, event_ids: List[str]) -> List[NoveltyScore]:
        ...

    async def friend_overlap(self, user_id: str, event_ids: List[str]) -> List[FriendSignal]:
        ...

    async def social_heat(self, event_ids: List[str], hours_back: int, now: datetime) -> Dict[str, SocialHeat]:
        """Interaction counters over the hours_back hours before now."""
        ...


class EmbeddingStore(Protocol):
    async def fetch_embeddings(self, event_ids: List[str]) -> Dict[str, List[float]]:
        """Per-event vectors by id. Missing ids are omitted, not errors."""
        ...


class TasteStore(Protocol):
    async def get_taste_vector(self, user_id: str) -> Optional[List[float]]:
        """The user's taste vector, or None when no profile exists yet."""
        ...


class SnapshotStore(Protocol):
    """Weight and slate-policy snapshots written by offline jobs."""

    async def get_latest_ranker_snapshot(self) -> Optional[RankerSnapshot]:
        ...

    async def get_current_slate_policy(self) -> Optional[StoredSlatePolicy]:
        ...

    async def upsert_slate_policy(
        self,
        name: str,
        params: Dict[str, Any],
        is_active: bool,
    ) -> StoredSlatePolicy:
        ...


class EventLogSink(Protocol):
    async def log_event(self, event_type: EventType, payload: Dict[str, Any], context: LogContext) -> None:
        """Append one interaction event for offline learning."""
        ...


class SummaryGenerator(Protocol):
    async def summarize(self, prompt: str) -> str:
        """Short natural-language summary for the response."""
        ...
