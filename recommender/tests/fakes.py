"""
In-memory fake backends and builders shared by the pipeline tests.

Every fake records its calls and can be switched to fail, so tests can drive each
degradation path without network access.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from recommender.backends import (
    FriendSignal,
    KeywordFilters,
    KeywordSearchResponse,
    LogContext,
    NoveltyScore,
    RankerSnapshot,
    SearchHit,
    SimilarEvent,
)
from recommender.models import CandidateEvent, Intention, IntentionTokens, SocialHeat, StoredSlatePolicy
from recommender.utils import to_iso

NOW = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)
NOW_ISO = to_iso(NOW)

# Times Square, roughly 1 km from the New York city center
NEAR_LAT, NEAR_LON = 40.7200, -74.0000


class BackendDown(Exception):
    pass


def make_event(event_id: str, minutes_from_now: float = 60, **overrides: Any) -> CandidateEvent:
    data: Dict[str, Any] = {
        "id": event_id,
        "title": f"Event {event_id}",
        "description": f"Description of {event_id}",
        "category": "MUSIC",
        "venue_name": f"Venue {event_id}",
        "city": "New York",
        "start_time": NOW + timedelta(minutes=minutes_from_now),
        "price_min": 20.0,
        "price_max": 40.0,
        "lat": NEAR_LAT,
        "lon": NEAR_LON,
        "source": "vector",
        "score": 0.8,
    }
    data.update(overrides)
    return CandidateEvent(**data)


def make_intention(**token_overrides: Any) -> Intention:
    tokens = {"mood": "electric", "until_minutes": 180, "budget": "casual", "distance_km": 5.0}
    tokens.update(token_overrides)
    return Intention(city="New York", now_iso=NOW_ISO, tokens=IntentionTokens(**tokens))


# =============================================================================
# Search
# =============================================================================

class FakeEmbedder:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise BackendDown("embedding service down")
        return [1.0, 0.0, 0.0]


class FakeVectorSearch:
    def __init__(self, events: Optional[List[CandidateEvent]] = None, fail: bool = False, delay_s: float = 0.0):
        self.events = events or []
        self.fail = fail
        self.delay_s = delay_s
        self.calls = 0

    async def search(self, embedding: List[float], city: Optional[str], top_k: int) -> List[SearchHit]:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.fail:
            raise BackendDown("qdrant unreachable")
        return [SearchHit(event=e, score=e.score) for e in self.events[:top_k]]


class FakeKeywordSearch:
    def __init__(self, events: Optional[List[CandidateEvent]] = None, fail: bool = False):
        self.events = events or []
        self.fail = fail
        self.last_filters: Optional[KeywordFilters] = None

    async def search(self, query: str, filters: KeywordFilters, page: int = 1, limit: int = 100) -> KeywordSearchResponse:
        self.last_filters = filters
        if self.fail:
            raise BackendDown("typesense unreachable")
        hits = [SearchHit(event=e, score=e.score) for e in self.events[:limit]]
        return KeywordSearchResponse(hits=hits, found=len(self.events))


class FakeReranker:
    def __init__(self, scores: Optional[Dict[str, float]] = None, fail: bool = False):
        self.scores = scores or {}
        self.fail = fail
        self.passages: List[str] = []

    async def rerank(self, query: str, passages: List[str]) -> List[float]:
        self.passages = list(passages)
        if self.fail:
            raise BackendDown("reranker 503")
        return [self.scores.get(p.split(".")[0], 0.1) for p in passages]


# =============================================================================
# Enrichment
# =============================================================================

class FakeGraph:
    def __init__(
        self,
        novelty: Optional[Dict[str, float]] = None,
        friends: Optional[Dict[str, int]] = None,
        heat: Optional[Dict[str, SocialHeat]] = None,
    ):
        self.novelty = novelty or {}
        self.friends = friends or {}
        self.heat = heat or {}
        self.heat_windows: List[Tuple[datetime, int]] = []

    async def similar_events(self, event_id: str, limit: int = 10) -> List[SimilarEvent]:
        return [SimilarEvent(event_id=f"{event_id}-similar", similarity=0.9)][:limit]

    async def novelty_for_user(self, user_id: str, event_ids: List[str]) -> List[NoveltyScore]:
        return [NoveltyScore(event_id=eid, novelty=self.novelty.get(eid, 0.5)) for eid in event_ids]

    async def friend_overlap(self, user_id: str, event_ids: List[str]) -> List[FriendSignal]:
        return [FriendSignal(event_id=eid, friend_count=self.friends.get(eid, 0)) for eid in event_ids]

    async def social_heat(self, event_ids: List[str], hours_back: int, now: datetime) -> Dict[str, SocialHeat]:
        self.heat_windows.append((now, hours_back))
        return {eid: self.heat.get(eid, SocialHeat()) for eid in event_ids}


class FailingGraph:
    """Graph backend that throws on every call."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise BackendDown("neo4j connection refused")

    similar_events = _fail
    novelty_for_user = _fail
    friend_overlap = _fail
    social_heat = _fail


class FakeEmbeddingStore:
    def __init__(self, embeddings: Optional[Dict[str, List[float]]] = None, fail: bool = False):
        self.embeddings = embeddings or {}
        self.fail = fail

    async def fetch_embeddings(self, event_ids: List[str]) -> Dict[str, List[float]]:
        if self.fail:
            raise BackendDown("embedding store down")
        return {eid: self.embeddings[eid] for eid in event_ids if eid in self.embeddings}


class FakeTasteStore:
    def __init__(self, vector: Optional[List[float]] = None, fail: bool = False):
        self.vector = vector
        self.fail = fail

    async def get_taste_vector(self, user_id: str) -> Optional[List[float]]:
        if self.fail:
            raise BackendDown("taste store down")
        return self.vector


# =============================================================================
# Snapshots and logging
# =============================================================================

class FakeSnapshotStore:
    def __init__(
        self,
        weights: Optional[Dict[str, Any]] = None,
        policy: Optional[StoredSlatePolicy] = None,
        fail: bool = False,
    ):
        self.weights = weights
        self.policy = policy
        self.fail = fail

    async def get_latest_ranker_snapshot(self) -> Optional[RankerSnapshot]:
        if self.fail:
            raise BackendDown("firestore unavailable")
        if self.weights is None:
            return None
        return RankerSnapshot(id="snap-1", weights=self.weights)

    async def get_current_slate_policy(self) -> Optional[StoredSlatePolicy]:
        if self.fail:
            raise BackendDown("firestore unavailable")
        return self.policy

    async def upsert_slate_policy(self, name: str, params: Dict[str, Any], is_active: bool) -> StoredSlatePolicy:
        self.policy = StoredSlatePolicy(name=name, params=params, is_active=is_active)
        return self.policy


class RecordingLogSink:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Dict[str, Any]] = []

    async def log_event(self, event_type: str, payload: Dict[str, Any], context: LogContext) -> None:
        if self.fail:
            raise BackendDown("log sink down")
        self.events.append({"event_type": event_type, "payload": payload, "context": context})


class FakeSummarizer:
    def __init__(self, text: str = "Three great electric picks tonight.", fail: bool = False):
        self.text = text
        self.fail = fail
        self.prompts: List[str] = []

    async def summarize(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise BackendDown("llm timeout")
        return self.text
