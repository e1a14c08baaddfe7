"""
Enrichment: augments candidates with spatial, social, novelty, and taste signals.

Four independent signals are fetched in parallel (novelty-for-user, friend overlap,
social heat, and taste vector plus event embeddings). Each fetch is bounded by a
timeout and wrapped so a failure yields its neutral default and a degradation flag;
enrichment itself never fails and always returns one EnrichedEvent per candidate.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, Field

from ..backends import (
    EmbeddingStore,
    FriendSignal,
    GraphBackend,
    NoveltyScore,
    SimilarEvent,
    TasteStore,
)
from ..models.event import NEUTRAL_NOVELTY, NEUTRAL_TASTE_MATCH, CandidateEvent, EnrichedEvent, SocialHeat
from ..models.intention import Intention
from ..models.state import DegradedFlags
from ..utils.distance import estimate_travel_minutes, get_city_center, haversine_km
from ..utils.scores import taste_similarity

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SIGNAL_TIMEOUT_S = 2.0
SOCIAL_HEAT_HOURS = 3


@dataclass
class Signal(Generic[T]):
    """Outcome of one signal fetch: the value to use and whether it is real or a fallback."""

    value: T
    ok: bool = True
    error: Optional[str] = None


async def _bounded(awaitable: Awaitable[T], timeout_s: float, fallback: T, name: str) -> Signal[T]:
    try:
        return Signal(await asyncio.wait_for(awaitable, timeout=timeout_s))
    except Exception as e:
        message = str(e) or type(e).__name__
        logger.warning("[enrich] %s fetch failed: %s", name, message)
        return Signal(fallback, ok=False, error=message)


# =============================================================================
# Graph signals with neutral fallbacks
# =============================================================================

class GraphSignals:
    """
    Graph backend queries with their defined fallbacks.

    - novelty_for_user: 0.5 for every requested id
    - friend_overlap: zero friends for every requested id
    - social_heat: zero counters for every requested id
    - similar_events: empty list
    A missing backend behaves like a failing one.
    """

    def __init__(self, backend: Optional[GraphBackend], timeout_s: float = DEFAULT_SIGNAL_TIMEOUT_S):
        self.backend = backend
        self.timeout_s = timeout_s

    async def _call(self, name: str, make_call, fallback):
        if self.backend is None:
            return Signal(fallback, ok=False, error="graph backend not configured")
        return await _bounded(make_call(), self.timeout_s, fallback, name)

    async def novelty_for_user(self, user_id: str, event_ids: List[str]) -> Signal[List[NoveltyScore]]:
        fallback = [NoveltyScore(event_id=eid, novelty=NEUTRAL_NOVELTY) for eid in event_ids]
        return await self._call(
            "novelty", lambda: self.backend.novelty_for_user(user_id, event_ids), fallback
        )

    async def friend_overlap(self, user_id: str, event_ids: List[str]) -> Signal[List[FriendSignal]]:
        fallback = [FriendSignal(event_id=eid, friend_count=0) for eid in event_ids]
        return await self._call(
            "friend overlap", lambda: self.backend.friend_overlap(user_id, event_ids), fallback
        )

    async def social_heat(
        self, event_ids: List[str], hours_back: int, now: datetime
    ) -> Signal[Dict[str, SocialHeat]]:
        fallback = {eid: SocialHeat() for eid in event_ids}
        return await self._call(
            "social heat", lambda: self.backend.social_heat(event_ids, hours_back, now), fallback
        )

    async def similar_events(self, event_id: str, limit: int = 10) -> Signal[List[SimilarEvent]]:
        return await self._call(
            "similar events", lambda: self.backend.similar_events(event_id, limit), []
        )


# =============================================================================
# Enricher
# =============================================================================

class EnrichmentResult(BaseModel):
    events: List[EnrichedEvent] = Field(default_factory=list)
    degraded: DegradedFlags = Field(default_factory=DegradedFlags)
    failures: Dict[str, str] = Field(default_factory=dict)


@dataclass
class Enricher:
    """Parallel signal fetch plus local distance math."""

    graph: Optional[GraphBackend] = None
    embeddings: Optional[EmbeddingStore] = None
    taste: Optional[TasteStore] = None
    signal_timeout_s: float = DEFAULT_SIGNAL_TIMEOUT_S
    social_heat_hours: int = SOCIAL_HEAT_HOURS
    _signals: GraphSignals = field(init=False, repr=False)

    def __post_init__(self):
        self._signals = GraphSignals(self.graph, self.signal_timeout_s)

    async def _taste_vector(self, user_id: Optional[str]) -> Signal[Optional[List[float]]]:
        if not user_id:
            return Signal(None)
        if self.taste is None:
            return Signal(None, ok=False, error="taste store not configured")
        return await _bounded(self.taste.get_taste_vector(user_id), self.signal_timeout_s, None, "taste vector")

    async def _event_embeddings(self, event_ids: List[str]) -> Signal[Dict[str, List[float]]]:
        if self.embeddings is None:
            return Signal({}, ok=False, error="embedding store not configured")
        return await _bounded(
            self.embeddings.fetch_embeddings(event_ids), self.signal_timeout_s, {}, "event embeddings"
        )

    async def _user_signal(self, user_id: Optional[str], fetch, neutral):
        if not user_id:
            return Signal(neutral)
        return await fetch()

    async def enrich(
        self,
        candidates: List[CandidateEvent],
        user_id: Optional[str],
        intention: Intention,
        origin: Optional[Tuple[float, float]] = None,
    ) -> EnrichmentResult:
        """
        Enrich candidates 1:1.

        Args:
            origin: (lat, lon) of the user when known; the city center otherwise.
        """
        if not candidates:
            return EnrichmentResult()

        event_ids = [c.id for c in candidates]
        novelty, friends, heat, taste_vector, embeddings = await asyncio.gather(
            self._user_signal(
                user_id,
                lambda: self._signals.novelty_for_user(user_id, event_ids),
                [],
            ),
            self._user_signal(
                user_id,
                lambda: self._signals.friend_overlap(user_id, event_ids),
                [],
            ),
            self._signals.social_heat(event_ids, self.social_heat_hours, intention.now),
            self._taste_vector(user_id),
            self._event_embeddings(event_ids),
        )

        novelty_map = {n.event_id: n.novelty for n in novelty.value}
        friend_map = {f.event_id: f.friend_count for f in friends.value}
        heat_map = heat.value or {}
        embedding_map = embeddings.value or {}
        center = origin or get_city_center(intention.city)

        enriched: List[EnrichedEvent] = []
        for candidate in candidates:
            distance_km = None
            if center is not None and candidate.has_coordinates:
                distance_km = haversine_km(center[0], center[1], candidate.lat, candidate.lon)
            embedding = embedding_map.get(candidate.id)
            taste_match = (
                taste_similarity(taste_vector.value, embedding)
                if taste_vector.value and embedding
                else NEUTRAL_TASTE_MATCH
            )
            enriched.append(
                EnrichedEvent.model_validate({
                    **candidate.model_dump(),
                    "distance_km": distance_km,
                    "travel_time_minutes": estimate_travel_minutes(distance_km) if distance_km is not None else None,
                    "novelty_score": novelty_map.get(candidate.id, NEUTRAL_NOVELTY),
                    "friend_interest": friend_map.get(candidate.id, 0),
                    "social_heat": heat_map.get(candidate.id) or SocialHeat(),
                    "taste_match_score": taste_match,
                    "embedding": embedding,
                })
            )

        failures = {
            name: sig.error
            for name, sig in (
                ("novelty", novelty),
                ("friend_overlap", friends),
                ("social_heat", heat),
                ("taste_vector", taste_vector),
                ("event_embeddings", embeddings),
            )
            if not sig.ok and sig.error
        }
        graph_down = not (novelty.ok and friends.ok and heat.ok)
        no_taste = bool(user_id) and (
            not taste_vector.ok or taste_vector.value is None or not embeddings.ok
        )
        degraded = DegradedFlags(no_neo4j=graph_down, no_taste_vector=no_taste)

        logger.info(
            "[enrich] enriched %d candidates (degraded: %s)",
            len(enriched), ",".join(degraded.active()) or "none",
        )
        return EnrichmentResult(events=enriched, degraded=degraded, failures=failures)

    async def similar_events(self, event_id: str, limit: int = 10) -> List[SimilarEvent]:
        """Graph neighbours of an event; empty when the graph backend is unavailable."""
        return (await self._signals.similar_events(event_id, limit)).value
