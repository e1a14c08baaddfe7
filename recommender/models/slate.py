"""
Slate models: ranked events, slates, and the slate policies chosen by the bandit.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .event import EnrichedEvent
from .scoring import ScoredEvent


class RankedEvent(BaseModel):
    """Scored event joined with the enriched fields slate composition needs."""

    event_id: str
    score: float
    novelty_score: float = 0.5
    social_heat_score: float = 0.0
    distance_km: Optional[float] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    category: Optional[str] = None
    contributions: Dict[str, float] = Field(default_factory=dict)

    title: str = ""
    description: Optional[str] = None
    venue_name: Optional[str] = None
    neighborhood: Optional[str] = None
    city: str = ""
    image_url: Optional[str] = None
    booking_url: Optional[str] = None

    @classmethod
    def from_scored(cls, scored: ScoredEvent, event: EnrichedEvent) -> "RankedEvent":
        return cls(
            event_id=scored.event_id,
            score=scored.score,
            novelty_score=event.novelty_score,
            social_heat_score=scored.features.social_heat_score,
            distance_km=event.distance_km,
            price_min=event.price_min,
            price_max=event.price_max,
            start_time=event.start_time,
            end_time=event.end_time,
            category=event.category,
            contributions=dict(scored.contributions),
            title=event.title,
            description=event.description,
            venue_name=event.venue_name,
            neighborhood=event.neighborhood,
            city=event.city,
            image_url=event.image_url,
            booking_url=event.booking_url,
        )


class SlateItem(BaseModel):
    event_id: str
    position: int
    score: float
    reasons: List[str] = Field(default_factory=list)
    contributions: Dict[str, float] = Field(default_factory=dict)
    exploratory: bool = False

    title: str = ""
    venue_name: Optional[str] = None
    city: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    neighborhood: Optional[str] = None
    distance_km: Optional[float] = None
    image_url: Optional[str] = None
    booking_url: Optional[str] = None


class Slate(BaseModel):
    name: str
    label: str
    strategy: str
    events: List[SlateItem] = Field(default_factory=list)
    # 0-1, internal dissimilarity of the slate
    diversity: float = 0.0

    @property
    def event_ids(self) -> List[str]:
        return [e.event_id for e in self.events]


class SlateSet(BaseModel):
    """The three slates produced per request."""

    best: Slate
    wildcard: Slate
    close_and_easy: Slate

    def all(self) -> List[Slate]:
        return [self.best, self.wildcard, self.close_and_easy]

    @property
    def total_events(self) -> int:
        return sum(len(s.events) for s in self.all())


class SlatePolicy(BaseModel):
    """Named parameter bundle governing slate composition and exploration."""

    model_config = ConfigDict(extra="ignore")

    name: str

    best_top_k: int = 10
    wildcard_top_k: int = 10
    close_easy_top_k: int = 10

    # Wildcard selection
    wildcard_novelty_threshold: float = 0.6
    wildcard_min_score: float = 0.4
    # Close & easy selection
    close_easy_max_price: float = 30.0
    close_easy_min_score: float = 0.3

    enable_diversification: bool = True
    diversity_window: int = 5

    # Epsilon for within-slate exploration of the best slate
    exploration_bonus: float = 0.0

    def merged(self, params: Optional[Dict[str, Any]]) -> "SlatePolicy":
        """Copy with stored params applied (camelCase keys accepted); unknown keys ignored."""
        if not params:
            return self
        updates: Dict[str, Any] = {}
        for key, value in params.items():
            name = _POLICY_CAMEL_KEYS.get(key, key)
            if name in type(self).model_fields and name != "name":
                updates[name] = value
        return type(self).model_validate({**self.model_dump(), **updates})


_POLICY_CAMEL_KEYS = {
    "bestTopK": "best_top_k",
    "wildcardTopK": "wildcard_top_k",
    "closeEasyTopK": "close_easy_top_k",
    "wildcardNoveltyThreshold": "wildcard_novelty_threshold",
    "wildcardMinScore": "wildcard_min_score",
    "closeEasyMaxPrice": "close_easy_max_price",
    "closeEasyMinScore": "close_easy_min_score",
    "enableDiversification": "enable_diversification",
    "diversityWindow": "diversity_window",
    "explorationBonus": "exploration_bonus",
}


DEFAULT_POLICY = SlatePolicy(
    name="balanced",
    best_top_k=10,
    wildcard_top_k=10,
    close_easy_top_k=10,
    wildcard_novelty_threshold=0.6,
    wildcard_min_score=0.4,
    close_easy_max_price=30.0,
    close_easy_min_score=0.3,
    exploration_bonus=0.0,
)

EXPLORATION_POLICY = SlatePolicy(
    name="80safe-20novel",
    best_top_k=8,
    wildcard_top_k=12,
    close_easy_top_k=8,
    wildcard_novelty_threshold=0.7,
    wildcard_min_score=0.35,
    close_easy_max_price=25.0,
    close_easy_min_score=0.3,
    exploration_bonus=0.2,
)

KNOWN_POLICIES: List[SlatePolicy] = [DEFAULT_POLICY, EXPLORATION_POLICY]


class PolicyPerformance(BaseModel):
    ctr: float = 0.0
    save_rate: float = 0.0
    reward_score: float = 0.0


class StoredSlatePolicy(BaseModel):
    """Policy record as held by the snapshot store."""

    name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = False
    performance: Optional[PolicyPerformance] = None


class PolicySelection(BaseModel):
    policy: SlatePolicy
    policy_name: str
    was_exploration: bool = False
