"""
Event models: retrieval hits and their enriched form.

CandidateEvent: one per distinct event id after hybrid retrieval.
EnrichedEvent: CandidateEvent plus spatial, social, novelty and taste signals.
Enrichment is 1:1 with candidates; missing signals carry neutral values.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.timeutil import parse_iso

RetrievalSource = Literal["vector", "keyword", "hybrid"]

NEUTRAL_NOVELTY = 0.5
NEUTRAL_TASTE_MATCH = 0.5


class CandidateEvent(BaseModel):
    """Raw retrieval hit with a source-local relevance score."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    venue_name: Optional[str] = None
    neighborhood: Optional[str] = None
    city: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    booking_url: Optional[str] = None
    source: RetrievalSource = "vector"
    score: float = 0.0

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _aware_datetime(cls, v):
        if v is None:
            return v
        return parse_iso(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, v):
        return list(v) if v else []

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def passage(self) -> str:
        """Text sent to the reranker for this event."""
        return f"{self.title}. {self.description or ''}".strip()


class SocialHeat(BaseModel):
    """Recent interaction counters for one event (graph lookback window)."""

    views: int = 0
    saves: int = 0
    attends: int = 0


class EnrichedEvent(CandidateEvent):
    """Candidate plus enrichment signals. distance_km is None when coordinates are unknown."""

    distance_km: Optional[float] = None
    travel_time_minutes: Optional[int] = None
    novelty_score: float = NEUTRAL_NOVELTY
    friend_interest: int = 0
    social_heat: SocialHeat = Field(default_factory=SocialHeat)
    taste_match_score: float = NEUTRAL_TASTE_MATCH
    embedding: Optional[List[float]] = None

    @classmethod
    def neutral(cls, candidate: CandidateEvent) -> "EnrichedEvent":
        """Enriched copy of a candidate with every signal at its neutral default."""
        return cls.model_validate(candidate.model_dump())
