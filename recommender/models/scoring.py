"""
Scoring models: ranking features, weights, ranker configuration, and scored events.

RankingFeatures is a pure function of (EnrichedEvent, Intention); ScoredEvent carries
the per-feature contribution breakdown with the invariant score == sum(contributions).
"""

import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RankingFeatures(BaseModel):
    """Normalized feature set for one candidate."""

    event_id: str

    # Text relevance
    textual_similarity: float = 0.5
    semantic_similarity: float = 0.5

    # Temporal
    time_fit: float = 0.5

    # Spatial
    distance_km: Optional[float] = None
    distance_comfort: float = 0.5

    # Price
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    price_comfort: float = 0.6

    # Mood / vibe
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    mood_alignment: float = 0.4

    # Social proof
    views_24h: int = 0
    saves_24h: int = 0
    friend_interest: int = 0
    social_heat_score: float = 0.0

    # Exploration
    novelty_score: float = 0.5
    taste_match_score: float = 0.5


# Weight name -> RankingFeatures attribute
FEATURE_FIELDS: Dict[str, str] = {
    "textual": "textual_similarity",
    "semantic": "semantic_similarity",
    "time_fit": "time_fit",
    "distance_comfort": "distance_comfort",
    "price_comfort": "price_comfort",
    "mood_alignment": "mood_alignment",
    "social_heat": "social_heat_score",
    "novelty": "novelty_score",
    "taste_match": "taste_match_score",
}

# Keys written by the offline training job
_CAMEL_CASE_KEYS: Dict[str, str] = {
    "textual": "textual",
    "semantic": "semantic",
    "timeFit": "time_fit",
    "distanceComfort": "distance_comfort",
    "priceComfort": "price_comfort",
    "moodAlignment": "mood_alignment",
    "socialHeatScore": "social_heat",
    "noveltyScore": "novelty",
    "tasteMatchScore": "taste_match",
}


class RankingWeights(BaseModel):
    """
    Versioned weight map for the weighted-sum ranker.

    Defaults sum to 1.0. Snapshot weights need not sum to 1; the ranker rescales
    contributions whenever the raw total leaves [0, 1].
    """

    model_config = ConfigDict(frozen=True)

    textual: float = 0.20
    semantic: float = 0.18
    time_fit: float = 0.08
    distance_comfort: float = 0.04
    price_comfort: float = 0.08
    mood_alignment: float = 0.16
    social_heat: float = 0.12
    novelty: float = 0.10
    taste_match: float = 0.04

    version: str = "1.0.0"

    @model_validator(mode="after")
    def weights_are_finite_and_non_negative(self):
        for name in FEATURE_FIELDS:
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"Weight {name} must be a finite non-negative number, got {value}")
        return self

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_FIELDS}

    @classmethod
    def from_dict(cls, weights: Dict[str, Any], version: Optional[str] = None) -> "RankingWeights":
        """Create weights from a snapshot dict (snake_case or camelCase keys); unknown keys ignored."""
        flat: Dict[str, Any] = {}
        for key, value in weights.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name in FEATURE_FIELDS:
                flat[name] = value
        if version is not None:
            flat["version"] = version
        return cls.model_validate(flat)


DEFAULT_WEIGHTS = RankingWeights()


class RankerConfig(BaseModel):
    """Ranker backing model. Only weighted_sum is implemented."""

    model_type: Literal["weighted_sum", "ml_model"] = "weighted_sum"
    weights: RankingWeights = Field(default_factory=RankingWeights)
    model_path: Optional[str] = None
    version: str = "1.0.0"


class ScoredEvent(BaseModel):
    """An event with its scalar score and per-feature contributions."""

    event_id: str
    score: float
    contributions: Dict[str, float]
    features: RankingFeatures

    @property
    def contribution_total(self) -> float:
        return math.fsum(self.contributions.values())
