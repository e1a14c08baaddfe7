"""
Ranking: feature engineering and the weighted-sum ranker.

Public API: build_features, Ranker.
- features: pure per-feature helpers (time_fit, distance_comfort, price_comfort, ...).
- ranker: Ranker with snapshot loading and online weight updates.
"""

from .features import (
    BUDGET_CEILINGS,
    MOOD_CATEGORIES,
    build_features,
    distance_comfort,
    mood_alignment,
    price_comfort,
    social_heat,
    time_fit,
)
from .ranker import Ranker

__all__ = [
    "BUDGET_CEILINGS",
    "MOOD_CATEGORIES",
    "build_features",
    "distance_comfort",
    "mood_alignment",
    "price_comfort",
    "social_heat",
    "time_fit",
    "Ranker",
]
