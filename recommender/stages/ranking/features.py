"""
Feature engineering for the ranker.

Every helper is a pure function of its arguments: no I/O, no randomness, no wall
clock (time math is relative to intention.now). Missing data maps to an optimistic
neutral value rather than a penalty:
- unknown distance -> distance_comfort 0.5
- unknown price -> price_comfort 0.6
- no category -> mood_alignment 0.4
"""

from datetime import datetime
from typing import Dict, List, Optional

from ...models.event import EnrichedEvent
from ...models.intention import Intention
from ...models.scoring import RankingFeatures
from ...utils.scores import sigmoid
from ...utils.timeutil import minutes_between

# Budget tier -> price ceiling (same currency as event prices)
BUDGET_CEILINGS: Dict[str, float] = {
    "free": 0.0,
    "casual": 75.0,
    "splurge": 250.0,
}

MOOD_CATEGORIES: Dict[str, List[str]] = {
    "calm": ["FITNESS", "ARTS", "WELLNESS", "FOOD"],
    "social": ["FOOD", "NETWORKING", "MUSIC"],
    "electric": ["MUSIC", "DANCE", "COMEDY"],
    "artistic": ["ARTS", "THEATRE", "DANCE"],
    "grounded": ["FAMILY", "FITNESS", "OTHER"],
}

UNKNOWN_DISTANCE_COMFORT = 0.5
UNKNOWN_PRICE_COMFORT = 0.6
NO_CATEGORY_MOOD_ALIGNMENT = 0.4
NEUTRAL_RELEVANCE = 0.5


def time_fit(start_time: datetime, intention: Intention) -> float:
    """Discrete decay on minutes until start: 1.0 / 0.6 / 0.3 / 0.1."""
    until = intention.tokens.until_minutes
    diff = minutes_between(intention.now, start_time)
    if diff < 0:
        return 0.1
    if diff <= until:
        return 1.0
    if diff <= until * 1.5:
        return 0.6
    if diff <= until * 3:
        return 0.3
    return 0.1


def distance_comfort(distance_km: Optional[float], max_distance_km: float) -> float:
    if distance_km is None or max_distance_km <= 0:
        return UNKNOWN_DISTANCE_COMFORT
    ratio = distance_km / max_distance_km
    if ratio <= 0.5:
        return 1.0
    if ratio <= 1.0:
        return 0.7
    if ratio <= 1.5:
        return 0.4
    return 0.1


def price_comfort(price_min: Optional[float], price_max: Optional[float], budget: str) -> float:
    """
    Fit of an event's entry price to the budget tier.

    The entry price is price_min, or price_max when only that is known. The free
    tier is all-or-nothing; other tiers decay past the ceiling.
    """
    price = price_min if price_min is not None else price_max
    if price is None:
        return UNKNOWN_PRICE_COMFORT
    ceiling = BUDGET_CEILINGS.get(budget, BUDGET_CEILINGS["casual"])
    if ceiling == 0:
        return 1.0 if price == 0 else 0.0
    if price <= ceiling:
        return 1.0
    if price <= ceiling * 1.3:
        return 0.6
    return 0.2


def mood_alignment(category: Optional[str], tags: List[str], mood: str) -> float:
    matches = MOOD_CATEGORIES.get(mood, [])
    if category:
        normalized = category.upper()
        if normalized in matches:
            return 1.0
        if any(m in normalized for m in matches):
            return 0.7
    if any(m in tag.upper() for tag in tags for m in matches):
        return 0.6
    if not category:
        return NO_CATEGORY_MOOD_ALIGNMENT
    return 0.3


def social_heat(views_24h: int, saves_24h: int, friend_interest: int) -> float:
    view_heat = sigmoid(views_24h / 50)
    save_heat = sigmoid(saves_24h / 15)
    friend_heat = sigmoid(friend_interest)
    return min(1.0, max(0.0, (view_heat + save_heat * 1.2 + friend_heat * 1.5) / 3.7))


def build_features(event: EnrichedEvent, intention: Intention) -> RankingFeatures:
    """
    Assemble RankingFeatures for one enriched event.

    Relevance scores are passed through unclamped; the ranker clamps each feature.
    Keyword-matched events (keyword or hybrid source) carry textual similarity,
    vector hits carry semantic similarity, and the other one is neutral.
    """
    tokens = intention.tokens
    textual = event.score if event.source in ("keyword", "hybrid") else NEUTRAL_RELEVANCE
    semantic = event.score if event.source == "vector" else NEUTRAL_RELEVANCE
    return RankingFeatures(
        event_id=event.id,
        textual_similarity=textual,
        semantic_similarity=semantic,
        time_fit=time_fit(event.start_time, intention),
        distance_km=event.distance_km,
        distance_comfort=distance_comfort(event.distance_km, tokens.distance_km),
        price_min=event.price_min,
        price_max=event.price_max,
        price_comfort=price_comfort(event.price_min, event.price_max, tokens.budget),
        category=event.category,
        tags=list(event.tags),
        mood_alignment=mood_alignment(event.category, event.tags, tokens.mood),
        views_24h=event.social_heat.views,
        saves_24h=event.social_heat.saves,
        friend_interest=event.friend_interest,
        social_heat_score=social_heat(
            event.social_heat.views, event.social_heat.saves, event.friend_interest
        ),
        novelty_score=event.novelty_score,
        taste_match_score=event.taste_match_score,
    )
