"""
Slate composition: buckets ranked events into Best / Wildcard / Close & Easy.

Slates are filled in that order and each event lands in at most one slate, so the
pairwise id overlap between slates is zero by construction:
- best: highest scores, with epsilon-greedy exploration when the policy sets an
  exploration bonus
- wildcard: novel events above a minimum fit, MMR-diversified when enabled
- close_and_easy: affordable events above a minimum fit, cheapest then nearest
Zero ranked events yields three empty slates with zero diversity.
"""

import logging
import math
import random
from itertools import combinations
from typing import Iterable, List, Optional, Set

from ...models.slate import DEFAULT_POLICY, RankedEvent, Slate, SlateItem, SlatePolicy, SlateSet
from .exploration import apply_epsilon_greedy

logger = logging.getLogger(__name__)

TRENDING_HEAT = 0.7
CHEAP_PRICE = 20
UNKNOWN_DISTANCE_SORT_KM = 999.0

SLATE_LABELS = {
    "best": ("Best Matches", "top_score"),
    "wildcard": ("Wildcard Picks", "high_novelty"),
    "close_and_easy": ("Close & Easy", "accessible"),
}


# =============================================================================
# Metrics
# =============================================================================

def _pair_similarity(a: RankedEvent, b: RankedEvent) -> float:
    similarity = 0.0
    if a.category and a.category == b.category:
        similarity += 0.5
    if a.venue_name and a.venue_name == b.venue_name:
        similarity += 0.5
    return similarity


def slate_diversity(events: List[RankedEvent]) -> float:
    """1 - average pairwise category/venue similarity. One event is fully diverse; none scores 0."""
    if not events:
        return 0.0
    if len(events) == 1:
        return 1.0
    pairs = list(combinations(events, 2))
    return 1.0 - sum(_pair_similarity(a, b) for a, b in pairs) / len(pairs)


def calculate_slate_overlap(slate1: Slate, slate2: Slate) -> float:
    """Jaccard overlap of event ids; 0 when both slates are empty."""
    ids1, ids2 = set(slate1.event_ids), set(slate2.event_ids)
    union = ids1 | ids2
    return len(ids1 & ids2) / len(union) if union else 0.0


# =============================================================================
# Diversification
# =============================================================================

def _diversity_from(event: RankedEvent, others: List[RankedEvent]) -> float:
    if not others:
        return 1.0
    total = 0.0
    for other in others:
        similarity = 0.0
        if event.category and event.category == other.category:
            similarity += 0.3
        if event.venue_name and event.venue_name == other.venue_name:
            similarity += 0.5
        if abs((event.price_min or 0) - (other.price_min or 0)) < 10:
            similarity += 0.2
        total += 1.0 - similarity
    return total / len(others)


def diversify_slate(
    events: List[RankedEvent],
    top_k: int,
    diversity_weight: float = 0.3,
) -> List[RankedEvent]:
    """
    Greedy MMR re-selection.

    The first event is always kept; each next pick maximizes
    (1 - w) * score + w * diversity_from_selected.
    """
    if len(events) <= top_k:
        return list(events)

    remaining = list(events)
    selected = [remaining.pop(0)]
    while len(selected) < top_k and remaining:
        best = max(
            remaining,
            key=lambda e: (1 - diversity_weight) * e.score + diversity_weight * _diversity_from(e, selected),
        )
        selected.append(best)
        remaining.remove(best)
    return selected


# =============================================================================
# Items and slates
# =============================================================================

def _distance_reason(distance_km: Optional[float]) -> Optional[str]:
    if distance_km is None:
        return None
    if distance_km <= 1:
        return f"{round(distance_km, 1):g} km away"
    if distance_km <= 5:
        return f"{math.floor(distance_km + 0.5)} km away"
    return None


def to_slate_item(
    event: RankedEvent,
    position: int,
    *extra_reasons: str,
    exploratory: bool = False,
) -> SlateItem:
    """SlateItem with up to three reasons: slate reasons first, then distance, price, and heat."""
    reasons = list(extra_reasons)
    distance = _distance_reason(event.distance_km)
    if distance:
        reasons.append(distance)
    if event.price_min == 0:
        reasons.append("free")
    elif event.price_min and event.price_min < CHEAP_PRICE:
        reasons.append(f"under ${event.price_min:g}")
    if event.social_heat_score >= TRENDING_HEAT:
        reasons.append("trending")

    return SlateItem(
        event_id=event.event_id,
        position=position,
        score=event.score,
        reasons=reasons[:3],
        contributions=dict(event.contributions),
        exploratory=exploratory,
        title=event.title,
        venue_name=event.venue_name,
        city=event.city,
        start_time=event.start_time,
        end_time=event.end_time,
        price_min=event.price_min,
        price_max=event.price_max,
        category=event.category,
        description=event.description,
        neighborhood=event.neighborhood,
        distance_km=event.distance_km,
        image_url=event.image_url,
        booking_url=event.booking_url,
    )


def _slate(name: str, events: List[RankedEvent], items: List[SlateItem]) -> Slate:
    label, strategy = SLATE_LABELS[name]
    return Slate(name=name, label=label, strategy=strategy, events=items, diversity=slate_diversity(events))


def empty_slates() -> SlateSet:
    return SlateSet(
        best=_slate("best", [], []),
        wildcard=_slate("wildcard", [], []),
        close_and_easy=_slate("close_and_easy", [], []),
    )


def _excluding(events: Iterable[RankedEvent], taken: Set[str]) -> List[RankedEvent]:
    return [e for e in events if e.event_id not in taken]


def compose_slates(
    ranked_events: List[RankedEvent],
    policy: SlatePolicy = DEFAULT_POLICY,
    rng: Optional[random.Random] = None,
) -> SlateSet:
    """Compose the three slates for one request."""
    if not ranked_events:
        return empty_slates()

    ordered = sorted(ranked_events, key=lambda e: e.score, reverse=True)
    taken: Set[str] = set()

    # Best
    best_events, explored = apply_epsilon_greedy(
        ordered, top_k=policy.best_top_k, epsilon=policy.exploration_bonus, rng=rng
    )
    explored_ids = {ordered[i].event_id for i in explored}
    best_items = [
        to_slate_item(e, i, "top fit score", exploratory=e.event_id in explored_ids)
        for i, e in enumerate(best_events)
    ]
    taken.update(e.event_id for e in best_events)

    # Wildcard
    wildcard_pool = [
        e for e in _excluding(ordered, taken)
        if e.novelty_score >= policy.wildcard_novelty_threshold and e.score >= policy.wildcard_min_score
    ]
    wildcard_pool.sort(key=lambda e: e.novelty_score, reverse=True)
    if policy.enable_diversification:
        wildcard_events = diversify_slate(wildcard_pool, policy.wildcard_top_k)
    else:
        wildcard_events = wildcard_pool[: policy.wildcard_top_k]
    wildcard_items = [
        to_slate_item(e, i, "novel discovery", "something new") for i, e in enumerate(wildcard_events)
    ]
    taken.update(e.event_id for e in wildcard_events)

    # Close & easy
    close_pool = [
        e for e in _excluding(ordered, taken)
        if (e.price_min is None or e.price_min <= policy.close_easy_max_price)
        and e.score >= policy.close_easy_min_score
    ]
    close_pool.sort(key=lambda e: (
        e.price_min if e.price_min is not None else 0,
        e.distance_km if e.distance_km is not None else UNKNOWN_DISTANCE_SORT_KM,
    ))
    close_events = close_pool[: policy.close_easy_top_k]
    close_items = [to_slate_item(e, i, "affordable", "nearby") for i, e in enumerate(close_events)]

    slates = SlateSet(
        best=_slate("best", best_events, best_items),
        wildcard=_slate("wildcard", wildcard_events, wildcard_items),
        close_and_easy=_slate("close_and_easy", close_events, close_items),
    )
    logger.info(
        "[compose] policy %s: best=%d (explored %d), wildcard=%d, close_and_easy=%d",
        policy.name, len(best_items), len(explored), len(wildcard_items), len(close_items),
    )
    return slates
