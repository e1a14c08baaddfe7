"""
Within-slate epsilon-greedy exploration.

The top (top_k - explore_count) candidates are taken deterministically; the remaining
slots are drawn at random from a secondary pool of lower rank positions (10-30) so
the slate keeps gathering signal on items just below the fold.
"""

import math
import random
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

EXPLORATION_POOL_START = 10
EXPLORATION_POOL_END = 30
# Explored slots never exceed this share of the candidate list
MAX_EXPLORE_SHARE = 0.2


def apply_epsilon_greedy(
    candidates: Sequence[T],
    top_k: int = 10,
    epsilon: float = 0.15,
    rng: Optional[random.Random] = None,
    key: Callable[[T], float] = lambda c: c.score,
) -> Tuple[List[T], List[int]]:
    """
    Select top_k candidates with epsilon-greedy exploration.

    Args:
        candidates: Items in any order; they are sorted by key descending.
        top_k: Number of items to return (fewer when candidates run out).
        epsilon: Share of slots that may be exploratory.
        rng: Random source; pass a seeded random.Random for reproducible picks.
        key: Score accessor.

    Returns:
        (selected, explored_indices) where explored_indices are positions in the
        score-sorted candidate list of the items chosen by exploration.
    """
    if not candidates or top_k <= 0:
        return [], []

    rng = rng or random.Random()
    ordered = sorted(candidates, key=key, reverse=True)

    explore_count = min(
        math.floor(top_k * epsilon),
        math.floor(len(ordered) * MAX_EXPLORE_SHARE),
    )
    explore_count = max(0, explore_count)
    deterministic_count = top_k - explore_count

    selected = list(ordered[:deterministic_count])
    explored_indices: List[int] = []

    if explore_count > 0:
        pool_start = max(EXPLORATION_POOL_START, deterministic_count)
        pool = list(range(pool_start, min(EXPLORATION_POOL_END, len(ordered))))
        for _ in range(explore_count):
            if not pool:
                break
            index = pool.pop(rng.randrange(len(pool)))
            selected.append(ordered[index])
            explored_indices.append(index)

        # Pool ran short: fill the remaining slots with the next best items
        if len(selected) < top_k:
            taken = set(explored_indices)
            for index in range(deterministic_count, len(ordered)):
                if len(selected) >= top_k:
                    break
                if index not in taken:
                    selected.append(ordered[index])

    return selected[:top_k], explored_indices
