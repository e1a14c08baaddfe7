"""
Slates: policy selection (bandit), within-slate exploration, and composition.

Public API: compose_slates, choose_policy, apply_epsilon_greedy.
"""

from .bandit import (
    BanditMemory,
    BanditStats,
    choose_policy,
    get_bandit_stats,
    record_policy_outcome,
    reset_bandit_stats,
    reward_score,
    select_policy,
    thompson_sampling_select,
)
from .composer import (
    calculate_slate_overlap,
    compose_slates,
    diversify_slate,
    empty_slates,
    slate_diversity,
    to_slate_item,
)
from .exploration import apply_epsilon_greedy

__all__ = [
    "BanditMemory",
    "BanditStats",
    "choose_policy",
    "get_bandit_stats",
    "record_policy_outcome",
    "reset_bandit_stats",
    "reward_score",
    "select_policy",
    "thompson_sampling_select",
    "calculate_slate_overlap",
    "compose_slates",
    "diversify_slate",
    "empty_slates",
    "slate_diversity",
    "to_slate_item",
    "apply_epsilon_greedy",
]
