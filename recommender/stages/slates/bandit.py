"""
Multi-armed bandit over slate policies.

Selection order for each request:
1. An active policy in the snapshot store that names a known policy wins outright,
   with its stored params merged in.
2. Otherwise the configured strategy picks:
   - epsilon_greedy: the leader is the policy with the highest average reward among
     those with at least min_impressions trials (the default policy when none
     qualify); with probability epsilon a random non-leader is tried instead.
   - thompson: one Beta(successes + 1, failures + 1) draw per policy, highest wins.

All randomness comes from the injected random.Random so tests can assert exact picks.
Statistics live in a process-local BanditMemory fed by record_policy_outcome().
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from ...backends import SnapshotStore
from ...models.config import PipelineConfig, resolve_config
from ...models.slate import KNOWN_POLICIES, PolicySelection, SlatePolicy
from ...utils.scores import clamp01
from ...utils.timeutil import utc_now

logger = logging.getLogger(__name__)

SUCCESS_THRESHOLD = 0.5


class BanditStats(BaseModel):
    policy_name: str
    trials: int = 0
    successes: int = 0
    total_reward: float = 0.0
    average_reward: float = 0.0
    last_used: Optional[datetime] = None


class BanditMemory:
    """In-process reward statistics per policy name."""

    def __init__(self):
        self._stats: Dict[str, BanditStats] = {}

    def get_stats(self, policy_name: str) -> BanditStats:
        if policy_name not in self._stats:
            self._stats[policy_name] = BanditStats(policy_name=policy_name)
        return self._stats[policy_name]

    def update_stats(self, policy_name: str, reward: float) -> BanditStats:
        stats = self.get_stats(policy_name)
        stats.trials += 1
        stats.successes += 1 if reward > SUCCESS_THRESHOLD else 0
        stats.total_reward += reward
        stats.average_reward = stats.total_reward / stats.trials
        stats.last_used = utc_now()
        logger.info(
            "[bandit] updated %s: trials=%d, avg_reward=%.3f",
            policy_name, stats.trials, stats.average_reward,
        )
        return stats

    def all_stats(self) -> List[BanditStats]:
        return [s.model_copy() for s in self._stats.values()]

    def reset(self) -> None:
        self._stats.clear()


def reward_score(ctr: float, save_rate: float, hide_rate: float = 0.0) -> float:
    """Aggregate engagement rates into a single [0, 1] reward."""
    return clamp01(0.3 * ctr + 0.5 * save_rate - 0.3 * hide_rate + 0.2)


def record_policy_outcome(memory: BanditMemory, policy_name: str, reward: float) -> BanditStats:
    """Record one outcome; reward is clamped to [0, 1] and counts as a success above 0.5."""
    return memory.update_stats(policy_name, clamp01(reward))


def get_bandit_stats(memory: BanditMemory) -> List[BanditStats]:
    return memory.all_stats()


def reset_bandit_stats(memory: BanditMemory) -> None:
    memory.reset()
    logger.info("[bandit] statistics reset")


# =============================================================================
# Selection strategies
# =============================================================================

def _leader(policies: List[SlatePolicy], memory: BanditMemory, min_impressions: int) -> SlatePolicy:
    qualified = [p for p in policies if memory.get_stats(p.name).trials >= min_impressions]
    if not qualified:
        return policies[0]
    return max(qualified, key=lambda p: memory.get_stats(p.name).average_reward)


def select_policy(
    policies: List[SlatePolicy],
    memory: BanditMemory,
    epsilon: float,
    rng: random.Random,
    min_impressions: int = 10,
) -> PolicySelection:
    """Epsilon-greedy policy selection."""
    if not policies:
        raise ValueError("No policies available")

    leader = _leader(policies, memory, min_impressions)
    challengers = [p for p in policies if p.name != leader.name]
    if challengers and rng.random() < epsilon:
        policy = challengers[rng.randrange(len(challengers))]
        logger.info("[bandit] exploring with policy %s", policy.name)
        return PolicySelection(policy=policy, policy_name=policy.name, was_exploration=True)

    logger.info(
        "[bandit] exploiting policy %s (avg reward %.3f)",
        leader.name, memory.get_stats(leader.name).average_reward,
    )
    return PolicySelection(policy=leader, policy_name=leader.name, was_exploration=False)


def thompson_sampling_select(
    policies: List[SlatePolicy],
    memory: BanditMemory,
    rng: random.Random,
    min_impressions: int = 10,
) -> PolicySelection:
    """Thompson sampling; was_exploration is set when the draw overrides the reward leader."""
    if not policies:
        raise ValueError("No policies available")

    def draw(policy: SlatePolicy) -> float:
        stats = memory.get_stats(policy.name)
        return rng.betavariate(stats.successes + 1, stats.trials - stats.successes + 1)

    samples = [(draw(p), p) for p in policies]
    sample, policy = max(samples, key=lambda s: s[0])
    leader = _leader(policies, memory, min_impressions)
    logger.info("[bandit] thompson sampling selected %s (sample %.3f)", policy.name, sample)
    return PolicySelection(
        policy=policy, policy_name=policy.name, was_exploration=policy.name != leader.name
    )


async def choose_policy(
    store: Optional[SnapshotStore],
    memory: BanditMemory,
    rng: random.Random,
    config: Optional[PipelineConfig] = None,
    policies: Optional[List[SlatePolicy]] = None,
) -> PolicySelection:
    """
    Choose the slate policy for one request.

    A failing or slow snapshot store is logged and skipped; selection then falls
    through to the bandit strategy.
    """
    config = resolve_config(config)
    policies = policies or KNOWN_POLICIES

    active = None
    if store is not None:
        try:
            active = await asyncio.wait_for(store.get_current_slate_policy(), timeout=config.policy_timeout_s)
        except Exception as e:
            logger.warning("[bandit] failed to read active policy: %s", str(e) or type(e).__name__)

    if active is not None and active.is_active:
        known = next((p for p in policies if p.name == active.name), None)
        if known is not None:
            logger.info("[bandit] using active stored policy %s", active.name)
            return PolicySelection(
                policy=known.merged(active.params), policy_name=active.name, was_exploration=False
            )

    if config.bandit_strategy == "thompson":
        return thompson_sampling_select(policies, memory, rng, config.bandit_min_impressions)
    return select_policy(policies, memory, config.bandit_epsilon, rng, config.bandit_min_impressions)

