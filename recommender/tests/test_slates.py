"""
Slate Composition and Policy Selection Tests

Composition:
------------
- Best / Wildcard / Close & Easy are filled in that order and never share an event,
  so pairwise overlap stays under MAX_SLATE_OVERLAP for any candidate count
- Zero ranked events -> three empty slates with zero diversity
- Reasons per item are capped at three

Exploration:
------------
- 50 candidates, top_k=10, epsilon=0.3 -> 10 items, at most 3 explored
- epsilon=0 -> exactly the top 10, nothing explored

Bandit:
-------
- The leader needs min_impressions trials, otherwise the first policy leads
- epsilon=1 always picks a challenger, epsilon=0 always the leader
- An active stored policy overrides the bandit and carries its params

Run:
----
    pytest recommender/tests/test_slates.py -v
"""

import asyncio
import random
from itertools import combinations

import pytest

from recommender.models import DEFAULT_POLICY, EXPLORATION_POLICY, KNOWN_POLICIES, PipelineConfig, RankedEvent, StoredSlatePolicy
from recommender.stages.slates import (
    BanditMemory,
    apply_epsilon_greedy,
    calculate_slate_overlap,
    choose_policy,
    compose_slates,
    diversify_slate,
    get_bandit_stats,
    record_policy_outcome,
    reset_bandit_stats,
    reward_score,
    select_policy,
    slate_diversity,
    thompson_sampling_select,
    to_slate_item,
)

from .fakes import NOW, FakeSnapshotStore

MAX_SLATE_OVERLAP = 0.4
SEED = 7


def _ranked(event_id: str, score: float, **overrides) -> RankedEvent:
    values = {
        "event_id": event_id,
        "score": score,
        "start_time": NOW,
        "category": "MUSIC",
        "venue_name": f"Venue {event_id}",
        "price_min": 40.0,
        "distance_km": 3.0,
        "novelty_score": 0.5,
    }
    values.update(overrides)
    return RankedEvent(**values)


def _mixed_pool(n: int):
    events = []
    for i in range(n):
        events.append(_ranked(
            f"e{i:02d}",
            score=0.95 - i * 0.02,
            novelty_score=0.8 if i % 3 == 0 else 0.3,
            price_min=10.0 if i % 2 == 0 else 60.0,
            category=["MUSIC", "ARTS", "FOOD"][i % 3],
        ))
    return events


class _Scored:
    def __init__(self, score):
        self.score = score


class TestEpsilonGreedy:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.candidates = [_Scored(1.0 - i / 100) for i in range(50)]

    def test_bounded_exploration(self):
        selected, explored = apply_epsilon_greedy(
            self.candidates, top_k=10, epsilon=0.3, rng=random.Random(SEED)
        )
        assert len(selected) == 10
        assert len(explored) <= 3
        assert selected[:7] == self.candidates[:7]
        assert all(10 <= i < 30 for i in explored)

    def test_no_exploration(self):
        selected, explored = apply_epsilon_greedy(self.candidates, top_k=10, epsilon=0.0)
        assert selected == self.candidates[:10]
        assert explored == []

    def test_seeded_runs_repeat(self):
        first = apply_epsilon_greedy(self.candidates, top_k=10, epsilon=0.3, rng=random.Random(SEED))
        second = apply_epsilon_greedy(self.candidates, top_k=10, epsilon=0.3, rng=random.Random(SEED))
        assert first[1] == second[1]

    def test_small_pool_fills_deterministically(self):
        selected, explored = apply_epsilon_greedy(self.candidates[:12], top_k=10, epsilon=0.3)
        assert len(selected) == 10
        assert len(explored) <= 2
        assert len({id(s) for s in selected}) == 10

    def test_empty(self):
        assert apply_epsilon_greedy([], top_k=10) == ([], [])


class TestComposeSlates:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.events = _mixed_pool(30)

    def test_slates_do_not_overlap(self):
        slates = compose_slates(self.events, DEFAULT_POLICY, rng=random.Random(SEED))
        for a, b in combinations(slates.all(), 2):
            assert calculate_slate_overlap(a, b) < MAX_SLATE_OVERLAP
        assert slates.total_events > 0

    def test_overlap_with_exploration_policy(self):
        slates = compose_slates(self.events, EXPLORATION_POLICY, rng=random.Random(SEED))
        ids = [eid for slate in slates.all() for eid in slate.event_ids]
        assert len(ids) == len(set(ids))

    def test_best_is_top_scores(self):
        slates = compose_slates(self.events, DEFAULT_POLICY)
        assert slates.best.event_ids == [e.event_id for e in self.events[:10]]
        assert all(not item.exploratory for item in slates.best.events)
        assert slates.best.events[0].reasons[0] == "top fit score"

    def test_wildcard_filters(self):
        slates = compose_slates(self.events, DEFAULT_POLICY)
        by_id = {e.event_id: e for e in self.events}
        for eid in slates.wildcard.event_ids:
            assert by_id[eid].novelty_score >= DEFAULT_POLICY.wildcard_novelty_threshold
            assert by_id[eid].score >= DEFAULT_POLICY.wildcard_min_score

    def test_close_and_easy_sorted_by_price(self):
        slates = compose_slates(self.events, DEFAULT_POLICY)
        prices = [item.price_min for item in slates.close_and_easy.events]
        assert prices == sorted(prices)
        assert all(p <= DEFAULT_POLICY.close_easy_max_price for p in prices)

    def test_labels(self):
        slates = compose_slates(self.events)
        assert slates.best.label == "Best Matches"
        assert slates.wildcard.label == "Wildcard Picks"
        assert slates.close_and_easy.label == "Close & Easy"

    def test_empty(self):
        slates = compose_slates([])
        assert slates.total_events == 0
        assert all(s.diversity == 0.0 for s in slates.all())


class TestSlateHelpers:
    def test_diversity(self):
        same = [_ranked("a", 0.5, venue_name="V"), _ranked("b", 0.5, venue_name="V")]
        different = [_ranked("a", 0.5, category="MUSIC"), _ranked("b", 0.5, category="ARTS")]
        assert slate_diversity(same) == 0.0
        assert slate_diversity(different) == 1.0
        assert slate_diversity(same[:1]) == 1.0
        assert slate_diversity([]) == 0.0

    def test_diversify_prefers_different_event(self):
        events = [
            _ranked("a", 0.90, venue_name="V1", price_min=20),
            _ranked("b", 0.85, venue_name="V1", price_min=20),
            _ranked("c", 0.80, category="ARTS", venue_name="V2", price_min=80),
        ]
        picked = diversify_slate(events, top_k=2)
        assert [e.event_id for e in picked] == ["a", "c"]

    def test_reasons(self):
        item = to_slate_item(_ranked("a", 0.9, distance_km=0.94, price_min=0), 0)
        assert item.reasons == ["0.9 km away", "free"]

        item = to_slate_item(_ranked("b", 0.9, distance_km=3.4, price_min=15, social_heat_score=0.8), 1)
        assert item.reasons == ["3 km away", "under $15", "trending"]

    def test_reasons_capped(self):
        item = to_slate_item(
            _ranked("a", 0.9, distance_km=0.5, price_min=0), 0, "novel discovery", "something new"
        )
        assert item.reasons == ["novel discovery", "something new", "0.5 km away"]


class TestBandit:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.memory = BanditMemory()
        self.rng = random.Random(SEED)

    def _record(self, name: str, reward: float, times: int):
        for _ in range(times):
            record_policy_outcome(self.memory, name, reward)

    def test_default_leader_without_data(self):
        selection = select_policy(KNOWN_POLICIES, self.memory, epsilon=0.0, rng=self.rng)
        assert selection.policy_name == DEFAULT_POLICY.name
        assert not selection.was_exploration

    def test_leader_by_average_reward(self):
        self._record(DEFAULT_POLICY.name, 0.2, 10)
        self._record(EXPLORATION_POLICY.name, 0.9, 10)
        selection = select_policy(KNOWN_POLICIES, self.memory, epsilon=0.0, rng=self.rng)
        assert selection.policy_name == EXPLORATION_POLICY.name

    def test_leader_needs_min_impressions(self):
        self._record(EXPLORATION_POLICY.name, 0.9, 5)
        selection = select_policy(KNOWN_POLICIES, self.memory, epsilon=0.0, rng=self.rng)
        assert selection.policy_name == DEFAULT_POLICY.name

    def test_full_exploration(self):
        selection = select_policy(KNOWN_POLICIES, self.memory, epsilon=1.0, rng=self.rng)
        assert selection.policy_name == EXPLORATION_POLICY.name
        assert selection.was_exploration

    def test_no_policies(self):
        with pytest.raises(ValueError):
            select_policy([], self.memory, epsilon=0.1, rng=self.rng)

    def test_thompson_follows_evidence(self):
        for _ in range(100):
            self.memory.update_stats(EXPLORATION_POLICY.name, 1.0)
            self.memory.update_stats(DEFAULT_POLICY.name, 0.0)
        selection = thompson_sampling_select(KNOWN_POLICIES, self.memory, self.rng)
        assert selection.policy_name == EXPLORATION_POLICY.name
        assert not selection.was_exploration

    def test_outcome_clamped(self):
        stats = record_policy_outcome(self.memory, DEFAULT_POLICY.name, 1.5)
        assert stats.total_reward == 1.0
        assert stats.successes == 1
        stats = record_policy_outcome(self.memory, DEFAULT_POLICY.name, 0.5)
        assert stats.successes == 1
        assert stats.average_reward == 0.75

    def test_stats_and_reset(self):
        record_policy_outcome(self.memory, DEFAULT_POLICY.name, 0.7)
        assert [s.policy_name for s in get_bandit_stats(self.memory)] == [DEFAULT_POLICY.name]
        reset_bandit_stats(self.memory)
        assert get_bandit_stats(self.memory) == []

    def test_reward_score(self):
        assert reward_score(0.0, 0.0) == pytest.approx(0.2)
        assert reward_score(1.0, 1.0) == pytest.approx(1.0)
        assert reward_score(0.0, 0.0, hide_rate=1.0) == 0.0


class TestChoosePolicy:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.memory = BanditMemory()
        self.config = PipelineConfig(bandit_epsilon=0.0)

    def test_active_stored_policy_wins(self):
        store = FakeSnapshotStore(policy=StoredSlatePolicy(
            name=EXPLORATION_POLICY.name, params={"bestTopK": 5}, is_active=True
        ))
        selection = asyncio.run(choose_policy(store, self.memory, random.Random(SEED), self.config))
        assert selection.policy_name == EXPLORATION_POLICY.name
        assert selection.policy.best_top_k == 5
        assert selection.policy.wildcard_top_k == EXPLORATION_POLICY.wildcard_top_k

    def test_inactive_stored_policy_ignored(self):
        store = FakeSnapshotStore(policy=StoredSlatePolicy(name=EXPLORATION_POLICY.name, is_active=False))
        selection = asyncio.run(choose_policy(store, self.memory, random.Random(SEED), self.config))
        assert selection.policy_name == DEFAULT_POLICY.name

    def test_unknown_stored_policy_ignored(self):
        store = FakeSnapshotStore(policy=StoredSlatePolicy(name="mystery", is_active=True))
        selection = asyncio.run(choose_policy(store, self.memory, random.Random(SEED), self.config))
        assert selection.policy_name == DEFAULT_POLICY.name

    def test_failing_store_uses_bandit(self):
        selection = asyncio.run(
            choose_policy(FakeSnapshotStore(fail=True), self.memory, random.Random(SEED), self.config)
        )
        assert selection.policy_name == DEFAULT_POLICY.name

    def test_thompson_strategy(self):
        config = PipelineConfig(bandit_strategy="thompson")
        selection = asyncio.run(choose_policy(None, self.memory, random.Random(SEED), config))
        assert selection.policy_name in {p.name for p in KNOWN_POLICIES}
