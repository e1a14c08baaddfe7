"""
Ranking Tests

Covers feature engineering (time fit, distance, price, mood, social heat) and the
weighted-sum ranker.

Boundaries checked:
-------------------
- time_fit: starts in the past -> 0.1, exactly at the window edge -> 1.0,
  at 1.5x the window -> 0.6, at 3x -> 0.3, beyond -> 0.1
- price_comfort (casual, ceiling 75): 75 -> 1.0, 97.5 (1.3x) -> 0.6, above -> 0.2
- price_comfort (free): 0 -> 1.0, anything above 0 -> 0.0
- unknown price -> 0.6 in every tier

Ranker invariants:
------------------
- Same features and weights -> same score
- score == sum(contributions) within 1e-9, even when snapshot weights sum past 1
- Features outside [0, 1] are clamped before weighting

Run:
----
    pytest recommender/tests/test_ranking.py -v
"""

import asyncio
import math
from datetime import timedelta

import pytest
from pydantic import ValidationError

from recommender.models import EnrichedEvent, RankerConfig, RankingFeatures, SocialHeat
from recommender.stages.ranking import (
    Ranker,
    build_features,
    distance_comfort,
    mood_alignment,
    price_comfort,
    social_heat,
    time_fit,
)

from .fakes import NOW, FakeSnapshotStore, make_event, make_intention

CONTRIBUTION_TOLERANCE = 1e-9
CASUAL_CEILING = 75.0


def _features(**overrides) -> RankingFeatures:
    values = {
        "event_id": "evt-1",
        "textual_similarity": 0.7,
        "semantic_similarity": 0.8,
        "time_fit": 1.0,
        "distance_comfort": 0.7,
        "price_comfort": 1.0,
        "mood_alignment": 1.0,
        "social_heat_score": 0.6,
        "novelty_score": 0.5,
        "taste_match_score": 0.5,
    }
    values.update(overrides)
    return RankingFeatures(**values)


class TestTimeFit:
    """Discrete decay relative to intention.now."""

    @pytest.fixture(autouse=True)
    def setup(self):
        self.intention = make_intention(until_minutes=180)

    def test_past_event(self):
        assert time_fit(NOW - timedelta(minutes=5), self.intention) == 0.1

    def test_exact_window_edge(self):
        assert time_fit(NOW + timedelta(minutes=180), self.intention) == 1.0

    def test_one_and_a_half_window(self):
        assert time_fit(NOW + timedelta(minutes=270), self.intention) == 0.6

    def test_three_windows(self):
        assert time_fit(NOW + timedelta(minutes=540), self.intention) == 0.3

    def test_far_future(self):
        assert time_fit(NOW + timedelta(minutes=541), self.intention) == 0.1


class TestPriceComfort:
    """Budget tier boundaries."""

    def test_casual_at_ceiling(self):
        assert price_comfort(CASUAL_CEILING, None, "casual") == 1.0

    def test_casual_at_stretch(self):
        assert price_comfort(CASUAL_CEILING * 1.3, None, "casual") == 0.6

    def test_casual_beyond_stretch(self):
        assert price_comfort(CASUAL_CEILING * 1.3 + 0.01, None, "casual") == 0.2

    def test_free_tier_is_binary(self):
        assert price_comfort(0, 0, "free") == 1.0
        assert price_comfort(1, 5, "free") == 0.0

    def test_unknown_price_is_optimistic(self):
        for tier in ("free", "casual", "splurge"):
            assert price_comfort(None, None, tier) == 0.6

    def test_price_max_used_when_min_missing(self):
        assert price_comfort(None, 300, "splurge") == 0.6


class TestDistanceAndMood:
    def test_distance_bands(self):
        assert distance_comfort(2.5, 5) == 1.0
        assert distance_comfort(5.0, 5) == 0.7
        assert distance_comfort(7.5, 5) == 0.4
        assert distance_comfort(10, 5) == 0.1

    def test_unknown_distance(self):
        assert distance_comfort(None, 5) == 0.5

    def test_mood_exact_category(self):
        assert mood_alignment("MUSIC", [], "electric") == 1.0

    def test_mood_category_case_insensitive(self):
        assert mood_alignment("music", [], "electric") == 1.0

    def test_mood_substring_category(self):
        assert mood_alignment("LIVE_MUSIC", [], "electric") == 0.7

    def test_mood_from_tags(self):
        assert mood_alignment("OTHER", ["dance party"], "electric") == 0.6

    def test_mood_no_category(self):
        assert mood_alignment(None, [], "electric") == 0.4

    def test_mood_mismatch(self):
        assert mood_alignment("FITNESS", [], "electric") == 0.3

    def test_social_heat_bounded(self):
        cold = social_heat(0, 0, 0)
        hot = social_heat(500, 200, 12)
        assert 0.0 <= cold < hot <= 1.0


class TestBuildFeatures:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.intention = make_intention()

    def test_vector_hit_carries_semantic(self):
        event = EnrichedEvent.neutral(make_event("a", source="vector", score=0.9))
        features = build_features(event, self.intention)
        assert features.semantic_similarity == 0.9
        assert features.textual_similarity == 0.5

    def test_hybrid_hit_carries_textual(self):
        event = EnrichedEvent.neutral(make_event("a", source="hybrid", score=0.4))
        features = build_features(event, self.intention)
        assert features.textual_similarity == 0.4
        assert features.semantic_similarity == 0.5

    def test_social_signals_copied(self):
        event = EnrichedEvent.neutral(make_event("a")).model_copy(
            update={"social_heat": SocialHeat(views=40, saves=5), "friend_interest": 2}
        )
        features = build_features(event, self.intention)
        assert features.views_24h == 40
        assert features.saves_24h == 5
        assert features.friend_interest == 2
        assert features.social_heat_score == social_heat(40, 5, 2)


class TestRanker:
    """Weighted-sum scoring invariants."""

    @pytest.fixture(autouse=True)
    def setup(self):
        self.ranker = Ranker()

    def test_deterministic(self):
        features = _features()
        assert self.ranker.score(features).score == self.ranker.score(features).score

    def test_score_equals_contribution_sum(self):
        scored = self.ranker.score(_features())
        assert abs(scored.score - math.fsum(scored.contributions.values())) < CONTRIBUTION_TOLERANCE
        assert 0.0 <= scored.score <= 1.0

    def test_out_of_range_features_clamped(self):
        high = self.ranker.score(_features(time_fit=1.5))
        at_one = self.ranker.score(_features(time_fit=1.0))
        low = self.ranker.score(_features(novelty_score=-0.2))
        at_zero = self.ranker.score(_features(novelty_score=0.0))
        assert high.contributions["time_fit"] == at_one.contributions["time_fit"]
        assert low.contributions["novelty"] == 0.0
        assert low.score == at_zero.score

    def test_oversized_weights_rescaled(self):
        self.ranker.update_weights({"textual": 2.0, "semantic": 2.0})
        scored = self.ranker.score(_features(textual_similarity=1.0, semantic_similarity=1.0))
        assert scored.score <= 1.0
        assert abs(scored.score - math.fsum(scored.contributions.values())) < CONTRIBUTION_TOLERANCE

    def test_score_events_preserves_order(self):
        scored = self.ranker.score_events([_features(event_id="x"), _features(event_id="y")])
        assert [s.event_id for s in scored] == ["x", "y"]

    def test_update_weights_merges(self):
        self.ranker.update_weights({"novelty": 0.3}, version="2.0.0")
        config = self.ranker.get_config()
        assert config.weights.novelty == 0.3
        assert config.weights.textual == 0.20
        assert self.ranker.version == "2.0.0"

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            self.ranker.update_weights({"novelty": -1})

    def test_ml_model_not_implemented(self):
        ranker = Ranker(RankerConfig(model_type="ml_model"))
        with pytest.raises(NotImplementedError):
            ranker.score(_features())
        with pytest.raises(ValueError):
            ranker.update_weights({"novelty": 0.2})


class TestRankerSnapshots:
    """Loading weights from the snapshot store."""

    def test_snapshot_weights_loaded(self):
        store = FakeSnapshotStore(weights={"textual": 0.5, "moodAlignment": 0.3})
        ranker = asyncio.run(Ranker.from_snapshot_store(store))
        weights = ranker.get_config().weights
        assert weights.textual == 0.5
        assert weights.mood_alignment == 0.3
        assert ranker.version == "snap-1-snapshot"

    def test_failing_store_falls_back(self):
        ranker = asyncio.run(Ranker.from_snapshot_store(FakeSnapshotStore(fail=True)))
        assert ranker.get_config().weights == Ranker().get_config().weights

    def test_missing_snapshot_falls_back(self):
        ranker = asyncio.run(Ranker.from_snapshot_store(FakeSnapshotStore()))
        assert ranker.version == "1.0.0"

    def test_malformed_snapshot_falls_back(self):
        store = FakeSnapshotStore(weights={"textual": -3})
        ranker = asyncio.run(Ranker.from_snapshot_store(store))
        assert ranker.get_config().weights.textual == 0.20

    def test_no_store(self):
        ranker = asyncio.run(Ranker.from_snapshot_store(None))
        assert ranker.version == "1.0.0"
