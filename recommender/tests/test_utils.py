"""
Utility and Metrics Tests

- haversine distance, travel time estimate, city-center lookup
- score helpers (clamp01, sigmoid, taste similarity)
- LatencyTracker percentiles and per-endpoint targets
- trace-scoped logging

Run:
----
    pytest recommender/tests/test_utils.py -v
"""

import logging

import pytest

from recommender.graph import LatencyTracker
from recommender.graph.tracing import trace_logger
from recommender.models import AgentRequest, AgentState, PipelineConfig
from recommender.utils import (
    clamp01,
    estimate_travel_minutes,
    get_city_center,
    haversine_km,
    sigmoid,
    taste_similarity,
)

# Manhattan to Brooklyn centers, roughly
NY_TO_BROOKLYN_KM = 6.5


class TestDistance:
    def test_haversine(self):
        ny = get_city_center("New York")
        bk = get_city_center("brooklyn")
        assert haversine_km(*ny, *bk) == pytest.approx(NY_TO_BROOKLYN_KM, abs=0.5)

    def test_zero_distance(self):
        assert haversine_km(40.0, -74.0, 40.0, -74.0) == 0.0

    def test_travel_minutes(self):
        assert estimate_travel_minutes(5.0) == 60
        assert estimate_travel_minutes(1.0) == 12

    def test_unknown_city(self):
        assert get_city_center("Atlantis") is None
        assert get_city_center(None) is None


class TestScores:
    def test_clamp01(self):
        assert clamp01(1.5) == 1.0
        assert clamp01(-0.2) == 0.0
        assert clamp01(float("nan")) == 0.0

    def test_sigmoid(self):
        assert sigmoid(0) == 0.5
        assert sigmoid(-1000) == 0.0

    def test_taste_similarity_mismatch(self):
        assert taste_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.5
        assert taste_similarity([], [1.0]) == 0.5

    def test_taste_similarity_clamped(self):
        assert taste_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0


class TestLatencyTracker:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.tracker = LatencyTracker(max_samples=100)

    def test_percentiles(self):
        for i in range(1, 101):
            self.tracker.record(f"t{i}", "/api/recommend", float(i * 10), {"rank": 2.0})
        summary = self.tracker.summary("/api/recommend")
        assert summary.count == 100
        assert summary.p50 == 510.0
        assert summary.p95 == 960.0
        assert summary.p99 == 1000.0
        assert summary.target == 800.0
        assert summary.meeting_target_pct == 80.0
        assert summary.node_avg_ms == {"rank": 2.0}

    def test_bounded_buffer(self):
        for i in range(150):
            self.tracker.record(f"t{i}", "/api/ask", 10.0)
        assert len(self.tracker) == 100

    def test_default_target(self):
        sample = self.tracker.record("t1", "/api/other", 1200.0)
        assert sample.target_ms == 1000.0
        assert not sample.meets_target

    def test_unknown_endpoint(self):
        assert self.tracker.summary("/api/recommend") is None

    def test_endpoints_and_clear(self):
        self.tracker.record("t1", "/api/ask", 100.0)
        self.tracker.record("t2", "/api/recommend", 100.0)
        assert self.tracker.endpoints() == ["/api/ask", "/api/recommend"]
        self.tracker.clear()
        assert len(self.tracker) == 0


class TestTracing:
    def test_trace_prefix(self, caplog):
        state = AgentState.from_request(AgentRequest(session_id="s1", trace_id="abc"))
        log = trace_logger(logging.getLogger("recommender.test"), state)
        with caplog.at_level(logging.INFO, logger="recommender.test"):
            log.info("[graph] hello %s", "world")
        record = caplog.records[-1]
        assert record.getMessage() == "[trace=abc] [graph] hello world"
        assert record.trace_id == "abc"
        assert record.session_id == "s1"

    def test_generated_trace_id(self):
        state = AgentState.from_request(AgentRequest(session_id="s1"))
        assert state.trace_id.startswith("trace_")


class TestPipelineConfig:
    def test_from_dict_sections(self):
        config = PipelineConfig.from_dict({
            "retrieval": {"retrieval_top_k": 40, "rerank_top": 20},
            "bandit": {"bandit_epsilon": 0.1},
            "log_timeout_s": 3.0,
            "unknown": 1,
        })
        assert config.retrieval_top_k == 40
        assert config.bandit_epsilon == 0.1
        assert config.log_timeout_s == 3.0

    def test_invalid_ranges(self):
        with pytest.raises(ValueError):
            PipelineConfig(rerank_top=200, retrieval_top_k=100)
        with pytest.raises(ValueError):
            PipelineConfig(signal_timeout_s=0)
        with pytest.raises(ValueError):
            PipelineConfig(bandit_epsilon=1.5)
