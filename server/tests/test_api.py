"""
API Tests

Runs the FastAPI app over in-memory fake backends (no network, no credentials).

Endpoints covered:
------------------
- GET  /, /api/health
- POST /api/recommend, /api/ask
- GET  /api/policies/stats, POST /api/policies/outcome, POST /api/policies/reset,
  PUT  /api/policies/{name}
- GET  /api/events/{event_id}/similar
- GET  /api/metrics/latency

Expectations:
-------------
- Malformed requests -> 422 before the pipeline runs
- A critical node failure -> 200 with errors[] populated and partial state
- An active stored policy overrides bandit selection on the next request
- Every recommend/ask call is recorded by the latency tracker

Run:
----
    pytest server/tests/test_api.py -v
"""

import random

import pytest
from fastapi.testclient import TestClient

from recommender import AgentDependencies, Enricher, PipelineConfig, Retriever
from recommender.tests.fakes import NOW, NOW_ISO, FakeEmbedder, FakeGraph, FakeVectorSearch, make_event
from server import AppState, ServerConfig, app, set_state
from server.services import InMemoryEventLog, InMemorySnapshotStore

SEED = 3
EXPLORATION_POLICY_NAME = "80safe-20novel"

REFERENCE_REQUEST = {
    "session_id": "session-api",
    "trace_id": "trace-api",
    "city": "New York",
    "tokens": {"mood": "electric", "until_minutes": 180, "budget": "casual", "distance_km": 5},
    "now_iso": NOW_ISO,
}


def _events():
    return [
        make_event(f"evt-{i}", minutes_from_now=20 + i * 8, price_min=5.0 + i * 4, category=["MUSIC", "ARTS"][i % 2])
        for i in range(24)
    ]


class _BrokenRetriever:
    async def retrieve(self, *args, **kwargs):
        raise RuntimeError("index offline")


class TestApi:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.log_sink = InMemoryEventLog()
        self.snapshots = InMemorySnapshotStore()
        self.deps = AgentDependencies(
            retriever=Retriever(vector=FakeVectorSearch(_events()), embedder=FakeEmbedder()),
            enricher=Enricher(graph=FakeGraph()),
            snapshot_store=self.snapshots,
            log_sink=self.log_sink,
            config=PipelineConfig(bandit_epsilon=0.0),
            rng=random.Random(SEED),
            clock=lambda: NOW,
        )
        self.state = AppState(ServerConfig(), deps=self.deps)
        set_state(self.state)
        self.client = TestClient(app)
        yield
        set_state(None)

    # -------------------------------------------------------------------------
    # Root
    # -------------------------------------------------------------------------

    def test_root(self):
        body = self.client.get("/").json()
        assert body["default_city"] == "New York"
        assert "/api/recommend" in body["endpoints"]["recommend"]

    def test_health_without_backends(self):
        body = self.client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["qdrant"] == {"available": False, "message": "QDRANT_URL not set"}
        assert body["neo4j"]["available"] is False
        assert body["summaries"]["available"] is False

    # -------------------------------------------------------------------------
    # Recommend
    # -------------------------------------------------------------------------

    def test_recommend(self):
        response = self.client.post("/api/recommend", json=REFERENCE_REQUEST)
        assert response.status_code == 200
        body = response.json()
        assert body["trace_id"] == "trace-api"
        assert body["errors"] == []
        assert set(body["slates"]) == {"best", "wildcard", "close_and_easy"}
        assert len(body["slates"]["best"]["events"]) == 10
        assert body["degraded_flags"]["no_neo4j"] is False
        assert body["execution_metrics"]["success_rate"] == 1.0
        assert body["policy"]["policy_name"] == "balanced"
        assert 0 < len(body["reasons"]) <= 5

    def test_recommend_logs_interactions(self):
        self.client.post("/api/recommend", json=REFERENCE_REQUEST)
        types = [e["event_type"] for e in self.log_sink.events]
        assert types[0] == "QUERY"
        assert self.log_sink.events[0]["context"]["trace_id"] == "trace-api"

    def test_camel_case_request(self):
        response = self.client.post("/api/recommend", json={
            "sessionId": "s-camel",
            "freeText": "something chill",
            "nowIso": NOW_ISO,
        })
        assert response.status_code == 200
        assert response.json()["ai_summary"]

    def test_session_id_generated(self):
        response = self.client.post("/api/recommend", json={"now_iso": NOW_ISO})
        assert response.status_code == 200

    @pytest.mark.parametrize("payload", [
        {"session_id": ""},
        {"session_id": "s", "tokens": {"mood": "sleepy"}},
        {"session_id": "s", "now_iso": "yesterday"},
        {"session_id": "s", "unexpected": True},
    ])
    def test_invalid_requests(self, payload):
        assert self.client.post("/api/recommend", json=payload).status_code == 422

    def test_critical_failure_returns_partial_state(self):
        self.deps.retriever = _BrokenRetriever()
        response = self.client.post("/api/recommend", json=REFERENCE_REQUEST)
        assert response.status_code == 200
        body = response.json()
        assert body["errors"] == ["Critical failure in retrieve: index offline"]
        assert body["slates"] is None
        assert body["execution_metrics"]["success_rate"] == 0.5

    def test_ask(self):
        response = self.client.post("/api/ask", json={"free_text": "electric music tonight", "city": "New York"})
        assert response.status_code == 200
        assert "New York" in response.json()["ai_summary"]

    def test_ask_requires_text(self):
        assert self.client.post("/api/ask", json={"free_text": "   "}).status_code == 422
        assert self.client.post("/api/ask", json={}).status_code == 422

    # -------------------------------------------------------------------------
    # Policies
    # -------------------------------------------------------------------------

    def test_policy_outcomes(self):
        assert self.client.get("/api/policies/stats").json()["stats"] == []

        body = self.client.post("/api/policies/outcome", json={"policy_name": "balanced", "reward": 0.9}).json()
        assert body["trials"] == 1
        assert body["successes"] == 1

        body = self.client.post(
            "/api/policies/outcome", json={"policy_name": "balanced", "ctr": 0.0, "save_rate": 0.0}
        ).json()
        assert body["trials"] == 2
        assert body["total_reward"] == pytest.approx(1.1)

        stats = self.client.get("/api/policies/stats").json()
        assert [s["policy_name"] for s in stats["stats"]] == ["balanced"]

        self.client.post("/api/policies/reset")
        assert self.client.get("/api/policies/stats").json()["stats"] == []

    def test_outcome_validation(self):
        assert self.client.post("/api/policies/outcome", json={"policy_name": "balanced"}).status_code == 422
        assert self.client.post(
            "/api/policies/outcome", json={"policy_name": "mystery", "reward": 0.5}
        ).status_code == 404

    def test_active_policy_overrides_bandit(self):
        response = self.client.put(
            f"/api/policies/{EXPLORATION_POLICY_NAME}", json={"params": {"bestTopK": 6}, "is_active": True}
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is True

        body = self.client.post("/api/recommend", json=REFERENCE_REQUEST).json()
        assert body["policy"]["policy_name"] == EXPLORATION_POLICY_NAME
        assert len(body["slates"]["best"]["events"]) == 6

    def test_upsert_unknown_policy(self):
        assert self.client.put("/api/policies/mystery", json={"is_active": True}).status_code == 404

    def test_upsert_without_store(self):
        self.deps.snapshot_store = None
        assert self.client.put("/api/policies/balanced", json={}).status_code == 503

    # -------------------------------------------------------------------------
    # Events and metrics
    # -------------------------------------------------------------------------

    def test_similar_events(self):
        body = self.client.get("/api/events/evt-1/similar").json()
        assert body["similar"][0]["event_id"] == "evt-1-similar"

    def test_similar_events_without_graph(self):
        self.deps.enricher = Enricher()
        assert self.client.get("/api/events/evt-1/similar").json()["similar"] == []

    def test_latency_metrics(self):
        self.client.post("/api/recommend", json=REFERENCE_REQUEST)
        self.client.post("/api/ask", json={"free_text": "jazz"})
        body = self.client.get("/api/metrics/latency").json()
        assert body["samples"] == 2
        assert {e["endpoint"] for e in body["endpoints"]} == {"/api/recommend", "/api/ask"}

        summary = self.client.get("/api/metrics/latency", params={"endpoint": "/api/recommend"}).json()
        assert summary["count"] == 1
        assert summary["target"] == 800.0
        assert "rank" in summary["node_avg_ms"]

    def test_latency_unknown_endpoint(self):
        assert self.client.get("/api/metrics/latency", params={"endpoint": "/api/ask"}).status_code == 404
