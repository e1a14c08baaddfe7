"""Root and health endpoints."""

import asyncio
from typing import Tuple

from fastapi import APIRouter

from ..services import check_openai_available, check_qdrant_available
from ..state import get_state

router = APIRouter()

API_NAME = "Event Recommendation Agent API"
API_VERSION = "1.0.0"


async def _optional_check(backend, env_var: str) -> Tuple[bool, str]:
    """(available, message) for a backend exposing is_available()."""
    if backend is None:
        return False, f"{env_var} not set"
    try:
        ok = await backend.is_available()
        return ok, "connected" if ok else "not reachable"
    except Exception as e:
        return False, str(e)


async def _neo4j_check(graph) -> Tuple[bool, str]:
    if graph is None:
        return False, "NEO4J_URI not set"
    status = await graph.check_connectivity()
    return status.available, status.message


@router.get("/")
def root():
    state = get_state()
    return {
        "name": API_NAME,
        "version": API_VERSION,
        "default_city": state.config.default_city,
        "backends": state.configured_backends(),
        "endpoints": {
            "recommend": ["/api/recommend", "/api/ask"],
            "policies": ["/api/policies/stats", "/api/policies/outcome", "/api/policies/reset", "/api/policies/{name}"],
            "events": ["/api/events/{event_id}/similar"],
            "metrics": ["/api/metrics/latency"],
        },
    }


@router.get("/api/health")
async def health():
    state = get_state()
    openai_ok, openai_msg = check_openai_available(state.config.openai_api_key)
    (qdrant_ok, qdrant_msg), (typesense_ok, typesense_msg), (reranker_ok, reranker_msg), (neo4j_ok, neo4j_msg) = (
        await asyncio.gather(
            check_qdrant_available(state.qdrant),
            _optional_check(state.typesense, "TYPESENSE_URL"),
            _optional_check(state.reranker, "RERANKER_ENDPOINT_URL"),
            _neo4j_check(state.graph),
        )
    )
    return {
        "status": "healthy",
        "openai": {"available": openai_ok, "message": openai_msg},
        "qdrant": {"available": qdrant_ok, "message": qdrant_msg},
        "typesense": {"available": typesense_ok, "message": typesense_msg},
        "reranker": {"available": reranker_ok, "message": reranker_msg},
        "neo4j": {"available": neo4j_ok, "message": neo4j_msg},
        "summaries": {"available": state.deps.summarizer is not None, "model": state.config.summary_model},
    }
