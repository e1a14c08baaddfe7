"""Recommendation endpoints: structured requests and free-text questions."""

import logging
import uuid

from fastapi import APIRouter, HTTPException

from recommender import InvalidRequestError, get_execution_metrics, run_agent_graph
from recommender.models import AgentResult

from ..models import AskRequest, RecommendRequest, RecommendResponse
from ..state import get_state

logger = logging.getLogger(__name__)

router = APIRouter()


def _new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:12]}"


def _to_response(result: AgentResult) -> RecommendResponse:
    state = result.state
    return RecommendResponse(
        trace_id=state.trace_id,
        slates=state.slates,
        reasons=state.reasons,
        warnings=state.warnings,
        errors=state.errors,
        degraded_flags=state.degraded,
        ai_summary=state.ai_summary,
        execution_metrics=get_execution_metrics(result),
        policy=state.policy,
        ranker_version=state.ranker_version,
    )


async def _run(request_data: dict, endpoint: str) -> RecommendResponse:
    state = get_state()
    if request_data.get("session_id") is None:
        request_data["session_id"] = _new_session_id()
    try:
        result = await run_agent_graph(request_data, state.deps)
    except InvalidRequestError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "errors": e.details})

    response = _to_response(result)
    metrics = response.execution_metrics
    state.latency.record(response.trace_id, endpoint, metrics.total_ms, metrics.node_durations)
    if result.failed:
        logger.error("[%s] trace %s failed: %s", endpoint, response.trace_id, "; ".join(response.errors))
    return response


@router.post("/recommend", response_model=RecommendResponse)
async def recommend(request: RecommendRequest):
    """Run the agent graph. A critical node failure still returns 200 with errors[] and partial state."""
    return await _run(request.model_dump(exclude_none=True), "/api/recommend")


@router.post("/ask", response_model=RecommendResponse)
async def ask(request: AskRequest):
    """Free-text convenience: tokens come from the text, the cookie-less defaults fill the rest."""
    if not request.free_text.strip():
        raise HTTPException(status_code=422, detail="free_text must not be empty")
    return await _run(request.model_dump(exclude_none=True), "/api/ask")
