"""Recommendation request/response models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from recommender.models import DegradedFlags, ExecutionMetrics, PolicySelection, SlateSet


class RecommendRequest(BaseModel):
    """Accepts snake_case or camelCase keys (freeText, sessionId, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    session_id: Optional[str] = None
    city: Optional[str] = None
    free_text: Optional[str] = None
    tokens: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    trace_id: Optional[str] = None
    cookie: Optional[str] = None
    now_iso: Optional[str] = None


class AskRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    free_text: str
    city: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class RecommendResponse(BaseModel):
    trace_id: str
    slates: Optional[SlateSet] = None
    reasons: List[str] = []
    warnings: List[str] = []
    errors: List[str] = []
    degraded_flags: DegradedFlags
    ai_summary: Optional[str] = None
    execution_metrics: ExecutionMetrics
    policy: Optional[PolicySelection] = None
    ranker_version: Optional[str] = None
