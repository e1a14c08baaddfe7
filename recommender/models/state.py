"""
Agent state: the per-request accumulator threaded through the node graph.

Each node returns a typed StageUpdate subclass naming exactly the state fields it is
allowed to set (SETS). AgentState.apply() merges an update with fixed rules:
- fields in SETS are replaced,
- degradation flags are OR-merged,
- warnings and errors are appended,
- reasons are appended, or replaced when the update sets REPLACES_REASONS.
No other field can be touched by a node.
"""

import uuid
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .event import CandidateEvent, EnrichedEvent
from .intention import Intention
from .scoring import ScoredEvent
from .slate import PolicySelection, SlateSet


class DegradedFlags(BaseModel):
    """Markers for optional upstream signals that were unavailable for this request."""

    no_neo4j: bool = False
    no_taste_vector: bool = False
    no_qdrant: bool = False
    no_llm: bool = False
    no_reranker: bool = False

    def merge(self, other: Optional["DegradedFlags"]) -> "DegradedFlags":
        if other is None:
            return self
        return DegradedFlags(**{
            name: getattr(self, name) or getattr(other, name)
            for name in type(self).model_fields
        })

    def active(self) -> List[str]:
        return [name for name in type(self).model_fields if getattr(self, name)]

    @property
    def has_any(self) -> bool:
        return bool(self.active())


class AgentRequest(BaseModel):
    """Inbound request accepted by run_agent_graph."""

    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(min_length=1)
    city: Optional[str] = None
    free_text: Optional[str] = None
    tokens: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    trace_id: Optional[str] = None
    cookie: Optional[str] = None
    # Fixed "now" for deterministic runs; wall clock when omitted.
    now_iso: Optional[str] = None

    @field_validator("free_text", "user_id", "trace_id", "city")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class RetrievalStats(BaseModel):
    vector_count: int = 0
    keyword_count: int = 0
    rerank_applied: bool = False
    latency_ms: float = 0.0
    cache_hit: bool = False


class NodeLog(BaseModel):
    node: str
    start_ms: float
    end_ms: float
    duration_ms: float
    success: bool
    error: Optional[str] = None


class AgentState(BaseModel):
    """Mutable accumulator for one request. Discarded after the response and log write."""

    session_id: str
    trace_id: str
    user_id: Optional[str] = None
    free_text: Optional[str] = None
    city: Optional[str] = None
    cookie: Optional[str] = None
    now_iso: Optional[str] = None
    request_tokens: Dict[str, Any] = Field(default_factory=dict)

    intention: Optional[Intention] = None
    candidates: Optional[List[CandidateEvent]] = None
    retrieval: Optional[RetrievalStats] = None
    enriched: Optional[List[EnrichedEvent]] = None
    ranked: Optional[List[ScoredEvent]] = None
    ranker_version: Optional[str] = None
    slates: Optional[SlateSet] = None
    policy: Optional[PolicySelection] = None
    ai_summary: Optional[str] = None

    degraded: DegradedFlags = Field(default_factory=DegradedFlags)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)

    @classmethod
    def from_request(cls, request: AgentRequest) -> "AgentState":
        return cls(
            session_id=request.session_id,
            trace_id=request.trace_id or f"trace_{uuid.uuid4().hex[:16]}",
            user_id=request.user_id,
            free_text=request.free_text,
            city=request.city,
            cookie=request.cookie,
            now_iso=request.now_iso,
            request_tokens=dict(request.tokens or {}),
        )

    def apply(self, update: "StageUpdate") -> None:
        for name in update.SETS:
            setattr(self, name, getattr(update, name))
        self.degraded = self.degraded.merge(update.degraded)
        self.warnings.extend(update.warnings)
        self.errors.extend(update.errors)
        if update.REPLACES_REASONS:
            self.reasons = list(update.reasons)
        else:
            self.reasons.extend(update.reasons)


# -----------------------------------------------------------------------------
# Stage updates
# -----------------------------------------------------------------------------

class StageUpdate(BaseModel):
    """Fields every stage may contribute."""

    SETS: ClassVar[Tuple[str, ...]] = ()
    REPLACES_REASONS: ClassVar[bool] = False

    degraded: DegradedFlags = Field(default_factory=DegradedFlags)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)


class ParseIntentUpdate(StageUpdate):
    SETS: ClassVar[Tuple[str, ...]] = ("intention",)

    intention: Intention


class RetrieveUpdate(StageUpdate):
    SETS: ClassVar[Tuple[str, ...]] = ("candidates", "retrieval")

    candidates: List[CandidateEvent] = Field(default_factory=list)
    retrieval: Optional[RetrievalStats] = None


class EnrichUpdate(StageUpdate):
    SETS: ClassVar[Tuple[str, ...]] = ("enriched",)

    enriched: List[EnrichedEvent] = Field(default_factory=list)


class RankUpdate(StageUpdate):
    SETS: ClassVar[Tuple[str, ...]] = ("ranked", "ranker_version", "enriched")

    ranked: List[ScoredEvent] = Field(default_factory=list)
    ranker_version: Optional[str] = None
    # Rank fills in neutral enrichment when the optional enrich stage failed.
    enriched: List[EnrichedEvent] = Field(default_factory=list)


class ComposeUpdate(StageUpdate):
    SETS: ClassVar[Tuple[str, ...]] = ("slates", "policy")

    slates: SlateSet
    policy: Optional[PolicySelection] = None


class CriticUpdate(StageUpdate):
    pass


class FormatUpdate(StageUpdate):
    SETS: ClassVar[Tuple[str, ...]] = ("ai_summary",)
    REPLACES_REASONS: ClassVar[bool] = True

    ai_summary: Optional[str] = None


class LogUpdate(StageUpdate):
    pass


# -----------------------------------------------------------------------------
# Result
# -----------------------------------------------------------------------------

class ExecutionMetrics(BaseModel):
    total_ms: float
    node_durations: Dict[str, float] = Field(default_factory=dict)
    success_rate: float = 0.0


class AgentResult(BaseModel):
    state: AgentState
    logs: List[NodeLog] = Field(default_factory=list)
    total_duration_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return bool(self.state.errors)
