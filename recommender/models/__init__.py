"""Typed models used across the pipeline stages."""

from .config import DEFAULT_CONFIG, PipelineConfig, resolve_config
from .event import CandidateEvent, EnrichedEvent, SocialHeat
from .intention import (
    Intention,
    IntentionTokens,
    build_intention,
    normalize_budget,
    normalize_companions,
    normalize_mood,
    parse_intention_cookie,
    serialize_intention,
)
from .scoring import DEFAULT_WEIGHTS, RankerConfig, RankingFeatures, RankingWeights, ScoredEvent
from .slate import (
    DEFAULT_POLICY,
    EXPLORATION_POLICY,
    KNOWN_POLICIES,
    PolicySelection,
    RankedEvent,
    Slate,
    SlateItem,
    SlatePolicy,
    SlateSet,
    StoredSlatePolicy,
)
from .state import (
    AgentRequest,
    AgentResult,
    AgentState,
    DegradedFlags,
    ExecutionMetrics,
    NodeLog,
    RetrievalStats,
)

__all__ = [
    "DEFAULT_CONFIG",
    "PipelineConfig",
    "resolve_config",
    "CandidateEvent",
    "EnrichedEvent",
    "SocialHeat",
    "Intention",
    "IntentionTokens",
    "build_intention",
    "normalize_budget",
    "normalize_companions",
    "normalize_mood",
    "parse_intention_cookie",
    "serialize_intention",
    "DEFAULT_WEIGHTS",
    "RankerConfig",
    "RankingFeatures",
    "RankingWeights",
    "ScoredEvent",
    "DEFAULT_POLICY",
    "EXPLORATION_POLICY",
    "KNOWN_POLICIES",
    "PolicySelection",
    "RankedEvent",
    "Slate",
    "SlateItem",
    "SlatePolicy",
    "SlateSet",
    "StoredSlatePolicy",
    "AgentRequest",
    "AgentResult",
    "AgentState",
    "DegradedFlags",
    "ExecutionMetrics",
    "NodeLog",
    "RetrievalStats",
]
