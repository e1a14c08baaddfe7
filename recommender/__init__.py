"""
Event recommendation pipeline: agent graph over hybrid retrieval, enrichment,
weighted-sum ranking, and bandit-driven slate composition.

Single entry point for the package:
- models/: Intention, CandidateEvent / EnrichedEvent, RankingFeatures, slates, AgentState
- backends: Protocols for search, graph, embedding, snapshot, log, and summary backends
- stages/: retrieval, enrichment, ranking, slates, critic, formatting
- graph/: node functions, orchestrator (run_agent_graph), latency tracking
"""

from .errors import BackendUnavailableError, InvalidRequestError, RecommenderError, RequiredStageError
from .graph import (
    AgentDependencies,
    AgentGraph,
    LatencyTracker,
    get_execution_metrics,
    run_agent_graph,
)
from .models import (
    DEFAULT_CONFIG,
    AgentRequest,
    AgentResult,
    AgentState,
    Intention,
    PipelineConfig,
    build_intention,
    resolve_config,
)
from .stages import BanditMemory, Enricher, Ranker, Retriever

__all__ = [
    "BackendUnavailableError",
    "InvalidRequestError",
    "RecommenderError",
    "RequiredStageError",
    "AgentDependencies",
    "AgentGraph",
    "LatencyTracker",
    "get_execution_metrics",
    "run_agent_graph",
    "DEFAULT_CONFIG",
    "AgentRequest",
    "AgentResult",
    "AgentState",
    "Intention",
    "PipelineConfig",
    "build_intention",
    "resolve_config",
    "BanditMemory",
    "Enricher",
    "Ranker",
    "Retriever",
]
