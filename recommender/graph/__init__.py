"""
Agent graph: node functions, the orchestrator, and latency tracking.

Public API: run_agent_graph, AgentGraph, AgentDependencies, get_execution_metrics.
"""

from .metrics import LatencySummary, LatencyTracker
from .nodes import AgentDependencies
from .orchestrator import (
    DEFAULT_NODES,
    AgentGraph,
    GraphNode,
    get_execution_metrics,
    run_agent_graph,
    validate_request,
)

__all__ = [
    "LatencySummary",
    "LatencyTracker",
    "AgentDependencies",
    "DEFAULT_NODES",
    "AgentGraph",
    "GraphNode",
    "get_execution_metrics",
    "run_agent_graph",
    "validate_request",
]
