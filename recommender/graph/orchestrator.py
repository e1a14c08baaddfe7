"""
Agent graph orchestrator: runs the pipeline nodes in a fixed order.

parse_intent -> retrieve -> enrich -> rank -> compose -> critic -> format -> log

Nodes run strictly one after another; concurrency only happens inside a node. A
failing required node appends "Critical failure in <node>: <error>" to state.errors
and stops the run; a failing optional node appends "<node> failed: <error>" to
state.warnings and the run continues with the state accumulated so far. Every node
execution is timed and logged, success or not.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from ..errors import InvalidRequestError
from ..models.intention import DEFAULT_TOKENS, IntentionTokens
from ..models.state import AgentRequest, AgentResult, AgentState, ExecutionMetrics, NodeLog, StageUpdate
from ..utils.timeutil import parse_iso
from .nodes import (
    AgentDependencies,
    compose_node,
    critic_node,
    enrich_node,
    format_node,
    log_node,
    parse_intent_node,
    rank_node,
    retrieve_node,
)
from .tracing import trace_logger

logger = logging.getLogger(__name__)

NodeFn = Callable[[AgentState, AgentDependencies], Awaitable[StageUpdate]]


@dataclass(frozen=True)
class GraphNode:
    name: str
    run: NodeFn
    required: bool


DEFAULT_NODES: Sequence[GraphNode] = (
    GraphNode("parse_intent", parse_intent_node, required=True),
    GraphNode("retrieve", retrieve_node, required=True),
    GraphNode("enrich", enrich_node, required=False),
    GraphNode("rank", rank_node, required=True),
    GraphNode("compose", compose_node, required=True),
    GraphNode("critic", critic_node, required=False),
    GraphNode("format", format_node, required=False),
    GraphNode("log", log_node, required=False),
)


def _now_ms() -> float:
    return time.time() * 1000.0


class AgentGraph:
    """
    Ordered node graph with required/optional semantics.

    Usage:
        graph = AgentGraph()
        result = await graph.run(AgentState.from_request(request), deps)
    """

    def __init__(
        self,
        nodes: Sequence[GraphNode] = DEFAULT_NODES,
        clock_ms: Callable[[], float] = _now_ms,
    ):
        self.nodes = list(nodes)
        self._clock_ms = clock_ms

    async def run(self, state: AgentState, deps: AgentDependencies) -> AgentResult:
        log = trace_logger(logger, state)
        start = self._clock_ms()
        logs: List[NodeLog] = []

        for node in self.nodes:
            node_start = self._clock_ms()
            error: Optional[str] = None
            try:
                update = await node.run(state, deps)
                state.apply(update)
            except Exception as e:
                error = str(e) or type(e).__name__

            node_end = self._clock_ms()
            logs.append(NodeLog(
                node=node.name,
                start_ms=node_start,
                end_ms=node_end,
                duration_ms=node_end - node_start,
                success=error is None,
                error=error,
            ))

            if error is None:
                log.debug("[graph] node %s ok in %.0fms", node.name, node_end - node_start)
                continue
            if node.required:
                log.error("[graph] required node %s failed: %s", node.name, error)
                state.errors.append(f"Critical failure in {node.name}: {error}")
                break
            log.warning("[graph] optional node %s failed: %s", node.name, error)
            state.warnings.append(f"{node.name} failed: {error}")

        total = self._clock_ms() - start
        succeeded = sum(1 for entry in logs if entry.success)
        log.info(
            "[graph] pipeline complete in %.0fms (%d/%d nodes succeeded)",
            total, succeeded, len(logs),
        )
        return AgentResult(state=state, logs=logs, total_duration_ms=total)


def validate_request(request: Union[AgentRequest, Dict[str, Any]]) -> AgentRequest:
    """
    Validate an inbound request before any node runs.

    Raises:
        InvalidRequestError: unknown fields, missing session id, bad tokens, or a
            malformed now_iso.
    """
    try:
        validated = request if isinstance(request, AgentRequest) else AgentRequest.model_validate(request)
        if validated.tokens:
            IntentionTokens.model_validate({**DEFAULT_TOKENS.model_dump(), **validated.tokens})
    except ValidationError as e:
        raise InvalidRequestError("Invalid agent request", details=e.errors(include_url=False)) from e
    if validated.now_iso:
        try:
            parse_iso(validated.now_iso)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid now_iso: {validated.now_iso}") from e
    return validated


async def run_agent_graph(
    request: Union[AgentRequest, Dict[str, Any]],
    deps: AgentDependencies,
    graph: Optional[AgentGraph] = None,
) -> AgentResult:
    """Validate the request and run the full pipeline."""
    validated = validate_request(request)
    state = AgentState.from_request(validated)
    return await (graph or AgentGraph()).run(state, deps)


def get_execution_metrics(result: AgentResult) -> ExecutionMetrics:
    node_durations = {entry.node: entry.duration_ms for entry in result.logs}
    succeeded = sum(1 for entry in result.logs if entry.success)
    return ExecutionMetrics(
        total_ms=result.total_duration_ms,
        node_durations=node_durations,
        success_rate=succeeded / len(result.logs) if result.logs else 0.0,
    )
