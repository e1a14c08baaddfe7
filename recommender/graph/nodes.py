"""
Graph nodes: one async function per pipeline step.

Each node reads AgentState, calls into its stage, and returns the typed StageUpdate
naming the fields it sets. Nodes raise RequiredStageError when their inputs are
missing; the orchestrator decides whether that aborts the run (required node) or is
recorded as a warning (optional node).
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..backends import EventLogSink, LogContext, SnapshotStore, SummaryGenerator
from ..errors import RequiredStageError
from ..models.config import PipelineConfig
from ..models.event import EnrichedEvent
from ..models.intention import DEFAULT_CITY, build_intention
from ..models.slate import RankedEvent
from ..models.state import (
    AgentState,
    ComposeUpdate,
    CriticUpdate,
    DegradedFlags,
    EnrichUpdate,
    FormatUpdate,
    LogUpdate,
    ParseIntentUpdate,
    RankUpdate,
    RetrievalStats,
    RetrieveUpdate,
)
from ..stages.critic import critique
from ..stages.enrichment import Enricher
from ..stages.formatting import format_reasons, generate_summary
from ..stages.intent import extract_intent_tokens
from ..stages.ranking import Ranker, build_features
from ..stages.retrieval import RetrievalOptions, Retriever, retrieval_cache_key
from ..stages.slates import BanditMemory, choose_policy, compose_slates, empty_slates
from ..utils.timeutil import parse_iso, utc_now
from .tracing import trace_logger

logger = logging.getLogger(__name__)

LOG_FAILURE_WARNING = "Failed to log interaction"


@dataclass
class AgentDependencies:
    """Collaborators injected into every node. Built once per process by the server."""

    retriever: Retriever = field(default_factory=Retriever)
    enricher: Enricher = field(default_factory=Enricher)
    snapshot_store: Optional[SnapshotStore] = None
    bandit: BanditMemory = field(default_factory=BanditMemory)
    log_sink: Optional[EventLogSink] = None
    summarizer: Optional[SummaryGenerator] = None
    config: PipelineConfig = field(default_factory=PipelineConfig)
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], datetime] = utc_now
    default_city: str = DEFAULT_CITY


# =============================================================================
# Required nodes
# =============================================================================

async def parse_intent_node(state: AgentState, deps: AgentDependencies) -> ParseIntentUpdate:
    """Build the Intention from cookie, free text, and explicit tokens (explicit tokens win)."""
    now = parse_iso(state.now_iso) if state.now_iso else deps.clock()
    extracted = extract_intent_tokens(state.free_text, now)
    overrides = {**extracted, **state.request_tokens}
    intention = build_intention(
        city=state.city,
        now=now,
        cookie=state.cookie,
        overrides=overrides,
        session_id=state.session_id,
        user_id=state.user_id,
        default_city=deps.default_city,
    )
    trace_logger(logger, state).info(
        "[parse_intent] %s: mood=%s until=%dmin budget=%s (source %s, %d tokens from text)",
        intention.city, intention.tokens.mood, intention.tokens.until_minutes,
        intention.tokens.budget, intention.source, len(extracted),
    )
    return ParseIntentUpdate(intention=intention)


async def retrieve_node(state: AgentState, deps: AgentDependencies) -> RetrieveUpdate:
    if state.intention is None:
        raise RequiredStageError("No intention set. Run parse_intent first.")

    config = deps.config
    query_text = state.free_text or state.intention.tokens.mood
    result = await deps.retriever.retrieve(
        query_text,
        state.intention,
        RetrievalOptions(
            top_k=config.retrieval_top_k,
            rerank_top=config.rerank_top,
            use_reranker=config.use_reranker,
            timeout_s=config.retrieval_timeout_s,
            cache_key=retrieval_cache_key(query_text, state.intention, config.retrieval_cache_ttl_s),
        ),
    )
    trace_logger(logger, state).info(
        "[retrieve] found %d candidates", len(result.candidates)
    )
    return RetrieveUpdate(
        candidates=result.candidates,
        retrieval=RetrievalStats(
            vector_count=result.vector_count,
            keyword_count=result.keyword_count,
            rerank_applied=result.rerank_applied,
            latency_ms=result.latency_ms,
            cache_hit=result.cache_hit,
        ),
        degraded=DegradedFlags(
            no_qdrant=result.vector_error is not None,
            no_reranker=result.reranker_error is not None,
        ),
    )


async def rank_node(state: AgentState, deps: AgentDependencies) -> RankUpdate:
    """Score and sort candidates. Uses neutral enrichment when the enrich step did not run."""
    if state.intention is None or state.candidates is None:
        raise RequiredStageError("Missing candidates or intention")

    enriched = state.enriched
    if enriched is None:
        enriched = [EnrichedEvent.neutral(c) for c in state.candidates]

    ranker = await Ranker.from_snapshot_store(deps.snapshot_store, deps.config.weights_timeout_s)
    if not enriched:
        return RankUpdate(ranked=[], ranker_version=ranker.version, enriched=[])

    features = [build_features(event, state.intention) for event in enriched]
    ranked = sorted(ranker.score_events(features), key=lambda s: s.score, reverse=True)
    trace_logger(logger, state).info(
        "[rank] ranked %d events (top score %.3f, weights %s)",
        len(ranked), ranked[0].score, ranker.version,
    )
    return RankUpdate(ranked=ranked, ranker_version=ranker.version, enriched=enriched)


async def compose_node(state: AgentState, deps: AgentDependencies) -> ComposeUpdate:
    if state.ranked is None or state.enriched is None:
        raise RequiredStageError("Missing ranked or enriched candidates")

    log = trace_logger(logger, state)
    if not state.ranked:
        log.warning("[compose] no ranked candidates to compose slates")
        return ComposeUpdate(slates=empty_slates())

    selection = await choose_policy(deps.snapshot_store, deps.bandit, deps.rng, deps.config)
    by_id = {e.id: e for e in state.enriched}
    ranked_events = [
        RankedEvent.from_scored(scored, by_id[scored.event_id])
        for scored in state.ranked
        if scored.event_id in by_id
    ]
    slates = compose_slates(ranked_events, selection.policy, deps.rng)
    log.info(
        "[compose] policy %s (exploration: %s): best=%d wildcard=%d close_and_easy=%d",
        selection.policy_name, selection.was_exploration,
        len(slates.best.events), len(slates.wildcard.events), len(slates.close_and_easy.events),
    )
    return ComposeUpdate(slates=slates, policy=selection)


# =============================================================================
# Optional nodes
# =============================================================================

async def enrich_node(state: AgentState, deps: AgentDependencies) -> EnrichUpdate:
    if state.intention is None or state.candidates is None:
        raise RequiredStageError("Missing candidates or intention")
    result = await deps.enricher.enrich(state.candidates, state.user_id, state.intention)
    return EnrichUpdate(enriched=result.events, degraded=result.degraded)


async def critic_node(state: AgentState, deps: AgentDependencies) -> CriticUpdate:
    if state.slates is None:
        raise RequiredStageError("No slates to check")
    warnings, reasons = critique(state.slates, state.intention, state.degraded, state.user_id)
    return CriticUpdate(warnings=warnings, reasons=reasons)


async def format_node(state: AgentState, deps: AgentDependencies) -> FormatUpdate:
    if state.slates is None:
        raise RequiredStageError("No slates to format")
    reasons = format_reasons(state.intention, state.slates, state.reasons)
    summary, llm_failed = await generate_summary(
        state.free_text,
        state.intention,
        state.slates,
        deps.summarizer,
        rng=deps.rng,
        timeout_s=deps.config.summary_timeout_s,
    )
    return FormatUpdate(ai_summary=summary, reasons=reasons, degraded=DegradedFlags(no_llm=llm_failed))


def _interaction_payloads(state: AgentState) -> List[Dict[str, Any]]:
    policy = state.policy.model_dump(mode="json", include={"policy_name", "was_exploration"}) if state.policy else None
    payloads: List[Dict[str, Any]] = [{
        "event_type": "QUERY",
        "payload": {
            "free_text": state.free_text,
            "intention": state.intention.model_dump(mode="json") if state.intention else None,
            "candidate_count": len(state.candidates or []),
            "ranked_count": len(state.ranked or []),
            "ranker_version": state.ranker_version,
            "slate_policy": policy,
            "degraded_flags": state.degraded.active(),
            "warnings": list(state.warnings),
        },
    }]
    if state.slates is not None:
        for slate in state.slates.all():
            if not slate.events:
                continue
            payloads.append({
                "event_type": "SLATE_IMPRESSION",
                "payload": {
                    "slate_name": slate.name,
                    "slate_label": slate.label,
                    "strategy": slate.strategy,
                    "diversity": slate.diversity,
                    "event_ids": slate.event_ids,
                    "event_scores": [e.score for e in slate.events],
                    "event_positions": [e.position for e in slate.events],
                    "exploratory_ids": [e.event_id for e in slate.events if e.exploratory],
                    "slate_policy": policy,
                },
            })
    return payloads


async def log_node(state: AgentState, deps: AgentDependencies) -> LogUpdate:
    """Append query and slate-impression events. Sink failures become a warning."""
    if deps.log_sink is None:
        return LogUpdate()

    context = LogContext(session_id=state.session_id, trace_id=state.trace_id, user_id=state.user_id)
    payloads = _interaction_payloads(state)
    log = trace_logger(logger, state)
    try:
        await asyncio.wait_for(
            asyncio.gather(*(
                deps.log_sink.log_event(p["event_type"], p["payload"], context) for p in payloads
            )),
            timeout=deps.config.log_timeout_s,
        )
    except Exception as e:
        log.warning("[log] failed to log outcome: %s", str(e) or type(e).__name__)
        return LogUpdate(warnings=[LOG_FAILURE_WARNING])
    log.info("[log] logged query and %d slate impressions", len(payloads) - 1)
    return LogUpdate()
