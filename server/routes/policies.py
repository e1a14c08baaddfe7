"""Slate policy endpoints: bandit statistics, outcomes, and stored policies."""

from fastapi import APIRouter, HTTPException

from recommender.models import KNOWN_POLICIES
from recommender.stages.slates import get_bandit_stats, record_policy_outcome, reset_bandit_stats, reward_score

from ..models import PolicyOutcomeRequest, UpsertPolicyRequest
from ..state import get_state

router = APIRouter()

POLICY_NAMES = {p.name for p in KNOWN_POLICIES}


def _require_known(name: str) -> None:
    if name not in POLICY_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown policy: {name}")


@router.get("/stats")
def policy_stats():
    state = get_state()
    return {
        "policies": sorted(POLICY_NAMES),
        "epsilon": state.deps.config.bandit_epsilon,
        "strategy": state.deps.config.bandit_strategy,
        "stats": [s.model_dump(mode="json") for s in get_bandit_stats(state.bandit)],
    }


@router.post("/outcome")
def policy_outcome(request: PolicyOutcomeRequest):
    """Record one outcome for a policy. Engagement rates are folded into a reward first."""
    _require_known(request.policy_name)
    reward = request.reward
    if reward is None:
        reward = reward_score(request.ctr, request.save_rate, request.hide_rate)
    stats = record_policy_outcome(get_state().bandit, request.policy_name, reward)
    return stats.model_dump(mode="json")


@router.post("/reset")
def policy_reset():
    reset_bandit_stats(get_state().bandit)
    return {"status": "reset"}


@router.put("/{name}")
async def upsert_policy(name: str, request: UpsertPolicyRequest):
    """Create or update a stored policy; an active one overrides bandit selection."""
    _require_known(name)
    store = get_state().snapshot_store
    if store is None:
        raise HTTPException(status_code=503, detail="No snapshot store configured")
    policy = await store.upsert_slate_policy(name, request.params, request.is_active)
    return policy.model_dump(mode="json")
