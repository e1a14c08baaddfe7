"""Latency metrics endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from ..state import get_state

router = APIRouter()


@router.get("/latency")
def latency(endpoint: Optional[str] = None):
    """p50/p95/p99 per endpoint against its p95 target."""
    tracker = get_state().latency
    if endpoint is not None:
        summary = tracker.summary(endpoint)
        if summary is None:
            raise HTTPException(status_code=404, detail=f"No samples for {endpoint}")
        return summary.model_dump()
    return {
        "samples": len(tracker),
        "endpoints": [tracker.summary(name).model_dump() for name in tracker.endpoints()],
    }
