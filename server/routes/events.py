"""Event graph endpoints."""

from fastapi import APIRouter, Query

from ..state import get_state

router = APIRouter()


@router.get("/{event_id}/similar")
async def similar_events(event_id: str, limit: int = Query(10, ge=1, le=50)):
    """Graph neighbours of an event. Empty when the graph is unavailable."""
    similar = await get_state().deps.enricher.similar_events(event_id, limit)
    return {
        "event_id": event_id,
        "similar": [s.model_dump() for s in similar],
    }
