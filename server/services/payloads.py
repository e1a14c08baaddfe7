"""
Decode search-backend documents into CandidateEvent.

Qdrant payloads use the ingest job's camelCase keys (startTime, priceMin, ...);
Typesense documents use snake_case with epoch-second timestamps. Both land here.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from recommender.models import CandidateEvent

PAYLOAD_KEYS = {
    "startTime": "start_time",
    "endTime": "end_time",
    "priceMin": "price_min",
    "priceMax": "price_max",
    "venueName": "venue_name",
    "imageUrl": "image_url",
    "bookingUrl": "booking_url",
    "eventId": "event_id",
}

EVENT_FIELDS = set(CandidateEvent.model_fields) - {"source", "score"}


def _timestamp(value: Any) -> Any:
    if isinstance(value, (int, float)):
        # Epoch seconds, or milliseconds from the JS ingest path
        seconds = value / 1000.0 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    return value


def event_from_payload(
    point_id: Any,
    payload: Optional[Dict[str, Any]],
    source: str,
    score: float = 0.0,
) -> CandidateEvent:
    """Build a CandidateEvent from a backend document. Unknown keys are dropped."""
    data: Dict[str, Any] = {}
    for key, value in (payload or {}).items():
        data[PAYLOAD_KEYS.get(key, key)] = value

    event_id = data.pop("event_id", None) or data.get("id") or str(point_id)
    fields = {k: v for k, v in data.items() if k in EVENT_FIELDS and v is not None}
    for key in ("start_time", "end_time"):
        if key in fields:
            fields[key] = _timestamp(fields[key])
    fields["id"] = str(event_id)
    return CandidateEvent(source=source, score=score, **fields)
