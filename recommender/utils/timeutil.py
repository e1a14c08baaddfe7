"""Time helpers. All pipeline time math is relative to the intention's now_iso."""

from datetime import datetime, timezone
from typing import Union


def parse_iso(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 with a ``Z`` suffix."""
    return parse_iso(dt).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def minutes_between(start: Union[str, datetime], end: Union[str, datetime]) -> float:
    """Signed minutes from start to end."""
    return (parse_iso(end) - parse_iso(start)).total_seconds() / 60.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
