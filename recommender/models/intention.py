"""
Intention model: the structured "what / when / where / how much" of a request.

An Intention is immutable once built. All time math downstream is relative to
now_iso rather than the wall clock, so scoring stays deterministic.

build_intention() merges token sources with precedence
defaults < cookie < profile < inline overrides, then validates the result.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.timeutil import parse_iso, to_iso, utc_now

logger = logging.getLogger(__name__)

Mood = Literal["calm", "social", "electric", "artistic", "grounded"]
BudgetTier = Literal["free", "casual", "splurge"]
Companion = Literal["solo", "partner", "crew", "family"]
IntentionSource = Literal["cookie", "profile", "inline", "inferred"]

MOODS = ("calm", "social", "electric", "artistic", "grounded")
BUDGET_TIERS = ("free", "casual", "splurge")
COMPANIONS = ("solo", "partner", "crew", "family")

DEFAULT_CITY = "New York"

MIN_UNTIL_MINUTES = 15
MAX_UNTIL_MINUTES = 10080


class IntentionTokens(BaseModel):
    """Validated intention tokens."""

    model_config = ConfigDict(frozen=True)

    mood: Mood = "calm"
    # Look-ahead window: 15 minutes up to 7 days
    until_minutes: int = Field(default=180, ge=MIN_UNTIL_MINUTES, le=MAX_UNTIL_MINUTES)
    # Max comfortable travel radius
    distance_km: float = Field(default=5.0, ge=0, le=50)
    budget: BudgetTier = "casual"
    companions: List[Companion] = Field(default_factory=lambda: ["solo"])


DEFAULT_TOKENS = IntentionTokens()


class Intention(BaseModel):
    """Structured request intent consumed by every pipeline stage."""

    model_config = ConfigDict(frozen=True)

    city: str = Field(min_length=1)
    now_iso: str
    tokens: IntentionTokens = Field(default_factory=IntentionTokens)
    source: IntentionSource = "inferred"
    session_id: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("now_iso")
    @classmethod
    def _valid_timestamp(cls, v: str) -> str:
        return to_iso(parse_iso(v))

    @property
    def now(self) -> datetime:
        return parse_iso(self.now_iso)


# -----------------------------------------------------------------------------
# Normalizers
# -----------------------------------------------------------------------------

def normalize_mood(mood: Optional[str]) -> Optional[str]:
    """Lower-cased mood if it is a known value, else None."""
    if not mood:
        return None
    normalized = mood.strip().lower()
    return normalized if normalized in MOODS else None


def normalize_budget(budget: Optional[str]) -> Optional[str]:
    """Lower-cased budget tier if known, else None."""
    if not budget:
        return None
    normalized = budget.strip().lower()
    return normalized if normalized in BUDGET_TIERS else None


def normalize_companions(companions: Union[str, List[str], None]) -> Optional[List[str]]:
    """Accept a list or comma-separated string; unknown values are dropped."""
    if not companions:
        return None
    values = companions.split(",") if isinstance(companions, str) else companions
    normalized = [v.strip().lower() for v in values if v and v.strip().lower() in COMPANIONS]
    return normalized or None


# -----------------------------------------------------------------------------
# Cookie encoding
# -----------------------------------------------------------------------------

def _decode_cookie_payload(raw: str) -> str:
    if raw.startswith("{"):
        return raw
    padded = raw + "=" * (-len(raw) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return unquote(raw)


def parse_intention_cookie(raw_cookie: Optional[str]) -> Dict[str, Any]:
    """
    Decode an intention cookie (plain JSON or base64url JSON) into partial tokens.

    Malformed cookies yield {} so a bad cookie never blocks a request.
    """
    if not raw_cookie or not raw_cookie.strip():
        return {}
    try:
        parsed = json.loads(_decode_cookie_payload(raw_cookie.strip()))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("[intention] unreadable cookie ignored")
        return {}
    if not isinstance(parsed, dict):
        return {}
    allowed = set(IntentionTokens.model_fields)
    partial = {k: v for k, v in parsed.items() if k in allowed}
    try:
        merged = IntentionTokens.model_validate({**DEFAULT_TOKENS.model_dump(), **partial})
    except ValidationError:
        logger.debug("[intention] invalid cookie tokens ignored")
        return {}
    return {k: getattr(merged, k) for k in partial}


def serialize_intention(tokens: IntentionTokens) -> str:
    """Encode tokens as base64url JSON (cookie value)."""
    payload = json.dumps(tokens.model_dump(), separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------

def build_intention(
    city: Optional[str] = None,
    now: Union[str, datetime, None] = None,
    cookie: Optional[str] = None,
    profile_tokens: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    default_city: str = DEFAULT_CITY,
) -> Intention:
    """
    Build and validate an Intention.

    Raises:
        pydantic.ValidationError: when merged tokens are out of range or unknown.
    """
    cookie_tokens = parse_intention_cookie(cookie)
    merged: Dict[str, Any] = DEFAULT_TOKENS.model_dump()
    merged.update(cookie_tokens)
    merged.update({k: v for k, v in (profile_tokens or {}).items() if v is not None})
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})
    tokens = IntentionTokens.model_validate(merged)

    if cookie_tokens:
        source = "cookie"
    elif profile_tokens:
        source = "profile"
    elif overrides:
        source = "inline"
    else:
        source = "inferred"

    now_dt = parse_iso(now) if now is not None else utc_now()
    return Intention(
        city=(city or "").strip() or default_city,
        now_iso=to_iso(now_dt),
        tokens=tokens,
        source=source,
        session_id=session_id,
        user_id=user_id,
    )
