"""
Pattern-based intent extraction from free text.

Maps phrases like "tonight", "something chill", "free", "walking distance" onto
IntentionTokens fields. Only fields the text actually mentions are returned, so the
result can be layered over cookie/profile tokens.
"""

import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..models.intention import MAX_UNTIL_MINUTES, MIN_UNTIL_MINUTES

VIBE_PATTERNS = [
    ("electric", re.compile(r"\b(electric|energetic|lively|upbeat|vibrant|exciting|party)\b")),
    ("calm", re.compile(r"\b(calm|peaceful|relaxing|chill|zen|tranquil|serene|quiet)\b")),
    ("social", re.compile(r"\b(social|networking|meet\s*people|mingle)\b")),
    ("artistic", re.compile(r"\b(artistic|creative|artsy|cultural|gallery|museum)\b")),
    ("grounded", re.compile(r"\b(grounded|authentic|down\s*to\s*earth|outdoors|nature)\b")),
]

COMPANION_PATTERNS = [
    ("solo", re.compile(r"\b(solo|alone|myself)\b")),
    ("crew", re.compile(r"\b(friends|crew|squad)\b")),
    ("partner", re.compile(r"\b(date|partner|significant\s*other)\b")),
    ("family", re.compile(r"\b(family|kids|children)\b")),
]

TRAVEL_DISTANCE_KM = [
    (re.compile(r"\b(walk|walking|walkable|on\s*foot|nearby)\b"), 2.0),
    (re.compile(r"\b(bike|biking|bicycle|cycling)\b"), 5.0),
    (re.compile(r"\b(subway|train|transit|metro|bus)\b"), 10.0),
    (re.compile(r"\b(drive|driving|car|parking)\b"), 20.0),
]


def _clamp_until(minutes: float) -> int:
    return int(min(MAX_UNTIL_MINUTES, max(MIN_UNTIL_MINUTES, round(minutes))))


def _minutes_until(now: datetime, target: datetime) -> float:
    return (target - now).total_seconds() / 60.0


def extract_until_minutes(text: str, now: datetime) -> Optional[int]:
    lower = text.lower()

    if re.search(r"\btonight\b", lower):
        midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
        return _clamp_until(_minutes_until(now, midnight))
    if re.search(r"\btoday\b", lower):
        end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
        return _clamp_until(_minutes_until(now, end_of_day))
    if re.search(r"\btomorrow\b", lower):
        end_of_tomorrow = (now + timedelta(days=1)).replace(hour=23, minute=59, second=59, microsecond=0)
        return _clamp_until(_minutes_until(now, end_of_tomorrow))
    if re.search(r"\b(this\s+)?weekend\b", lower):
        days_to_sunday = (6 - now.weekday()) % 7
        sunday_end = (now + timedelta(days=days_to_sunday)).replace(hour=23, minute=59, second=59, microsecond=0)
        return _clamp_until(_minutes_until(now, sunday_end))

    relative = re.search(r"\bin\s+(\d+)\s+(hours?|hrs?|minutes?|mins?)\b", lower)
    if relative:
        amount = int(relative.group(1))
        minutes = amount * 60 if relative.group(2).startswith("h") else amount
        # Window extends two hours past the requested start
        return _clamp_until(minutes + 120)

    if re.search(r"\b(right\s+now|asap|soon)\b", lower):
        return 120
    return None


def extract_budget(text: str) -> Optional[str]:
    lower = text.lower()
    if re.search(r"\b(free|no\s*cost|gratis)\b", lower):
        return "free"
    if re.search(r"\b(splurge|expensive|fancy|upscale|luxury|premium)\b", lower):
        return "splurge"
    price = re.search(r"\$(\d+)", lower)
    if price:
        amount = int(price.group(1))
        if amount == 0:
            return "free"
        return "splurge" if amount > 100 else "casual"
    if re.search(r"\b(affordable|budget|cheap|inexpensive)\b", lower):
        return "casual"
    return None


def extract_mood(text: str) -> Optional[str]:
    lower = text.lower()
    for mood, pattern in VIBE_PATTERNS:
        if pattern.search(lower):
            return mood
    return None


def extract_companions(text: str) -> Optional[List[str]]:
    lower = text.lower()
    found = [name for name, pattern in COMPANION_PATTERNS if pattern.search(lower)]
    return found or None


def extract_distance_km(text: str) -> Optional[float]:
    lower = text.lower()
    for pattern, km in TRAVEL_DISTANCE_KM:
        if pattern.search(lower):
            return km
    return None


def extract_intent_tokens(free_text: Optional[str], now: datetime) -> Dict[str, Any]:
    """Token overrides mentioned in the text; empty when nothing matches."""
    if not free_text:
        return {}
    extracted = {
        "mood": extract_mood(free_text),
        "until_minutes": extract_until_minutes(free_text, now),
        "budget": extract_budget(free_text),
        "companions": extract_companions(free_text),
        "distance_km": extract_distance_km(free_text),
    }
    return {k: v for k, v in extracted.items() if v is not None}
