"""Shared utilities for scoring, distance, time, and caching."""

from .cache import ResultCache, TTLCache
from .distance import CITY_CENTERS, estimate_travel_minutes, get_city_center, haversine_km
from .scores import clamp, clamp01, cosine_similarity, sigmoid, taste_similarity
from .timeutil import minutes_between, parse_iso, to_iso, utc_now

__all__ = [
    "ResultCache",
    "TTLCache",
    "CITY_CENTERS",
    "estimate_travel_minutes",
    "get_city_center",
    "haversine_km",
    "clamp",
    "clamp01",
    "cosine_similarity",
    "sigmoid",
    "taste_similarity",
    "minutes_between",
    "parse_iso",
    "to_iso",
    "utc_now",
]
