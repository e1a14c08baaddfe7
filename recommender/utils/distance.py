"""
Distance helpers: haversine great-circle distance, travel-time estimate,
and fallback city-center coordinates used when the user location is unknown.
"""

import math
from typing import Dict, Optional, Tuple

EARTH_RADIUS_KM = 6371.0

# Walking plus transit wait time
URBAN_SPEED_KMH = 5.0

CITY_CENTERS: Dict[str, Tuple[float, float]] = {
    "new york": (40.7128, -74.0060),
    "brooklyn": (40.6782, -73.9442),
    "manhattan": (40.7831, -73.9712),
    "queens": (40.7282, -73.7949),
    "los angeles": (34.0522, -118.2437),
    "san francisco": (37.7749, -122.4194),
    "chicago": (41.8781, -87.6298),
    "boston": (42.3601, -71.0589),
    "seattle": (47.6062, -122.3321),
    "austin": (30.2672, -97.7431),
    "portland": (45.5152, -122.6784),
    "denver": (39.7392, -104.9903),
    "miami": (25.7617, -80.1918),
}


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km, rounded to one decimal."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def estimate_travel_minutes(distance_km: float) -> int:
    """Travel time at average urban speed, in whole minutes."""
    return int(round(distance_km / URBAN_SPEED_KMH * 60))


def get_city_center(city: Optional[str]) -> Optional[Tuple[float, float]]:
    """(lat, lon) for a known city name, case-insensitive; None when unknown."""
    if not city:
        return None
    return CITY_CENTERS.get(city.strip().lower())
