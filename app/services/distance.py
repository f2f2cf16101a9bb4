# app/services/distance.py
"""
Distance functions used to annotate query results with miles.

Every function takes (lat1, lng1, lat2, lng2) in degrees and returns miles.
"""
import math
from typing import Callable, Dict, Optional

DistanceFunction = Callable[[float, float, float, float], float]

MILES_PER_DEGREE = 69.0
EARTH_RADIUS_MILES = 3958.8


def flat_degree_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Planar distance in degrees scaled by a flat 69 miles per degree.

    Drifts from the true distance at high latitudes and over long spans,
    where longitude degrees are much shorter than latitude degrees.
    """
    return math.hypot(lat2 - lat1, lng2 - lng1) * MILES_PER_DEGREE


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance on a spherical earth."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


DISTANCE_FUNCTIONS: Dict[str, DistanceFunction] = {
    "flat": flat_degree_distance,
    "haversine": haversine_distance,
}


def get_distance_function(name: Optional[str] = None) -> DistanceFunction:
    """Look up a distance function by name; defaults to the configured formula."""
    if name is None:
        from app.config import get_settings
        name = get_settings().DISTANCE_FORMULA
    try:
        return DISTANCE_FUNCTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown distance formula: {name}")


def distance_or_zero(
    distance: DistanceFunction,
    lat: float,
    lng: float,
    point_lat: Optional[float],
    point_lng: Optional[float],
) -> float:
    """Distance to a stored point, or 0.0 when the point is missing."""
    if point_lat is None or point_lng is None:
        return 0.0
    return distance(lat, lng, point_lat, point_lng)
