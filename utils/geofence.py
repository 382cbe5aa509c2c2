# utils/geofence.py

from math import radians, sin, cos, sqrt, atan2
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.attendance import Coordinate

EARTH_RADIUS_M = 6371000.0


def haversine_dist(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    R = EARTH_RADIUS_M
    φ1, φ2 = radians(lat1), radians(lat2)
    Δφ = radians(lat2 - lat1)
    Δλ = radians(lng2 - lng1)

    a = sin(Δφ/2)**2 + cos(φ1) * cos(φ2) * sin(Δλ/2)**2
    # Rounding can push a just past 1 near antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return R * c


def distance_between(a: "Coordinate", b: "Coordinate") -> float:
    """Great-circle distance in meters between two coordinates."""
    return haversine_dist(a.latitude, a.longitude, b.latitude, b.longitude)
