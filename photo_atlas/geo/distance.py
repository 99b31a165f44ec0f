from __future__ import annotations

import math

EARTH_RADIUS_MILES = 3959.0

Coordinate = tuple[float, float]


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle (haversine) distance between two (lat, lon) points in miles."""
    lat1, lon1 = a
    lat2, lon2 = b
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    h = min(1.0, h)  # rounding near antipodes
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_MILES * c
