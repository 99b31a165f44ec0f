"""Distance, reverse geocoding and location clustering."""

from .clustering import DEFAULT_RADIUS_MILES, cluster_locations, groups_changed
from .distance import distance_miles
from .geocoder import (
    GeocoderConfig,
    NominatimGeocoder,
    OfflineGeocoder,
    RateLimiter,
    build_geocoder,
    format_coordinates,
)

__all__ = [
    "DEFAULT_RADIUS_MILES",
    "GeocoderConfig",
    "NominatimGeocoder",
    "OfflineGeocoder",
    "RateLimiter",
    "build_geocoder",
    "cluster_locations",
    "distance_miles",
    "format_coordinates",
    "groups_changed",
]
