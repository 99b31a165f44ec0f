from __future__ import annotations

import logging
from datetime import timezone
from typing import Iterable, List
from uuid import uuid4

from photo_atlas.core.models import LocationGroup, MediaItem

from .distance import distance_miles
from .geocoder import PlaceNameResolver

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_MILES = 0.5


def _capture_sort_key(item: MediaItem) -> tuple[bool, float]:
    ts = item.captured_at
    if ts is None:
        return (True, 0.0)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (False, ts.timestamp())


def order_by_capture_time(items: Iterable[MediaItem]) -> List[MediaItem]:
    """Sort by capture time ascending; untimed items last, ties keep their order."""
    return sorted(items, key=_capture_sort_key)


def _centroid(items: List[MediaItem]) -> tuple[float, float]:
    lat = sum(item.latitude for item in items) / len(items)  # type: ignore[misc]
    lon = sum(item.longitude for item in items) / len(items)  # type: ignore[misc]
    return lat, lon


def cluster_locations(
    items: Iterable[MediaItem],
    resolver: PlaceNameResolver,
    radius_miles: float = DEFAULT_RADIUS_MILES,
) -> List[LocationGroup]:
    """Greedily group geotagged items lying within `radius_miles` of a seed item.

    Membership is measured against the seed only, so two members of one group
    may be further apart than the radius. Quadratic in the number of items.
    """
    candidates = [item for item in items if item.is_clusterable]
    logger.info("Grouping %d geotagged items by location", len(candidates))

    assigned = [False] * len(candidates)
    groups: List[LocationGroup] = []
    for i, seed in enumerate(candidates):
        if assigned[i]:
            continue
        assigned[i] = True
        members = [seed]
        seed_point = (seed.latitude, seed.longitude)
        for j in range(i + 1, len(candidates)):
            if assigned[j]:
                continue
            other = candidates[j]
            if distance_miles(seed_point, (other.latitude, other.longitude)) <= radius_miles:  # type: ignore[arg-type]
                members.append(other)
                assigned[j] = True

        members = order_by_capture_time(members)
        center_lat, center_lon = _centroid(members)
        place_name = resolver.resolve(center_lat, center_lon)
        groups.append(
            LocationGroup(
                id=uuid4().hex,
                latitude=center_lat,
                longitude=center_lon,
                place_name=place_name,
                photos=members,
            )
        )
        logger.info("Created group: %s (%d items)", place_name, len(members))
    return groups


def group_signature(group: LocationGroup) -> tuple[str, tuple[str, ...]]:
    """Run-independent identity of a group: its place name and member names."""
    return group.place_name, tuple(photo.original_name for photo in group.photos)


def groups_changed(before: List[LocationGroup], after: List[LocationGroup]) -> bool:
    return [group_signature(g) for g in before] != [group_signature(g) for g in after]

