from __future__ import annotations

import pytest

from photo_atlas.geo import distance_miles

POINTS = [
    (0.0, 0.0),
    (37.7749, -122.4194),
    (-33.8688, 151.2093),
    (51.5074, -0.1278),
    (89.9, 179.9),
]


@pytest.mark.parametrize("point", POINTS)
def test_distance_to_self_is_zero(point) -> None:
    assert distance_miles(point, point) == 0.0


def test_distance_is_symmetric() -> None:
    for a in POINTS:
        for b in POINTS:
            assert distance_miles(a, b) == distance_miles(b, a)


def test_distance_matches_known_values() -> None:
    # One degree of longitude on the equator with a 3959 mi radius.
    assert distance_miles((0.0, 0.0), (0.0, 1.0)) == pytest.approx(69.097, abs=0.01)
    # San Francisco to London, roughly 5350 miles.
    assert distance_miles(POINTS[1], POINTS[3]) == pytest.approx(5350, rel=0.01)


def test_distance_handles_antipodes() -> None:
    assert distance_miles((0.0, 0.0), (0.0, 180.0)) == pytest.approx(3959 * 3.141592653589793)
