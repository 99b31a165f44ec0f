from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from photo_atlas.geo import GeocoderConfig, NominatimGeocoder, OfflineGeocoder, RateLimiter
from photo_atlas.geo.geocoder import GeocodeCache, build_geocoder, pick_place_name


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _config(**overrides) -> GeocoderConfig:
    values = dict(
        enabled=True,
        base_url="http://geo.test",
        user_agent="tests",
        timeout=0.1,
        min_interval=2.0,
        cache_path=None,
    )
    values.update(overrides)
    return GeocoderConfig(**values)


def _geocoder(handler, clock: FakeClock | None = None, **kwargs) -> NominatimGeocoder:
    clock = clock or FakeClock()
    client = httpx.Client(base_url="http://geo.test", transport=httpx.MockTransport(handler))
    limiter = RateLimiter(2.0, clock=clock, sleep=clock.sleep)
    return NominatimGeocoder(_config(), client=client, limiter=limiter, **kwargs)


def test_rate_limiter_spaces_calls() -> None:
    clock = FakeClock()
    limiter = RateLimiter(2.0, clock=clock, sleep=clock.sleep)

    limiter.wait()
    clock.now += 0.5
    limiter.wait()
    clock.now += 5.0
    limiter.wait()

    assert clock.sleeps == [pytest.approx(1.5)]


def test_resolve_uses_structured_address() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "display_name": "Valencia Street, Mission, San Francisco, California, USA",
                "address": {
                    "road": "Valencia Street",
                    "neighbourhood": "Mission",
                    "city": "San Francisco",
                    "state": "California",
                },
            },
        )

    geocoder = _geocoder(handler)
    assert geocoder.resolve(37.76, -122.42) == "Mission, San Francisco"
    request = seen[0]
    assert request.url.path == "/reverse"
    assert request.url.params["format"] == "json"
    assert request.url.params["lat"] == "37.76"


def test_lookups_are_rate_limited() -> None:
    clock = FakeClock()
    geocoder = _geocoder(
        lambda request: httpx.Response(200, json={"display_name": "Nowhere"}), clock=clock
    )
    geocoder.resolve(1.0, 1.0)
    geocoder.resolve(2.0, 2.0)
    geocoder.resolve(3.0, 3.0)
    assert geocoder.lookups == 3
    assert clock.sleeps == [pytest.approx(2.0), pytest.approx(2.0)]


def test_successful_lookups_are_cached(tmp_path: Path) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(
            200, json={"display_name": "Austin, Texas, USA", "address": {"city": "Austin"}}
        )

    cache = GeocodeCache(tmp_path / "geocache.json")
    geocoder = _geocoder(handler, cache=cache)
    assert geocoder.resolve(30.2672, -97.7431) == "Austin"
    assert geocoder.resolve(30.2672, -97.7431) == "Austin"
    assert len(calls) == 1

    geocoder.close()
    assert GeocodeCache(tmp_path / "geocache.json").get(30.2672, -97.7431) == "Austin"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="busy"),
        httpx.Response(200, text="<html>blocked</html>", headers={"content-type": "text/html"}),
        httpx.Response(200, text="{oops", headers={"content-type": "application/json"}),
        httpx.Response(200, json={}),
    ],
)
def test_failures_fall_back_to_coordinates(response: httpx.Response) -> None:
    geocoder = _geocoder(lambda request: response)
    assert geocoder.resolve(12.345678, -98.7654321) == "12.3457, -98.7654"


def test_transport_errors_fall_back_to_coordinates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    geocoder = _geocoder(handler)
    assert geocoder.resolve(0.0, 0.0005) == "0.0000, 0.0005"


def test_failed_lookups_are_not_cached() -> None:
    responses = iter(
        [httpx.Response(500), httpx.Response(200, json={"display_name": "Town, Region"})]
    )
    geocoder = _geocoder(lambda request: next(responses))
    assert geocoder.resolve(1.0, 2.0) == "1.0000, 2.0000"
    assert geocoder.resolve(1.0, 2.0) == "Town, Region"


def test_pick_place_name_preference_order() -> None:
    display = "123 Main St, Old Town, Gotham, Empire, USA"
    assert (
        pick_place_name(
            {"display_name": display, "address": {"suburb": "Old Town", "town": "Gotham"}}
        )
        == "Old Town, Gotham"
    )
    assert (
        pick_place_name(
            {"display_name": display, "address": {"road": "Main St", "city": "Gotham"}}
        )
        == "Main St, Gotham"
    )
    assert (
        pick_place_name({"display_name": display, "address": {"city": "Gotham", "state": "Empire"}})
        == "Gotham, Empire"
    )
    assert pick_place_name({"display_name": display, "address": {"city": "Gotham"}}) == "Gotham"
    assert pick_place_name({"display_name": display, "address": {}}) == "123 Main St, Old Town"
    assert pick_place_name({"display_name": "Atlantic Ocean"}) == "Atlantic Ocean"
    assert pick_place_name({"address": {"city": "Gotham"}}) is None


def test_disabled_geocoding_uses_offline_names() -> None:
    geocoder = build_geocoder(_config(enabled=False))
    assert isinstance(geocoder, OfflineGeocoder)
    assert geocoder.resolve(10.0, 10.0) == "10.0000, 10.0000"


def test_config_enforces_minimum_interval(monkeypatch) -> None:
    monkeypatch.setenv("GEOCODER_MIN_INTERVAL", "0.2")
    monkeypatch.setenv("GEOCODING_ENABLED", "1")
    config = GeocoderConfig.from_env()
    assert config.min_interval == 1.0
    assert config.enabled is True
