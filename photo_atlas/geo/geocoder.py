from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

import httpx

from photo_atlas.core.env import env_flag, env_path

logger = logging.getLogger(__name__)

MIN_LOOKUP_INTERVAL = 1.0


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude:.4f}, {longitude:.4f}"


@dataclass
class GeocoderConfig:
    enabled: bool
    base_url: str
    user_agent: str
    timeout: float
    min_interval: float
    cache_path: Optional[Path]

    @classmethod
    def from_env(cls) -> "GeocoderConfig":
        min_interval = float(os.getenv("GEOCODER_MIN_INTERVAL", "2.0"))
        return cls(
            enabled=env_flag("GEOCODING_ENABLED", True),
            base_url=os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org"),
            user_agent=os.getenv(
                "GEOCODER_USER_AGENT", "photo-atlas/1.0 (photo location mapping tool)"
            ),
            timeout=float(os.getenv("GEOCODER_HTTP_TIMEOUT", "10.0")),
            min_interval=max(MIN_LOOKUP_INTERVAL, min_interval),
            cache_path=env_path("GEOCODE_CACHE_PATH"),
        )


class PlaceNameResolver(Protocol):
    def resolve(self, latitude: float, longitude: float) -> str: ...


class RateLimiter:
    """Process-wide gate keeping consecutive calls at least `min_interval` seconds apart."""

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            if self._last_call is not None:
                remaining = self.min_interval - (self._clock() - self._last_call)
                if remaining > 0:
                    self._sleep(remaining)
            self._last_call = self._clock()


class GeocodeCache:
    """Successful lookups keyed by rounded coordinate, optionally persisted as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._entries: dict[str, str] = {}
        if path is not None and path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable geocode cache %s: %s", path, exc)
                raw = {}
            if isinstance(raw, dict):
                self._entries = {k: v for k, v in raw.items() if isinstance(v, str)}

    @staticmethod
    def key(latitude: float, longitude: float) -> str:
        return f"{latitude:.6f},{longitude:.6f}"

    def get(self, latitude: float, longitude: float) -> Optional[str]:
        return self._entries.get(self.key(latitude, longitude))

    def put(self, latitude: float, longitude: float, name: str) -> None:
        self._entries[self.key(latitude, longitude)] = name

    def save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self._entries, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as exc:
            logger.warning("Failed to write geocode cache %s: %s", self.path, exc)


def pick_place_name(data: dict[str, Any]) -> Optional[str]:
    """Choose a short, human-friendly name from a Nominatim reverse response."""
    display = data.get("display_name")
    if not isinstance(display, str) or not display.strip():
        return None

    address = data.get("address") if isinstance(data.get("address"), dict) else {}

    def _get(*fields: str) -> str:
        for field in fields:
            value = address.get(field)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""

    road = _get("road")
    neighbourhood = _get("neighbourhood", "suburb")
    city = _get("city", "town")
    state = _get("state")

    parts = [part.strip() for part in display.split(",")]
    if len(parts) < 2:
        return display
    if neighbourhood and city:
        return f"{neighbourhood}, {city}"
    if road and city:
        return f"{road}, {city}"
    if city and state:
        return f"{city}, {state}"
    if city:
        return city
    return ", ".join(parts[:2])


class NominatimGeocoder:
    """Reverse geocoder backed by a Nominatim-compatible `/reverse` endpoint."""

    def __init__(
        self,
        config: GeocoderConfig,
        client: Optional[httpx.Client] = None,
        limiter: Optional[RateLimiter] = None,
        cache: Optional[GeocodeCache] = None,
    ):
        self.config = config
        self.client = client or httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers={"User-Agent": config.user_agent, "Accept": "application/json"},
        )
        self.limiter = limiter or RateLimiter(config.min_interval)
        self.cache = cache if cache is not None else GeocodeCache(config.cache_path)
        self.lookups = 0

    def resolve(self, latitude: float, longitude: float) -> str:
        fallback = format_coordinates(latitude, longitude)
        cached = self.cache.get(latitude, longitude)
        if cached is not None:
            return cached

        self.limiter.wait()
        self.lookups += 1
        logger.info("Geocoding location %s...", fallback)
        try:
            response = self.client.get(
                "reverse",
                params={"lat": latitude, "lon": longitude, "format": "json", "zoom": 16},
            )
            if not response.is_success:
                logger.warning(
                    "Geocoding API returned %s: %s", response.status_code, response.reason_phrase
                )
                return fallback
            content_type = response.headers.get("content-type", "")
            if "application/json" not in content_type:
                logger.warning("Geocoding API returned non-JSON content: %s", content_type)
                return fallback
            data = response.json()
        except Exception as exc:  # transport errors, timeouts, malformed JSON
            logger.warning("Geocoding failed for %s: %s", fallback, exc)
            return fallback

        name = pick_place_name(data) if isinstance(data, dict) else None
        if not name:
            return fallback
        self.cache.put(latitude, longitude, name)
        return name

    def close(self) -> None:
        self.cache.save()
        self.client.close()


class OfflineGeocoder:
    """Resolver used when remote geocoding is disabled; names groups by coordinate."""

    def resolve(self, latitude: float, longitude: float) -> str:
        return format_coordinates(latitude, longitude)

    def close(self) -> None:
        return None


def build_geocoder(config: Optional[GeocoderConfig] = None) -> NominatimGeocoder | OfflineGeocoder:
    config = config or GeocoderConfig.from_env()
    if not config.enabled:
        return OfflineGeocoder()
    return NominatimGeocoder(config)
