from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pytest
from PIL import Image

GPS_INFO_TAG = 34853


def _dms(value: float) -> tuple[float, float, float]:
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = round((minutes_full - minutes) * 60, 4)
    return (float(degrees), float(minutes), seconds)


def write_photo(
    path: Path,
    *,
    gps: Optional[tuple[float, float]] = None,
    taken: Optional[str] = None,
    size: tuple[int, int] = (16, 8),
    color: str = "red",
    orientation: Optional[int] = None,
) -> Path:
    img = Image.new("RGB", size, color=color)
    exif = Image.Exif()
    if taken:
        exif[36867] = taken  # DateTimeOriginal
    if orientation:
        exif[274] = orientation
    if gps:
        lat, lon = gps
        exif[GPS_INFO_TAG] = {
            1: "N" if lat >= 0 else "S",
            2: _dms(abs(lat)),
            3: "E" if lon >= 0 else "W",
            4: _dms(abs(lon)),
        }
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, exif=exif)
    return path


@pytest.fixture
def make_photo() -> Callable[..., Path]:
    return write_photo


@pytest.fixture(autouse=True)
def offline_geocoding(monkeypatch):
    """Keep tests away from the public geocoding service."""
    monkeypatch.setenv("GEOCODING_ENABLED", "0")
    monkeypatch.delenv("GEOCODE_CACHE_PATH", raising=False)
    yield
