from __future__ import annotations

import logging
import numbers
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from photo_atlas.core.models import MediaMetadata, valid_coordinates

logger = logging.getLogger(__name__)

EXIF_IFD_TAG = 34665  # ExifOffset
GPS_INFO_TAG = 34853  # GPSInfo
DATETIME_ORIGINAL_TAG = 36867  # EXIF DateTimeOriginal
DATETIME_DIGITIZED_TAG = 36868  # EXIF DateTimeDigitized ("CreateDate")

GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4


class MetadataError(RuntimeError):
    """Raised when a file cannot be opened or decoded as an image."""


def _to_float(value: object) -> Optional[float]:
    if isinstance(value, tuple) and len(value) == 2 and value[1]:
        return float(value[0]) / float(value[1])
    if isinstance(value, numbers.Real):
        return float(value)
    return None


def _convert_gps_coordinate(values: object, ref: object) -> Optional[float]:
    if not isinstance(values, tuple) or len(values) != 3 or ref is None:
        return None
    parts = [_to_float(v) for v in values]
    if any(p is None for p in parts):
        return None
    degrees, minutes, seconds = parts  # type: ignore[misc]
    coordinate = degrees + minutes / 60.0 + seconds / 3600.0
    if isinstance(ref, bytes):
        ref = ref.decode(errors="ignore")
    if isinstance(ref, str) and ref.strip("\x00 ").upper() in {"S", "W"}:
        coordinate *= -1
    return coordinate


def _parse_exif_datetime(value: object) -> Optional[datetime]:
    if isinstance(value, bytes):
        value = value.decode(errors="ignore")
    if not value:
        return None
    text = str(value).replace("\x00", "").strip()
    try:
        return datetime.strptime(text, "%Y:%m:%d %H:%M:%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _capture_time(exif: Image.Exif) -> Optional[datetime]:
    try:
        exif_ifd = exif.get_ifd(EXIF_IFD_TAG)
    except Exception:
        exif_ifd = {}
    for tag in (DATETIME_ORIGINAL_TAG, DATETIME_DIGITIZED_TAG):
        parsed = _parse_exif_datetime(exif_ifd.get(tag) or exif.get(tag))
        if parsed is not None:
            return parsed
    return None


def _gps_position(exif: Image.Exif) -> Optional[tuple[float, float]]:
    gps_info = exif.get_ifd(GPS_INFO_TAG) or exif.get(GPS_INFO_TAG)
    if not isinstance(gps_info, dict):
        return None
    latitude = _convert_gps_coordinate(gps_info.get(GPS_LATITUDE), gps_info.get(GPS_LATITUDE_REF))
    longitude = _convert_gps_coordinate(
        gps_info.get(GPS_LONGITUDE), gps_info.get(GPS_LONGITUDE_REF)
    )
    if not valid_coordinates(latitude, longitude):
        return None
    return latitude, longitude  # type: ignore[return-value]


def read_media_metadata(path: str | Path) -> Optional[MediaMetadata]:
    """Extract GPS position and capture time from an image.

    Returns None when the image carries no usable GPS data. Raises
    MetadataError only when the file cannot be read as an image.
    """
    name = Path(path).name
    try:
        img = Image.open(path)
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise MetadataError(f"Cannot read image {name}: {exc}") from exc

    with img:
        try:
            exif = img.getexif()
            position = _gps_position(exif) if exif else None
            captured_at = _capture_time(exif) if position else None
        except Exception as exc:
            # Malformed EXIF never fails the item.
            logger.warning("Error extracting GPS from %s: %s", name, exc)
            return None

    if position is None:
        logger.warning("No GPS data found in %s", name)
        return None
    return MediaMetadata(latitude=position[0], longitude=position[1], captured_at=captured_at)
