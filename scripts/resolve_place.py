#!/usr/bin/env python
# ruff: noqa: E402
"""
Read GPS data from a single image and print the place name the geocoder picks.

Examples:
  python scripts/resolve_place.py /absolute/path/to/photo.jpg
  GEOCODING_ENABLED=0 python scripts/resolve_place.py phototest/IMG_0001.JPG
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from photo_atlas.core.env import configure_logging, load_dotenv_if_present
from photo_atlas.geo import GeocoderConfig, build_geocoder
from photo_atlas.ingest import MetadataError, read_media_metadata


def main() -> None:
    parser = argparse.ArgumentParser(description="Reverse geocode the GPS position of one image.")
    parser.add_argument("image", type=Path, help="Path to the image file to resolve.")
    args = parser.parse_args()

    load_dotenv_if_present()
    configure_logging()
    config = GeocoderConfig.from_env()
    if not config.enabled:
        print("Warning: GEOCODING_ENABLED=0; the coordinate fallback name will be used.")

    image_path = args.image.expanduser()
    if not image_path.is_file():
        sys.exit(f"Not a file: {image_path}")

    try:
        metadata = read_media_metadata(image_path)
    except MetadataError as exc:
        sys.exit(str(exc))
    if metadata is None:
        sys.exit("Image has no GPS coordinates; nothing to resolve.")

    geocoder = build_geocoder(config)
    try:
        name = geocoder.resolve(metadata.latitude, metadata.longitude)
    finally:
        geocoder.close()

    print("Resolved location:")
    print(f"- Name: {name}")
    print(f"- Coordinates: {metadata.latitude:.6f}, {metadata.longitude:.6f}")
    if metadata.captured_at is not None:
        print(f"- Captured at: {metadata.captured_at.isoformat()}")


if __name__ == "__main__":
    main()
