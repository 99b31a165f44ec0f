#!/usr/bin/env python
# ruff: noqa: E402
"""
Process a media directory into the photo catalog and location groups.

Usage:
  python scripts/build_catalog.py /absolute/path/to/photos
  PHOTO_MANIFEST_PATH=./src/data/photos.json python scripts/build_catalog.py ~/Pictures/rides
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure the repo root is on the import path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from photo_atlas.catalog import CatalogWriteError
from photo_atlas.core.env import configure_logging, load_dotenv_if_present
from photo_atlas.geo import build_geocoder
from photo_atlas.ingest import PipelineConfig, SourceTreeError, run_pipeline
from photo_atlas.storage import LocalDirectoryStore, StorageConfig

logger = logging.getLogger("build_catalog")


def main() -> int:
    parser = argparse.ArgumentParser(description="Build the photo catalog from a media directory.")
    parser.add_argument(
        "directory",
        type=Path,
        nargs="?",
        default=None,
        help="Directory containing photos and videos (recursed). Default: PHOTO_SOURCE_DIR.",
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        help="Catalog JSON path. Default: PHOTO_MANIFEST_PATH.",
    )
    args = parser.parse_args()

    load_dotenv_if_present()
    configure_logging()
    config = PipelineConfig.from_env()
    if args.directory is not None:
        config.source_dir = args.directory.expanduser()
    if args.manifest is not None:
        config.manifest_path = args.manifest.expanduser()

    store = LocalDirectoryStore.from_config(StorageConfig.from_env())
    geocoder = build_geocoder()
    try:
        result = run_pipeline(config, store=store, resolver=geocoder)
    except (SourceTreeError, CatalogWriteError) as exc:
        logger.error("Error during media processing: %s", exc)
        return 1
    finally:
        geocoder.close()

    catalog = result.catalog
    print(f"Saved catalog to {config.manifest_path} (version {catalog.version})")
    print(f"- Total items: {len(catalog.photos)}")
    print(f"- Location groups: {len(catalog.groups)}")
    print(
        f"- This run: {result.processed} processed, {result.failed} failed, "
        f"{result.duplicates} duplicates, {result.skipped} unchanged, {result.removed} removed"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
