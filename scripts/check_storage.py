#!/usr/bin/env python
# ruff: noqa: E402
"""
List stored media objects to check the storage destination is reachable.

Examples:
  python scripts/check_storage.py
  PHOTO_OUTPUT_DIR=./public python scripts/check_storage.py --prefix photos/ --limit 5
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from photo_atlas.core.env import configure_logging, load_dotenv_if_present
from photo_atlas.storage import BlobStoreError, LocalDirectoryStore, StorageConfig


def main() -> None:
    parser = argparse.ArgumentParser(description="List objects in the media store.")
    parser.add_argument("--prefix", default="photos/", help="Key prefix to list.")
    parser.add_argument("--limit", type=int, default=5, help="Number of sample keys to print.")
    args = parser.parse_args()

    load_dotenv_if_present()
    configure_logging()
    config = StorageConfig.from_env()
    print(f"Checking store at {config.output_dir}")
    store = LocalDirectoryStore.from_config(config)
    try:
        keys = store.list(args.prefix)
    except BlobStoreError as exc:
        sys.exit(f"Listing failed: {exc}")

    print(f"Found {len(keys)} objects under {args.prefix!r}")
    for idx, key in enumerate(keys[: args.limit], start=1):
        print(f"  {idx}. {key}")


if __name__ == "__main__":
    main()
