from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from photo_atlas.core.models import Catalog, LocationGroup, MediaItem

logger = logging.getLogger(__name__)


class CatalogWriteError(RuntimeError):
    """Raised when the catalog file cannot be written."""


def load_catalog(path: str | Path) -> Catalog:
    """Read a persisted catalog; a missing or unreadable file yields a fresh one."""
    catalog_path = Path(path)
    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
        catalog = Catalog.model_validate(raw)
    except FileNotFoundError:
        logger.info("No existing catalog at %s, starting a new one", catalog_path)
        return Catalog()
    except (OSError, ValueError, ValidationError) as exc:
        logger.warning("Unreadable catalog at %s (%s), starting a new one", catalog_path, exc)
        return Catalog()
    logger.info("Loaded catalog with %d items (version %d)", len(catalog.photos), catalog.version)
    return catalog


def merge_items(catalog: Catalog, items: Iterable[MediaItem]) -> Catalog:
    """Replace entries with the same original name, append new ones."""
    photos = list(catalog.photos)
    positions = {photo.original_name: idx for idx, photo in enumerate(photos)}
    for item in items:
        idx = positions.get(item.original_name)
        if idx is None:
            positions[item.original_name] = len(photos)
            photos.append(item)
        else:
            photos[idx] = item
    return Catalog(
        photos=photos,
        groups=catalog.groups,
        version=catalog.version,
        last_updated=catalog.last_updated,
    )


def prune_orphans(catalog: Catalog, current_names: Iterable[str]) -> tuple[Catalog, int]:
    """Drop entries whose source file is gone, along with any group membership."""
    present = set(current_names)
    kept: list[MediaItem] = []
    for photo in catalog.photos:
        if photo.original_name in present:
            kept.append(photo)
        else:
            logger.info("Removing orphaned item: %s", photo.original_name)
    removed = len(catalog.photos) - len(kept)
    if removed:
        logger.info("Removed %d orphaned items from catalog", removed)

    groups: list[LocationGroup] = []
    for group in catalog.groups:
        members = [photo for photo in group.photos if photo.original_name in present]
        if members:
            groups.append(group.model_copy(update={"photos": members, "count": len(members)}))
    pruned = Catalog(
        photos=kept,
        groups=groups,
        version=catalog.version,
        last_updated=catalog.last_updated,
    )
    return pruned, removed


def replace_groups(catalog: Catalog, groups: list[LocationGroup]) -> Catalog:
    return Catalog(
        photos=catalog.photos,
        groups=groups,
        version=catalog.version,
        last_updated=catalog.last_updated,
    )


def save_catalog(catalog: Catalog, path: str | Path) -> Catalog:
    """Persist `catalog` atomically, returning the saved value with its version bumped."""
    catalog_path = Path(path)
    saved = Catalog(
        photos=catalog.photos,
        groups=catalog.groups,
        version=catalog.version + 1,
        last_updated=datetime.now(timezone.utc),
    )
    payload = json.dumps(saved.to_json_dict(), indent=2, ensure_ascii=False)
    try:
        catalog_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{catalog_path.name}.", suffix=".tmp", dir=catalog_path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, catalog_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise CatalogWriteError(f"Failed to write catalog {catalog_path}: {exc}") from exc

    logger.info(
        "Saved catalog to %s: %d items, %d groups (version %d)",
        catalog_path,
        len(saved.photos),
        len(saved.groups),
        saved.version,
    )
    return saved
