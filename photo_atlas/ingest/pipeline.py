from __future__ import annotations

import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from uuid import uuid4

from photo_atlas.catalog import (
    load_catalog,
    merge_items,
    prune_orphans,
    replace_groups,
    save_catalog,
)
from photo_atlas.core.env import env_flag, env_path
from photo_atlas.core.models import CURRENT_SCHEMA_VERSION, Catalog, MediaFile, MediaItem
from photo_atlas.geo.clustering import DEFAULT_RADIUS_MILES, cluster_locations, groups_changed
from photo_atlas.geo.geocoder import PlaceNameResolver
from photo_atlas.storage.blob_store import (
    BlobStore,
    BlobStoreError,
    content_type_for,
    object_key,
)

from .exif_reader import MetadataError, read_media_metadata
from .fingerprint import fingerprint_file
from .scanner import scan_media
from .transcoder import TranscodeConfig, TranscodeError, transcode_image

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    source_dir: Path
    manifest_path: Path
    transcode: TranscodeConfig = field(default_factory=TranscodeConfig)
    radius_miles: float = DEFAULT_RADIUS_MILES
    workers: int = 1
    retry_failed: bool = False

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls(
            source_dir=env_path("PHOTO_SOURCE_DIR", "./photos") or Path("./photos"),
            manifest_path=env_path("PHOTO_MANIFEST_PATH", "./src/data/photos.json")
            or Path("./src/data/photos.json"),
            transcode=TranscodeConfig.from_env(),
            radius_miles=float(os.getenv("GROUP_RADIUS_MILES", str(DEFAULT_RADIUS_MILES))),
            workers=max(1, int(os.getenv("INGEST_WORKERS", "1"))),
            retry_failed=env_flag("INGEST_RETRY_FAILED", False),
        )


@dataclass
class IngestTask:
    file: MediaFile
    item_id: str
    content_hash: Optional[str]
    duplicate_of: Optional[str] = None
    hash_error: Optional[str] = None


@dataclass
class PipelineResult:
    catalog: Catalog
    processed: int = 0
    failed: int = 0
    duplicates: int = 0
    skipped: int = 0
    removed: int = 0
    groups_changed: bool = False


def _duplicate_is_stale(
    existing: MediaItem, by_id: dict[str, MediaItem], current_hashes: dict[str, str]
) -> bool:
    original = by_id.get(existing.duplicate_of or "")
    if original is None:
        return True
    return current_hashes.get(original.original_name) != existing.content_hash


def needs_processing(
    existing: MediaItem,
    content_hash: str,
    by_id: dict[str, MediaItem],
    current_hashes: dict[str, str],
    *,
    retry_failed: bool = False,
) -> bool:
    """Decide whether an already catalogued file has to go through processing again."""
    if existing.schema_version < CURRENT_SCHEMA_VERSION:
        logger.info(
            "Re-processing %s - outdated version (v%d -> v%d)",
            existing.original_name,
            existing.schema_version,
            CURRENT_SCHEMA_VERSION,
        )
        return True
    if existing.content_hash != content_hash:
        logger.info("Re-processing %s - content changed", existing.original_name)
        return True
    if existing.duplicate_of is not None and _duplicate_is_stale(existing, by_id, current_hashes):
        logger.info("Re-processing %s - duplicated item is gone", existing.original_name)
        return True
    if not existing.processed or existing.error:
        return retry_failed
    return False


def plan_tasks(
    files: list[MediaFile], catalog: Catalog, *, retry_failed: bool = False
) -> tuple[list[IngestTask], int]:
    """Fingerprint every file and decide which ones need work. Returns (tasks, skipped)."""
    current_hashes: dict[str, str] = {}
    hash_errors: dict[str, str] = {}
    for media in files:
        try:
            current_hashes[media.name] = fingerprint_file(media.path)
        except OSError as exc:
            logger.error("Cannot read %s: %s", media.name, exc)
            hash_errors[media.name] = f"Cannot read file: {exc}"

    by_name = catalog.by_name()
    by_id = catalog.by_id()
    by_hash = {
        content_hash: item
        for content_hash, item in catalog.by_hash().items()
        if current_hashes.get(item.original_name) == content_hash
    }

    tasks: list[IngestTask] = []
    claimed: dict[str, str] = {}
    skipped = 0
    for media in files:
        existing = by_name.get(media.name)
        item_id = existing.id if existing else uuid4().hex
        content_hash = current_hashes.get(media.name)
        if content_hash is None:
            tasks.append(
                IngestTask(media, item_id, None, hash_error=hash_errors.get(media.name))
            )
            continue
        if existing and not needs_processing(
            existing, content_hash, by_id, current_hashes, retry_failed=retry_failed
        ):
            logger.debug("Skipping %s - already processed (v%d)", media.name, existing.schema_version)
            skipped += 1
            continue

        original = by_hash.get(content_hash)
        if original is not None and original.original_name != media.name:
            duplicate_of: Optional[str] = original.id
        else:
            duplicate_of = claimed.get(content_hash)
        if duplicate_of is None:
            claimed[content_hash] = item_id
        else:
            logger.info(
                "Skipping %s - duplicate content (same hash: %s...)", media.name, content_hash[:8]
            )
        tasks.append(IngestTask(media, item_id, content_hash, duplicate_of=duplicate_of))
    return tasks, skipped


def process_file(
    task: IngestTask, store: BlobStore, config: TranscodeConfig, work_dir: Path
) -> MediaItem:
    """Extract, transcode and upload one file; failures are recorded on the returned item."""
    media = task.file
    fields: dict = {
        "id": task.item_id,
        "original_name": media.name,
        "content_hash": task.content_hash,
        "kind": media.kind,
        "schema_version": CURRENT_SCHEMA_VERSION,
    }
    if task.hash_error:
        return MediaItem(**fields, error=task.hash_error)

    logger.info("Processing %s: %s", media.kind, media.name)
    key = object_key(media.name)
    try:
        if media.kind == "video":
            # Whole file held in memory; BlobStore.put takes bytes, not a stream.
            data = Path(media.path).read_bytes()
            fields["location_url"] = store.put(key, data, content_type_for(media.name, "video"))
            fields["optimized_size"] = len(data)
        else:
            metadata = read_media_metadata(media.path)
            target = work_dir / f"{task.item_id}{Path(media.name).suffix.lower()}"
            try:
                fields["optimized_size"] = transcode_image(media.path, target, config)
                fields["location_url"] = store.put(
                    key, target.read_bytes(), content_type_for(media.name, "image")
                )
            finally:
                target.unlink(missing_ok=True)
            if metadata is not None:
                fields["latitude"] = metadata.latitude
                fields["longitude"] = metadata.longitude
                fields["captured_at"] = metadata.captured_at
    except (MetadataError, TranscodeError, BlobStoreError, OSError) as exc:
        logger.error("Error processing %s: %s", media.name, exc)
        return MediaItem(**fields, processed=False, error=str(exc))

    logger.info("Successfully processed %s", media.name)
    return MediaItem(**fields, processed=True)


def duplicate_item(task: IngestTask, original: MediaItem) -> MediaItem:
    """Record for a file whose bytes match `original`; it reuses the stored artifact."""
    return MediaItem(
        id=task.item_id,
        original_name=task.file.name,
        content_hash=task.content_hash,
        kind=task.file.kind,
        location_url=original.location_url,
        processed=original.processed,
        error=original.error,
        schema_version=CURRENT_SCHEMA_VERSION,
        duplicate_of=original.id,
        optimized_size=original.optimized_size,
    )


def process_tasks(
    tasks: list[IngestTask],
    catalog: Catalog,
    store: BlobStore,
    config: TranscodeConfig,
    *,
    workers: int = 1,
) -> list[MediaItem]:
    """Run every planned task; items come back in task order."""
    primary = [task for task in tasks if task.duplicate_of is None]
    with tempfile.TemporaryDirectory(prefix="photo_atlas_") as tmp:
        work_dir = Path(tmp)

        def _run(task: IngestTask) -> MediaItem:
            return process_file(task, store, config, work_dir)

        if workers > 1 and len(primary) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(executor.map(_run, primary))
        else:
            results = [_run(task) for task in primary]

    by_id = catalog.by_id()
    by_id.update({item.id: item for item in results})
    by_task_id = {item.id: item for item in results}
    items: list[MediaItem] = []
    for task in tasks:
        if task.duplicate_of is None:
            items.append(by_task_id[task.item_id])
        else:
            items.append(duplicate_item(task, by_id[task.duplicate_of]))
    return items


def run_pipeline(
    config: PipelineConfig,
    *,
    store: BlobStore,
    resolver: PlaceNameResolver,
) -> PipelineResult:
    """Scan, process, merge, cluster and persist. Nothing is written until the final save."""
    logger.info("Starting media processing for %s", config.source_dir)
    files = scan_media(config.source_dir)
    catalog = load_catalog(config.manifest_path)
    previous_groups = list(catalog.groups)

    catalog, removed = prune_orphans(catalog, [media.name for media in files])
    tasks, skipped = plan_tasks(files, catalog, retry_failed=config.retry_failed)
    items = process_tasks(tasks, catalog, store, config.transcode, workers=config.workers)
    catalog = merge_items(catalog, items)

    groups = cluster_locations(catalog.photos, resolver, config.radius_miles)
    changed = groups_changed(previous_groups, groups)
    catalog = save_catalog(replace_groups(catalog, groups), config.manifest_path)

    duplicates = sum(1 for task in tasks if task.duplicate_of is not None)
    primary_items = [item for item in items if item.duplicate_of is None]
    failed = sum(1 for item in primary_items if item.error)
    result = PipelineResult(
        catalog=catalog,
        processed=len(primary_items) - failed,
        failed=failed,
        duplicates=duplicates,
        skipped=skipped,
        removed=removed,
        groups_changed=changed,
    )
    logger.info(
        "Media processing complete: %d processed, %d failed, %d duplicates, %d skipped, "
        "%d removed, %d groups",
        result.processed,
        result.failed,
        result.duplicates,
        result.skipped,
        result.removed,
        len(catalog.groups),
    )
    return result
