from __future__ import annotations

import logging
from pathlib import Path

from photo_atlas.core.models import MediaFile, MediaKind

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
VIDEO_EXTENSIONS = {".mov", ".mp4", ".avi"}
SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS


class SourceTreeError(RuntimeError):
    """Raised when the source tree cannot be scanned at all."""


def media_kind(path: str | Path) -> MediaKind | None:
    suffix = Path(path).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return "image"
    if suffix in VIDEO_EXTENSIONS:
        return "video"
    return None


def scan_media(root: str | Path) -> list[MediaFile]:
    """Recursively list recognised images and videos under `root`, sorted by relative name."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise SourceTreeError(f"Source directory not found or not a folder: {root_path}")

    logger.info("Scanning for media in %s", root_path)
    files: list[MediaFile] = []
    try:
        for path in root_path.rglob("*"):
            if not path.is_file():
                continue
            kind = media_kind(path)
            if kind is None:
                continue
            files.append(
                MediaFile(
                    path=str(path.resolve()),
                    name=path.relative_to(root_path).as_posix(),
                    kind=kind,
                )
            )
    except OSError as exc:
        raise SourceTreeError(f"Failed to scan {root_path}: {exc}") from exc

    files.sort(key=lambda f: f.name)
    logger.info("Found %d media files", len(files))
    return files
