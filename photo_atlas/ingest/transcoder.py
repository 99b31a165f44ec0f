from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

TRANSCODABLE_FORMATS = {"JPEG", "PNG", "WEBP"}
# Multi-picture JPEGs from phone cameras; only the primary frame is kept.
FORMAT_FAMILIES = {"MPO": "JPEG"}


class TranscodeError(RuntimeError):
    """Raised when an image cannot be decoded or re-encoded."""


@dataclass
class TranscodeConfig:
    max_width: int = 2048
    quality: int = 80

    @classmethod
    def from_env(cls) -> "TranscodeConfig":
        return cls(
            max_width=int(os.getenv("PHOTO_MAX_WIDTH", "2048")),
            quality=int(os.getenv("PHOTO_QUALITY", "80")),
        )


def _save_options(fmt: str, quality: int) -> dict:
    if fmt == "JPEG":
        return {"quality": quality, "optimize": True}
    if fmt == "WEBP":
        return {"quality": quality}
    # PNG is lossless; quality only affects compression effort.
    return {"optimize": True}


def copy_passthrough(source: str | Path, target: str | Path) -> int:
    """Forward a file verbatim (videos, unsupported image formats). Returns the byte size."""
    target_path = Path(target)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        shutil.copyfile(source, target_path)
    except OSError as exc:
        raise TranscodeError(f"Failed to copy {Path(source).name}: {exc}") from exc
    return target_path.stat().st_size


def transcode_image(source: str | Path, target: str | Path, config: TranscodeConfig) -> int:
    """Write an orientation-corrected, downscaled, re-encoded copy of `source` to `target`.

    Images no wider than `config.max_width` are never upscaled. Formats other than
    JPEG, PNG and WebP are copied unmodified. Returns the size of `target` in bytes.
    """
    source_path = Path(source)
    target_path = Path(target)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with Image.open(source_path) as img:
            fmt = (img.format or "").upper()
            fmt = FORMAT_FAMILIES.get(fmt, fmt)
            if fmt not in TRANSCODABLE_FORMATS:
                logger.info("Passing through %s (%s) unmodified", source_path.name, fmt or "unknown")
                return copy_passthrough(source_path, target_path)

            out = ImageOps.exif_transpose(img) or img
            width, height = out.size
            if width > config.max_width:
                new_height = max(1, round(height * config.max_width / width))
                out = out.resize((config.max_width, new_height), Image.Resampling.LANCZOS)
            if fmt == "JPEG" and out.mode not in ("RGB", "L", "CMYK"):
                out = out.convert("RGB")
            out.save(target_path, format=fmt, **_save_options(fmt, config.quality))
    except TranscodeError:
        raise
    except Exception as exc:
        raise TranscodeError(f"Failed to transcode {source_path.name}: {exc}") from exc

    input_size = source_path.stat().st_size
    output_size = target_path.stat().st_size
    if input_size:
        ratio = (input_size - output_size) / input_size * 100
        logger.info("Optimized %s - %.1f%% size reduction", source_path.name, ratio)
    return output_size
