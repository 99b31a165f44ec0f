"""Ingest pipeline: scan media, read EXIF, transcode, fingerprint and catalogue."""

from .exif_reader import MetadataError, read_media_metadata
from .fingerprint import fingerprint, fingerprint_file
from .pipeline import PipelineConfig, PipelineResult, run_pipeline
from .scanner import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, SourceTreeError, scan_media
from .transcoder import TranscodeConfig, TranscodeError, copy_passthrough, transcode_image

__all__ = [
    "IMAGE_EXTENSIONS",
    "MetadataError",
    "PipelineConfig",
    "PipelineResult",
    "SourceTreeError",
    "TranscodeConfig",
    "TranscodeError",
    "VIDEO_EXTENSIONS",
    "copy_passthrough",
    "fingerprint",
    "fingerprint_file",
    "read_media_metadata",
    "run_pipeline",
    "scan_media",
    "transcode_image",
]
