"""Destinations for processed media."""

from .blob_store import (
    BlobStore,
    BlobStoreError,
    LocalDirectoryStore,
    StorageConfig,
    content_type_for,
    object_key,
)

__all__ = [
    "BlobStore",
    "BlobStoreError",
    "LocalDirectoryStore",
    "StorageConfig",
    "content_type_for",
    "object_key",
]
