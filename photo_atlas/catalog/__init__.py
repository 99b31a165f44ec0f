"""Persisted catalog of processed media and location groups."""

from .store import (
    CatalogWriteError,
    load_catalog,
    merge_items,
    prune_orphans,
    replace_groups,
    save_catalog,
)

__all__ = [
    "CatalogWriteError",
    "load_catalog",
    "merge_items",
    "prune_orphans",
    "replace_groups",
    "save_catalog",
]
