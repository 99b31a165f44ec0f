from __future__ import annotations

import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from photo_atlas.core.env import env_path

logger = logging.getLogger(__name__)

OBJECT_PREFIX = "photos/"


class BlobStoreError(RuntimeError):
    """Raised when an object cannot be stored or listed."""


class BlobStore(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> str: ...

    def list(self, prefix: str) -> list[str]: ...


def object_key(original_name: str) -> str:
    return f"{OBJECT_PREFIX}{original_name}"


def content_type_for(name: str, kind: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    if guessed:
        return guessed
    return "video/mp4" if kind == "video" else "image/jpeg"


@dataclass
class StorageConfig:
    output_dir: Path
    public_base_url: Optional[str]

    @classmethod
    def from_env(cls) -> "StorageConfig":
        return cls(
            output_dir=env_path("PHOTO_OUTPUT_DIR", "./public") or Path("./public"),
            public_base_url=os.getenv("PHOTO_PUBLIC_BASE_URL") or None,
        )


class LocalDirectoryStore:
    """Object store writing blobs beneath a directory, e.g. a static site's public folder."""

    def __init__(self, root: str | Path, base_url: Optional[str] = None):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    @classmethod
    def from_config(cls, config: StorageConfig) -> "LocalDirectoryStore":
        return cls(config.output_dir, config.public_base_url)

    def _resolve(self, key: str) -> Path:
        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts:
            raise BlobStoreError(f"Invalid object key: {key}")
        return self.root.joinpath(*relative.parts)

    def url_for(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return self._resolve(key).resolve().as_uri()

    def put(self, key: str, data: bytes, content_type: str) -> str:
        target = self._resolve(key)
        tmp = target.with_name(target.name + ".partial")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as exc:
            raise BlobStoreError(f"Error storing {key}: {exc}") from exc
        logger.info("Stored %s (%s, %d bytes)", key, content_type, len(data))
        return self.url_for(key)

    def list(self, prefix: str) -> list[str]:
        if not self.root.is_dir():
            return []
        try:
            keys = [
                path.relative_to(self.root).as_posix()
                for path in self.root.rglob("*")
                if path.is_file() and not path.name.endswith(".partial")
            ]
        except OSError as exc:
            raise BlobStoreError(f"Error listing {self.root}: {exc}") from exc
        return sorted(key for key in keys if key.startswith(prefix))
