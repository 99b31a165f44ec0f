from __future__ import annotations

import hashlib
from pathlib import Path


def fingerprint(data: bytes) -> str:
    """MD5 digest of raw bytes; identifies accidental duplicates, not tampering."""
    return hashlib.md5(data).hexdigest()


def fingerprint_file(path: str | Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.md5()
    with Path(path).open("rb") as infile:
        for chunk in iter(lambda: infile.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()
