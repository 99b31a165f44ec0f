from __future__ import annotations

import logging
import os
from pathlib import Path

from photo_atlas.core.env import configure_logging, env_flag, env_path, load_dotenv_if_present


def test_dotenv_does_not_override_existing_values(tmp_path: Path, monkeypatch) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("PHOTO_ATLAS_FROM_FILE=loaded\nPHOTO_ATLAS_PRESET=file\n")
    monkeypatch.delenv("PHOTO_ATLAS_FROM_FILE", raising=False)
    monkeypatch.setenv("PHOTO_ATLAS_PRESET", "shell")

    load_dotenv_if_present(dotenv)

    assert os.environ["PHOTO_ATLAS_FROM_FILE"] == "loaded"
    assert os.environ["PHOTO_ATLAS_PRESET"] == "shell"
    monkeypatch.delenv("PHOTO_ATLAS_FROM_FILE")


def test_missing_dotenv_is_ignored(tmp_path: Path) -> None:
    load_dotenv_if_present(tmp_path / "absent.env")


def test_env_flag_and_path(monkeypatch) -> None:
    monkeypatch.setenv("INGEST_RETRY_FAILED", "Yes")
    monkeypatch.setenv("GEOCODING_ENABLED", "0")
    monkeypatch.delenv("PHOTO_ATLAS_UNSET", raising=False)
    assert env_flag("INGEST_RETRY_FAILED") is True
    assert env_flag("GEOCODING_ENABLED", True) is False
    assert env_flag("PHOTO_ATLAS_UNSET", True) is True

    monkeypatch.setenv("PHOTO_SOURCE_DIR", "~/Pictures")
    assert env_path("PHOTO_SOURCE_DIR") == Path("~/Pictures").expanduser()
    assert env_path("PHOTO_ATLAS_UNSET") is None
    assert env_path("PHOTO_ATLAS_UNSET", "./public") == Path("./public")


def test_configure_logging_reads_level(monkeypatch) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    monkeypatch.setenv("LOG_LEVEL", "debug")
    try:
        root.handlers = []
        configure_logging()
        assert root.level == logging.DEBUG
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
