"""Where the tracker keeps its offline store and log file."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from platformdirs import PlatformDirs


APP_NAME = "LearningTime"
APP_AUTHOR = "FabriQ"
DATA_DIR_ENV = "LEARNING_TIME_DATA_DIR"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]+")


def get_data_dir() -> Path:
    """Return the data directory, honouring ``LEARNING_TIME_DATA_DIR``."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        path = Path(override).expanduser()
    else:
        dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
        path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def store_name(collector_url: Optional[str] = None) -> str:
    """File name of the offline store for one collector.

    Each collector host gets its own file so records are never replayed
    to a different LMS. Without a URL the shared default file is used.
    """
    if not collector_url:
        return "overflow.sqlite3"
    parts = urlsplit(collector_url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}-{parts.port}"
    slug = _UNSAFE_CHARS.sub("-", host).strip("-").lower()
    return f"overflow-{slug}.sqlite3" if slug else "overflow.sqlite3"


def get_store_path(collector_url: Optional[str] = None) -> Path:
    return get_data_dir() / store_name(collector_url)


def get_log_path() -> Path:
    return get_data_dir() / "tracker.log"
