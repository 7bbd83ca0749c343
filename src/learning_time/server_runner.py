"""Helpers to launch the local tracking service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import TrackerSettings
from .paths import get_store_path
from .webapp import create_app


def run_service(
    *,
    settings: TrackerSettings,
    host: str = "127.0.0.1",
    port: int = 8766,
    db_path: Optional[Path] = None,
    log_level: str = "info",
) -> None:
    """Start the FastAPI tracking service; blocks until interrupted."""
    app = create_app(
        settings=settings, db_path=db_path or get_store_path(settings.collector_url)
    )
    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
