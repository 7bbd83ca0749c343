"""Command-line interface for the learning-time tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config import TrackerSettings
from .paths import get_log_path, get_store_path

app = typer.Typer(help="Batching learning-time tracker with offline sync.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    collector_url: str = typer.Option(
        ...,
        "--collector-url",
        envvar="LEARNING_TIME_COLLECTOR_URL",
        help="Base URL of the learning-time collector.",
    ),
    api_token: Optional[str] = typer.Option(
        None,
        "--token",
        envvar="LEARNING_TIME_TOKEN",
        help="Bearer token sent with every batch.",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the offline SQLite store.",
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(8766, "--port", min=1, max=65535, help="TCP port for the API."),
    max_batch_size: int = typer.Option(
        50, "--max-batch-size", min=1, help="Flush once this many records are pending."
    ),
    max_batch_age: float = typer.Option(
        5.0, "--max-batch-age", min=0.1, help="Flush once the batch is this many minutes old."
    ),
    tick_seconds: float = typer.Option(
        60.0, "--tick-interval", min=1.0, help="Seconds between flush checks."
    ),
) -> None:
    """Run the local tracking API with the background flush scheduler."""
    from .server_runner import run_service

    file_handler = logging.FileHandler(get_log_path(), encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger().addHandler(file_handler)

    settings = TrackerSettings.from_options(
        collector_url,
        api_token=api_token,
        max_batch_size=max_batch_size,
        max_batch_age_minutes=max_batch_age,
        tick_seconds=tick_seconds,
    )
    run_service(
        settings=settings,
        host=host,
        port=port,
        db_path=db_path or get_store_path(collector_url),
    )


@app.command()
def sync(
    collector_url: str = typer.Option(
        ...,
        "--collector-url",
        envvar="LEARNING_TIME_COLLECTOR_URL",
        help="Base URL of the learning-time collector.",
    ),
    api_token: Optional[str] = typer.Option(
        None, "--token", envvar="LEARNING_TIME_TOKEN", help="Bearer token."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the offline SQLite store."
    ),
) -> None:
    """Send everything in the offline store to the collector once."""
    from .overflow import SqliteOverflowStore
    from .remote import HttpRemoteCollector

    store = SqliteOverflowStore(db_path or get_store_path(collector_url))
    count = store.count()
    if not count:
        typer.echo("Nothing to sync.")
        return
    collector = HttpRemoteCollector(collector_url, api_token=api_token)
    try:
        drained = store.drain_and_clear(collector)
    finally:
        collector.close()
    if not drained:
        typer.echo(f"Sync failed; {count} records kept for the next attempt.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Synced {count} records.")


@app.command()
def pending(
    collector_url: Optional[str] = typer.Option(
        None, "--collector-url", help="Collector whose offline store to show."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the offline SQLite store."
    ),
) -> None:
    """Print the records waiting in the offline store."""
    from .overflow import SqliteOverflowStore
    from .reporting import PendingPrinter

    store = SqliteOverflowStore(db_path or get_store_path(collector_url))
    PendingPrinter(store).print_pending_summary()
