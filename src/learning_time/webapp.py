"""FastAPI application the host UI uses to drive learning-time tracking."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .connectivity import ConnectivityMonitor
from .models import TimeRecord
from .overflow import SqliteOverflowStore
from .paths import get_store_path
from .provider import TimeTrackingProvider
from .remote import HttpRemoteCollector
from .runner import TrackerRunner

logger = logging.getLogger(__name__)


class RecordPayload(BaseModel):
    activity_id: str
    time_spent_minutes: int
    started_at: int
    completed_at: int

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_record(cls, record: TimeRecord) -> "RecordPayload":
        return cls(
            activity_id=record.activity_id,
            time_spent_minutes=record.time_spent_minutes,
            started_at=record.started_at,
            completed_at=record.completed_at,
        )


class ActivityStatus(BaseModel):
    activity_id: str
    tracking: bool
    elapsed_seconds: int
    record: Optional[RecordPayload] = None


class SyncResult(BaseModel):
    drained: bool
    pending_records: int
    overflow_records: int


def build_provider(
    settings: TrackerSettings, db_path: Optional[Path] = None
) -> TimeTrackingProvider:
    """Wire a provider to the HTTP collector and the on-disk overflow store."""
    if not settings.collector_url:
        raise ValueError("A collector URL is required to deliver time records")
    collector = HttpRemoteCollector(
        settings.collector_url,
        api_token=settings.api_token,
        timeout=settings.request_timeout.total_seconds(),
    )
    store = SqliteOverflowStore(Path(db_path or get_store_path(settings.collector_url)))
    return TimeTrackingProvider(collector, store, settings)


def create_app(
    *,
    provider: Optional[TimeTrackingProvider] = None,
    settings: Optional[TrackerSettings] = None,
    db_path: Optional[Path] = None,
    monitor: Optional[ConnectivityMonitor] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or (provider.settings if provider else TrackerSettings())
    resolved_provider = provider or build_provider(resolved_settings, db_path)
    if monitor is None and resolved_settings.collector_url:
        monitor = ConnectivityMonitor.for_url(
            resolved_settings.collector_url, resolved_provider.sync_offline_records
        )
    runner = TrackerRunner(resolved_provider, resolved_settings, monitor=monitor)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        runner.start()
        try:
            yield
        finally:
            runner.stop()

    app = FastAPI(title="Learning Time Tracker", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.provider = resolved_provider
    app.state.tracker_runner = runner
    app.state.monitor = monitor

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        tracker: TimeTrackingProvider = request.app.state.provider
        return {
            "runner_running": request.app.state.tracker_runner.is_running(),
            "closed": tracker.closed,
            "online": monitor.online if monitor is not None else None,
            "active_activities": tracker.active_activities,
            "pending_records": tracker.pending_count,
            "overflow_records": tracker.overflow_count(),
            "max_batch_size": resolved_settings.max_batch_size,
            "max_batch_age_seconds": resolved_settings.max_batch_age.total_seconds(),
            "tick_seconds": resolved_settings.tick_interval.total_seconds(),
        }

    @app.post("/api/activities/{activity_id}/start", response_model=ActivityStatus)
    def start_activity(activity_id: str, request: Request) -> ActivityStatus:
        tracker = _open_provider(request)
        key = _activity_key(activity_id)
        tracker.start_tracking(key)
        return ActivityStatus(
            activity_id=key,
            tracking=tracker.is_tracking(key),
            elapsed_seconds=tracker.get_elapsed_time(key),
        )

    @app.post("/api/activities/{activity_id}/stop", response_model=ActivityStatus)
    def stop_activity(activity_id: str, request: Request) -> ActivityStatus:
        tracker: TimeTrackingProvider = request.app.state.provider
        key = _activity_key(activity_id)
        record = tracker.stop_tracking(key)
        return ActivityStatus(
            activity_id=key,
            tracking=False,
            elapsed_seconds=0,
            record=RecordPayload.from_record(record) if record else None,
        )

    @app.get("/api/activities/{activity_id}", response_model=ActivityStatus)
    def activity_status(activity_id: str, request: Request) -> ActivityStatus:
        tracker: TimeTrackingProvider = request.app.state.provider
        key = _activity_key(activity_id)
        return ActivityStatus(
            activity_id=key,
            tracking=tracker.is_tracking(key),
            elapsed_seconds=tracker.get_elapsed_time(key),
        )

    @app.post("/api/connectivity/online", response_model=SyncResult)
    def connectivity_online(request: Request) -> SyncResult:
        tracker = _open_provider(request)
        if monitor is not None:
            drained = monitor.notify_online() is True
        else:
            logger.info("Host reported connectivity restored")
            drained = tracker.sync_offline_records()
        return SyncResult(
            drained=drained,
            pending_records=tracker.pending_count,
            overflow_records=tracker.overflow_count(),
        )

    @app.get("/api/pending")
    def pending(request: Request) -> Dict[str, Any]:
        tracker: TimeTrackingProvider = request.app.state.provider
        records = tracker.store.read_all()
        return {
            "count": len(records),
            "records": [record.to_payload() for record in records],
        }

    return app


def _activity_key(value: str) -> str:
    key = value.strip()
    if not key:
        raise HTTPException(status_code=400, detail="activity_id is required")
    return key


def _open_provider(request: Request) -> TimeTrackingProvider:
    tracker: TimeTrackingProvider = request.app.state.provider
    if tracker.closed:
        raise HTTPException(status_code=409, detail="Tracker is shutting down")
    return tracker
