"""Configuration models and helpers for the learning-time tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for batching, flushing and reconnect checks."""

    max_batch_size: int = 50
    max_batch_age: timedelta = timedelta(minutes=5)
    tick_interval: timedelta = timedelta(seconds=60)
    connectivity_interval: timedelta = timedelta(seconds=15)
    request_timeout: timedelta = timedelta(seconds=15)
    collector_url: Optional[str] = None
    api_token: Optional[str] = None

    @property
    def max_batch_age_ms(self) -> int:
        return int(self.max_batch_age.total_seconds() * 1000)

    @classmethod
    def from_options(
        cls,
        collector_url: Optional[str] = None,
        *,
        api_token: Optional[str] = None,
        max_batch_size: int = 50,
        max_batch_age_minutes: float = 5.0,
        tick_seconds: float = 60.0,
        connectivity_seconds: Optional[float] = None,
        timeout_seconds: float = 15.0,
    ) -> "TrackerSettings":
        connectivity = (
            connectivity_seconds
            if connectivity_seconds is not None
            else min(tick_seconds, 15.0)
        )
        return cls(
            max_batch_size=max_batch_size,
            max_batch_age=timedelta(minutes=max_batch_age_minutes),
            tick_interval=timedelta(seconds=tick_seconds),
            connectivity_interval=timedelta(seconds=connectivity),
            request_timeout=timedelta(seconds=timeout_seconds),
            collector_url=collector_url.rstrip("/") if collector_url else None,
            api_token=api_token,
        )
