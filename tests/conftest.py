"""Shared fixtures: a controllable clock, a scripted collector and a temp store."""

from __future__ import annotations

from typing import Sequence

import pytest

from learning_time.config import TrackerSettings
from learning_time.models import TimeRecord
from learning_time.overflow import SqliteOverflowStore
from learning_time.provider import TimeTrackingProvider


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeCollector:
    """Records every submitted batch; succeeds unless ``online`` is False."""

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.batches: list[list[TimeRecord]] = []
        self.attempts = 0

    def submit_time_batch(self, records: Sequence[TimeRecord]) -> bool:
        self.attempts += 1
        if not self.online:
            return False
        self.batches.append(list(records))
        return True

    @property
    def delivered(self) -> list[TimeRecord]:
        return [record for batch in self.batches for record in batch]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collector():
    return FakeCollector()


@pytest.fixture
def store(tmp_path):
    return SqliteOverflowStore(tmp_path / "overflow.sqlite3")


@pytest.fixture
def settings():
    return TrackerSettings()


@pytest.fixture
def provider(collector, store, settings, clock):
    return TimeTrackingProvider(collector, store, settings, clock=clock)


def make_record(activity_id: str = "activity-1", minutes: int = 2, started_at: int = 0) -> TimeRecord:
    return TimeRecord(
        activity_id=activity_id,
        time_spent_minutes=minutes,
        started_at=started_at,
        completed_at=started_at + minutes * 60_000,
    )
