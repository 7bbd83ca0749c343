"""In-memory accumulation of completed time records."""

from __future__ import annotations

from typing import Iterable

from .models import TimeRecord


class PendingBatch:
    """Ordered records awaiting delivery plus the time the batch began."""

    def __init__(self, started_at: int) -> None:
        self.started_at = started_at
        self._records: list[TimeRecord] = []

    def append(self, record: TimeRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[TimeRecord]) -> None:
        self._records.extend(records)

    @property
    def records(self) -> list[TimeRecord]:
        return list(self._records)

    def age_ms(self, now: int) -> int:
        return now - self.started_at

    def take(self, now: int) -> list[TimeRecord]:
        """Hand over every record and start a fresh batch at ``now``."""
        records = self._records
        self._records = []
        self.started_at = now
        return records

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)
