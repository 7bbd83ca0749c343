"""Wall-clock timers for learning activities that are currently open."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional

from .models import TimeRecord

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000

Clock = Callable[[], int]


def now_ms() -> int:
    """Current time as a millisecond epoch timestamp."""
    return int(time.time() * 1000)


class ActivityTimer:
    """Tracks the start time of every active activity id."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or now_ms
        self._active: dict[str, int] = {}

    def start(self, activity_id: str) -> None:
        # Restarting an activity simply moves its start time.
        self._active[activity_id] = self._clock()

    def stop(self, activity_id: str) -> Optional[TimeRecord]:
        """Stop an activity and return its record if it ran a full minute."""
        started_at = self._active.pop(activity_id, None)
        if started_at is None:
            return None
        return self._build_record(activity_id, started_at, self._clock())

    def stop_all(self) -> list[TimeRecord]:
        completed_at = self._clock()
        records: list[TimeRecord] = []
        for activity_id, started_at in list(self._active.items()):
            record = self._build_record(activity_id, started_at, completed_at)
            if record is not None:
                records.append(record)
        self._active.clear()
        return records

    def is_tracking(self, activity_id: str) -> bool:
        return activity_id in self._active

    def elapsed_seconds(self, activity_id: str) -> int:
        started_at = self._active.get(activity_id)
        if started_at is None:
            return 0
        return max(self._clock() - started_at, 0) // 1000

    @property
    def active_ids(self) -> list[str]:
        return list(self._active)

    def __len__(self) -> int:
        return len(self._active)

    @staticmethod
    def _build_record(
        activity_id: str, started_at: int, completed_at: int
    ) -> Optional[TimeRecord]:
        elapsed_ms = completed_at - started_at
        if elapsed_ms < MS_PER_MINUTE:
            logger.debug(
                "Discarding %s: only %.1fs elapsed", activity_id, elapsed_ms / 1000.0
            )
            return None
        return TimeRecord(
            activity_id=activity_id,
            time_spent_minutes=math.ceil(elapsed_ms / MS_PER_MINUTE),
            started_at=started_at,
            completed_at=completed_at,
        )
