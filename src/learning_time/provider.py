"""Time tracking provider: timers, batching, flush policy and offline sync."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .batch import PendingBatch
from .config import TrackerSettings
from .models import TimeRecord
from .overflow import OverflowStore
from .remote import RemoteCollector
from .timer import ActivityTimer, Clock, now_ms

logger = logging.getLogger(__name__)


class TimeTrackingProvider:
    """Owns the active timers and pending batch for one learner session.

    Host calls (start/stop/query) may arrive on any thread. Batch state is
    guarded by a lock; the collector call itself runs outside it so a slow
    network never blocks the host. At most one flush is in flight at a time.
    """

    def __init__(
        self,
        collector: RemoteCollector,
        store: OverflowStore,
        settings: Optional[TrackerSettings] = None,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self.collector = collector
        self.store = store
        self.settings = settings or TrackerSettings()
        self._clock = clock or now_ms
        self._timers = ActivityTimer(self._clock)
        self._batch = PendingBatch(started_at=self._clock())
        self._lock = threading.RLock()
        self._flush_in_flight = False
        self._closed = False

    # ── Host-facing tracking API ────────────────────────────

    def start_tracking(self, activity_id: str) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Ignoring start for %s: provider is closed", activity_id)
                return
            self._timers.start(activity_id)
        logger.debug("Tracking started for %s", activity_id)

    def stop_tracking(self, activity_id: str) -> Optional[TimeRecord]:
        with self._lock:
            record = self._timers.stop(activity_id)
            if record is not None:
                self._batch.append(record)
        if record is not None:
            logger.debug(
                "Recorded %d min for %s", record.time_spent_minutes, activity_id
            )
        return record

    def is_tracking(self, activity_id: str) -> bool:
        with self._lock:
            return self._timers.is_tracking(activity_id)

    def get_elapsed_time(self, activity_id: str) -> int:
        """Whole seconds since tracking started, 0 when not tracked."""
        with self._lock:
            return self._timers.elapsed_seconds(activity_id)

    @property
    def active_activities(self) -> list[str]:
        with self._lock:
            return self._timers.active_ids

    @property
    def pending_records(self) -> list[TimeRecord]:
        with self._lock:
            return self._batch.records

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._batch)

    @property
    def batch_started_at(self) -> int:
        with self._lock:
            return self._batch.started_at

    @property
    def closed(self) -> bool:
        return self._closed

    def overflow_count(self) -> int:
        return len(self.store.read_all())

    # ── Flush policy ────────────────────────────────────────

    def should_flush(self) -> bool:
        with self._lock:
            if not self._batch:
                return False
            return (
                len(self._batch) >= self.settings.max_batch_size
                or self._batch.age_ms(self._clock()) >= self.settings.max_batch_age_ms
            )

    def process_pending_records(self, force: bool = False) -> bool:
        """Run one flush tick.

        Returns True when a batch was handed to the collector (whatever the
        outcome), False when the tick was a no-op.
        """
        with self._lock:
            if self._flush_in_flight:
                logger.debug("Flush already in flight; skipping tick")
                return False
            if not self._batch:
                return False
            if not force and not self.should_flush():
                return False
            records = self._batch.take(self._clock())
            self._flush_in_flight = True

        try:
            self._deliver(records)
        finally:
            with self._lock:
                self._flush_in_flight = False
        return True

    def _deliver(self, records: list[TimeRecord]) -> None:
        try:
            delivered = self.collector.submit_time_batch(records)
        except Exception:
            logger.exception("Collector raised while submitting %d records", len(records))
            delivered = False

        if delivered:
            logger.info("Flushed batch of %d time records", len(records))
            return
        logger.warning(
            "Failed to sync %d time records; moving them to offline storage", len(records)
        )
        self.store.append(records)

    # ── Reconnect sync ──────────────────────────────────────

    def sync_offline_records(self) -> bool:
        """Drain the offline store, then run a flush tick for in-memory records.

        Returns whether the offline store was drained.
        """
        drained = self.store.drain_and_clear(self.collector)
        self.process_pending_records()
        return drained

    # ── Teardown ────────────────────────────────────────────

    def close(self) -> None:
        """Stop every active timer and make one final flush attempt."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            swept = self._timers.stop_all()
            self._batch.extend(swept)
        if swept:
            logger.info("Stopped %d active activities on shutdown", len(swept))
        self.process_pending_records(force=True)

        # A flush still in flight from another thread skips the final tick.
        with self._lock:
            leftover = self._batch.take(self._clock())
        if leftover:
            logger.warning("Keeping %d unsent time records offline", len(leftover))
            self.store.append(leftover)
