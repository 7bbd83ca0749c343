"""Background scheduler driving flush ticks and connectivity checks."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .config import TrackerSettings
from .connectivity import ConnectivityMonitor
from .provider import TimeTrackingProvider

logger = logging.getLogger(__name__)


class TrackerRunner:
    """Run the provider's periodic work in a background thread."""

    def __init__(
        self,
        provider: TimeTrackingProvider,
        settings: Optional[TrackerSettings] = None,
        *,
        monitor: Optional[ConnectivityMonitor] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.settings = settings or provider.settings
        self.monitor = monitor
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._ready = threading.Event()
        self._next_tick = 0.0
        self._next_check = 0.0

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            self._ready.clear()
            thread = threading.Thread(
                target=self.run_until_stopped,
                args=(stop_event,),
                name="learning-time-runner",
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Tracker background thread started.")

    def stop(self) -> None:
        """Stop the scheduler and tear the provider down (final flush)."""
        thread: Optional[threading.Thread] = None
        with self._lock:
            if self._stop_event:
                self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread and thread.is_alive():
            thread.join(timeout=10)
            logger.info("Tracker background thread stopped.")
        self.provider.close()

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the startup sync of the current run has finished."""
        return self._ready.wait(timeout)

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Run scheduled work until the provided event is set."""
        logger.info(
            "Scheduler running (tick=%.0fs, batch=%d, max_age=%.0fs)",
            self.settings.tick_interval.total_seconds(),
            self.settings.max_batch_size,
            self.settings.max_batch_age.total_seconds(),
        )
        # Leftovers from a previous session are retried once up front.
        self._safely(self.provider.sync_offline_records, "startup sync")
        self._ready.set()
        now = self._monotonic()
        self._next_tick = now + self.settings.tick_interval.total_seconds()
        self._next_check = now + self.settings.connectivity_interval.total_seconds()
        while not stop_event.is_set():
            self.run_pending()
            # Sleep in an interruptible manner.
            stop_event.wait(self._sleep_seconds())

    def run_pending(self) -> None:
        """Run whichever jobs are due at the current monotonic time."""
        now = self._monotonic()
        if self.monitor is not None and now >= self._next_check:
            self._next_check = now + self.settings.connectivity_interval.total_seconds()
            self._safely(self.monitor.check, "connectivity check")
        if now >= self._next_tick:
            self._next_tick = now + self.settings.tick_interval.total_seconds()
            self._safely(self.provider.process_pending_records, "flush tick")

    def _sleep_seconds(self) -> float:
        due = self._next_tick
        if self.monitor is not None:
            due = min(due, self._next_check)
        return max(due - self._monotonic(), 0.05)

    @staticmethod
    def _safely(job: Callable[[], object], name: str) -> None:
        try:
            job()
        except Exception:
            logger.exception("%s failed", name.capitalize())
