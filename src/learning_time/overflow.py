"""Durable local fallback for records the collector could not take.

Records are kept as a JSON array under one fixed key of a small SQLite
key-value table. This is the only state that survives a restart: active
timers and the in-memory batch are lost with the process.

Every operation is best effort. A corrupt or missing value reads as an
empty list and a failed write is logged and dropped, so callers never
have to handle storage errors.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, Protocol

from .db import database_connection, delete_value, read_value, write_value
from .models import TimeRecord
from .remote import RemoteCollector

logger = logging.getLogger(__name__)

STORE_KEY = "timeTracking_pendingRecords"


class OverflowStore(Protocol):
    def append(self, records: Iterable[TimeRecord]) -> bool:
        ...

    def read_all(self) -> list[TimeRecord]:
        ...

    def clear(self) -> bool:
        ...

    def drain_and_clear(self, collector: RemoteCollector) -> bool:
        ...


class SqliteOverflowStore:
    """Overflow store persisted in a SQLite file."""

    def __init__(self, db_path: Path, *, key: str = STORE_KEY) -> None:
        self.db_path = Path(db_path)
        self.key = key
        self._lock = threading.Lock()
        self._drain_in_flight = False

    def append(self, records: Iterable[TimeRecord]) -> bool:
        """Add records after whatever is already stored. Returns False if dropped."""
        new_records = list(records)
        if not new_records:
            return True
        with self._lock:
            payloads = self._read_payloads()
            payloads.extend(record.to_payload() for record in new_records)
            if not self._write_payloads(payloads):
                logger.error("Dropping %d time records that could not be stored", len(new_records))
                return False
        logger.info("Stored %d time records offline (%d total)", len(new_records), len(payloads))
        return True

    def read_all(self) -> list[TimeRecord]:
        with self._lock:
            payloads = self._read_payloads()
        return _decode(payloads)

    def clear(self) -> bool:
        with self._lock:
            return self._clear_locked()

    def count(self) -> int:
        return len(self.read_all())

    def drain_and_clear(self, collector: RemoteCollector) -> bool:
        """Deliver everything stored; the store is cleared only on success.

        A drain that starts while another one is submitting returns False
        at once. Records appended during the submit are kept.
        """
        with self._lock:
            if self._drain_in_flight:
                logger.debug("Offline drain already in flight; skipping")
                return False
            self._drain_in_flight = True
            payloads = self._read_payloads()
        try:
            return self._drain(collector, payloads)
        finally:
            with self._lock:
                self._drain_in_flight = False

    def _drain(self, collector: RemoteCollector, payloads: list[Any]) -> bool:
        records = _decode(payloads)
        if records:
            try:
                delivered = collector.submit_time_batch(records)
            except Exception:
                logger.exception("Collector raised while draining offline records")
                delivered = False
            if not delivered:
                logger.warning("Could not sync %d offline time records; keeping them", len(records))
                return False

        with self._lock:
            remaining = _without(self._read_payloads(), payloads)
            if remaining:
                if not self._write_payloads(remaining):
                    return False
            elif not self._clear_locked():
                return False
        if records:
            logger.info("Synced %d offline time records", len(records))
        return True

    def _read_payloads(self) -> list[Any]:
        try:
            with database_connection(self.db_path) as conn:
                raw = read_value(conn, self.key)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("Offline store unreadable, treating as empty: %s", exc)
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Offline store is corrupt, treating as empty")
            return []
        if not isinstance(data, list):
            logger.warning("Offline store holds %s, treating as empty", type(data).__name__)
            return []
        return data

    def _write_payloads(self, payloads: list[Any]) -> bool:
        try:
            with database_connection(self.db_path) as conn:
                write_value(conn, self.key, json.dumps(payloads))
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to write offline store: %s", exc)
            return False
        return True

    def _clear_locked(self) -> bool:
        try:
            with database_connection(self.db_path) as conn:
                delete_value(conn, self.key)
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to clear offline store: %s", exc)
            return False
        return True


def _decode(payloads: list[Any]) -> list[TimeRecord]:
    records: list[TimeRecord] = []
    for payload in payloads:
        try:
            records.append(TimeRecord.from_payload(payload))
        except ValueError as exc:
            logger.warning("Skipping malformed offline record %r: %s", payload, exc)
    return records


def _without(current: list[Any], delivered: list[Any]) -> list[Any]:
    """Drop the delivered payloads from ``current``, keeping everything else.

    The usual case is that ``current`` still starts with ``delivered``. If
    another process rewrote the store meanwhile, each delivered payload is
    removed at most once and the rest is kept.
    """
    if current[: len(delivered)] == delivered:
        return current[len(delivered):]
    remaining = list(current)
    for payload in delivered:
        try:
            remaining.remove(payload)
        except ValueError:
            continue
    return remaining
