"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from .models import TimeRecord
from .overflow import OverflowStore


class PendingPrinter:
    """Render the offline store contents in the console."""

    def __init__(self, store: OverflowStore) -> None:
        self.store = store

    def print_pending_summary(self) -> None:
        records = self.store.read_all()
        if not records:
            print("No time records waiting to be synced.")
            return

        total_minutes = sum(record.time_spent_minutes for record in records)
        oldest = min(record.started_at for record in records)

        print(f"{len(records)} time records waiting to be synced")
        print("-" * 40)
        print(f"Total time:   {format_minutes(total_minutes)}")
        print(f"Oldest start: {format_timestamp(oldest)}")
        print()
        print("By activity:")
        for activity_id, minutes, count in aggregate_by_activity(records):
            print(f"  {activity_id:<30} {format_minutes(minutes)}  ({count} sessions)")


def aggregate_by_activity(records: Iterable[TimeRecord]) -> list[tuple[str, int, int]]:
    minutes: defaultdict[str, int] = defaultdict(int)
    sessions: defaultdict[str, int] = defaultdict(int)
    for record in records:
        minutes[record.activity_id] += record.time_spent_minutes
        sessions[record.activity_id] += 1
    ordered = sorted(minutes.items(), key=lambda item: item[1], reverse=True)
    return [(activity_id, total, sessions[activity_id]) for activity_id, total in ordered]


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def format_timestamp(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M")
