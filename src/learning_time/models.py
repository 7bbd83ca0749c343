"""Domain models for recorded learning time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class TimeRecord:
    """One completed tracking session for a single learning activity."""

    activity_id: str
    time_spent_minutes: int
    started_at: int
    completed_at: int

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at) / 1000.0

    def to_payload(self) -> dict[str, Any]:
        """Wire representation sent to the collector and kept in the overflow store."""
        return {
            "activityId": self.activity_id,
            "timeSpentMinutes": self.time_spent_minutes,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TimeRecord":
        """Rebuild a record from its wire form.

        Raises ValueError when a field is missing or breaks the record
        invariants (minutes >= 1, completion after start).
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"Expected a mapping, got {type(payload).__name__}")
        try:
            activity_id = payload["activityId"]
            minutes = payload["timeSpentMinutes"]
            started_at = payload["startedAt"]
            completed_at = payload["completedAt"]
        except KeyError as exc:
            raise ValueError(f"Missing field {exc.args[0]!r}") from exc

        if not isinstance(activity_id, str) or not activity_id:
            raise ValueError("activityId must be a non-empty string")
        for name, value in (
            ("timeSpentMinutes", minutes),
            ("startedAt", started_at),
            ("completedAt", completed_at),
        ):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
        if minutes < 1:
            raise ValueError("timeSpentMinutes must be at least 1")
        if completed_at <= started_at:
            raise ValueError("completedAt must be after startedAt")

        return cls(
            activity_id=activity_id,
            time_spent_minutes=minutes,
            started_at=started_at,
            completed_at=completed_at,
        )
