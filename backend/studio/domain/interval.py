"""Half-open time interval used by scheduling rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator

from studio.core.clock import ensure_utc
from studio.core.exceptions import ValidationException


@dataclass(frozen=True)
class TimeInterval:
    """[start, end) in UTC."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.end <= self.start:
            raise ValidationException(
                "End time must be after start time",
                code="INVALID_INTERVAL",
                details={"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @classmethod
    def from_start(cls, start: datetime, minutes: int) -> "TimeInterval":
        return cls(start, ensure_utc(start) + timedelta(minutes=minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < ensure_utc(end) and self.end > ensure_utc(start)

    def slots(self, minutes: int) -> Iterator["TimeInterval"]:
        """Consecutive slots of ``minutes`` length; a trailing partial slot is dropped."""
        step = timedelta(minutes=minutes)
        cursor = self.start
        while cursor + step <= self.end:
            yield TimeInterval(cursor, cursor + step)
            cursor += step

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}
