from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime
    event_id: str | None = None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        # Half-open intervals: touching edges do not conflict.
        return start < self.end and end > self.start


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    @staticmethod
    def from_iso(start_iso: str, end_iso: str) -> "Slot":
        start = datetime.fromisoformat(start_iso.replace("Z", "+00:00"))
        end = datetime.fromisoformat(end_iso.replace("Z", "+00:00"))
        if start.tzinfo is None or end.tzinfo is None:
            raise ValueError("Slot timestamps must carry a UTC offset")
        if end <= start:
            raise ValueError("Slot end must be after its start")
        return Slot(start=start, end=end)
