from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class WeeklyRule:
    weekday: str  # "monday" ... "sunday"
    hours: str = ""  # free text, e.g. "09:00-18:00"
    is_day_off: bool = False


@dataclass(frozen=True)
class ExceptionRule:
    day: date
    hours: str = ""
    is_day_off: bool = False


@dataclass(frozen=True)
class DaySchedule:
    day: date
    open_at: datetime | None = None  # local wall-clock, business timezone
    close_at: datetime | None = None
    source: str = "weekly"  # "weekly", "exception", "none"

    @property
    def closed(self) -> bool:
        return self.open_at is None or self.close_at is None

    @staticmethod
    def closed_day(day: date, source: str = "none") -> "DaySchedule":
        return DaySchedule(day=day, source=source)
