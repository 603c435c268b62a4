from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator
from zoneinfo import ZoneInfo

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def local_datetime(day: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=tz)


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    return local_datetime(day, time.min, tz), local_datetime(day + timedelta(days=1), time.min, tz)


def iter_days(start: date, until: date) -> Iterator[date]:
    current = start
    while current <= until:
        yield current
        current += timedelta(days=1)


def parse_iso_datetime(raw: str | None) -> datetime | None:
    """Parse an RFC3339 timestamp. Naive values are taken as UTC."""
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date '{raw}', expected YYYY-MM-DD") from e
