from __future__ import annotations

import logging
from datetime import date
from zoneinfo import ZoneInfo

from salonbook.application.ports.reference_data import ScheduleSourcePort
from salonbook.application.utils.hours_parser import parse_hours
from salonbook.application.utils.local_time import local_datetime, weekday_name
from salonbook.domain.entities.schedule import DaySchedule, ExceptionRule, WeeklyRule


class ScheduleResolver:
    def __init__(self, source: ScheduleSourcePort, timezone: ZoneInfo) -> None:
        self._source = source
        self._timezone = timezone
        self._logger = logging.getLogger(__name__)

    def resolve(self, day: date) -> DaySchedule:
        return self.resolve_with(day, self._source.weekly_rules(), self._source.exception_rules())

    def resolve_range(self, days: list[date]) -> dict[date, DaySchedule]:
        """Resolve several days with a single read of the reference data."""
        weekly = self._source.weekly_rules()
        exceptions = self._source.exception_rules()
        return {day: self.resolve_with(day, weekly, exceptions) for day in days}

    def resolve_with(
        self,
        day: date,
        weekly: dict[str, WeeklyRule],
        exceptions: dict[date, ExceptionRule],
    ) -> DaySchedule:
        # An exception for the exact date wins entirely over the weekly rule.
        exception = exceptions.get(day)
        if exception is not None:
            if exception.is_day_off:
                return DaySchedule.closed_day(day, source="exception")
            return self._build(day, exception.hours, "exception")

        rule = weekly.get(weekday_name(day))
        if rule is None or rule.is_day_off:
            return DaySchedule.closed_day(day, source="weekly" if rule else "none")
        return self._build(day, rule.hours, "weekly")

    def _build(self, day: date, hours: str, source: str) -> DaySchedule:
        parsed = parse_hours(hours)
        if parsed is None:
            if hours:
                self._logger.warning(
                    "Unreadable working hours, treating day as closed",
                    extra={"date": day.isoformat(), "reason": hours},
                )
            return DaySchedule.closed_day(day, source=source)
        opens, closes = parsed
        return DaySchedule(
            day=day,
            open_at=local_datetime(day, opens, self._timezone),
            close_at=local_datetime(day, closes, self._timezone),
            source=source,
        )
