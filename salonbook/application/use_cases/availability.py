from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from salonbook.application.ports.calendar import CalendarPort
from salonbook.application.ports.reference_data import ProcedureCatalogPort
from salonbook.application.use_cases.schedule_resolver import ScheduleResolver
from salonbook.application.utils.local_time import day_bounds, iter_days, to_local
from salonbook.domain.entities.booking import BookingRecord
from salonbook.domain.entities.schedule import DaySchedule
from salonbook.domain.entities.slot import BusyInterval, Slot


def without_booking(busy: list[BusyInterval], booking: BookingRecord | None) -> list[BusyInterval]:
    """Drop the booking's own interval, by event id when known, otherwise by exact time match."""
    if booking is None:
        return list(busy)
    kept: list[BusyInterval] = []
    for interval in busy:
        if interval.event_id and interval.event_id == booking.event_id:
            continue
        if interval.start == booking.start and interval.end == booking.end:
            continue
        kept.append(interval)
    return kept


class AvailabilityEngine:
    def __init__(
        self,
        calendar: CalendarPort,
        catalog: ProcedureCatalogPort,
        resolver: ScheduleResolver,
        timezone: ZoneInfo,
        step_minutes: int = 30,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        self._calendar = calendar
        self._catalog = catalog
        self._resolver = resolver
        self._timezone = timezone
        self._step = timedelta(minutes=step_minutes)
        self._now = now or (lambda: datetime.now(self._timezone))
        self._logger = logging.getLogger(__name__)

    def slots_for_day(self, day: date, procedure_id: str | None) -> list[Slot]:
        duration = self._duration_for(procedure_id)
        if duration is None:
            return []
        return self.slots_for_duration(day, duration)

    def days_with_availability(self, start: date, until: date, procedure_id: str | None) -> dict[date, bool]:
        if until < start:
            raise ValueError("Range end must not be before its start")
        days = list(iter_days(start, until))
        duration = self._duration_for(procedure_id)
        if duration is None:
            return {day: False for day in days}

        schedules = self._resolver.resolve_range(days)
        if all(schedule.closed for schedule in schedules.values()):
            return {day: False for day in days}

        # One calendar read for the whole range.
        range_start, _ = day_bounds(start, self._timezone)
        _, range_end = day_bounds(until, self._timezone)
        busy = self.busy_between(range_start, range_end)
        now = self._now()

        result: dict[date, bool] = {}
        for day in days:
            schedule = schedules[day]
            if schedule.closed:
                result[day] = False
                continue
            day_busy = [b for b in busy if b.overlaps(schedule.open_at, schedule.close_at)]
            result[day] = bool(self._walk(schedule, duration, day_busy, now, first_only=True))
        return result

    def slots_for_duration(
        self,
        day: date,
        duration_minutes: int,
        exclude: BookingRecord | None = None,
    ) -> list[Slot]:
        schedule = self._resolver.resolve(day)
        if schedule.closed:
            return []
        busy = without_booking(self.busy_between(schedule.open_at, schedule.close_at), exclude)
        return self._walk(schedule, duration_minutes, busy, self._now(), first_only=False)

    def find_slots(
        self,
        start: date,
        days: int,
        duration_minutes: int,
        exclude: BookingRecord | None = None,
        limit: int = 6,
    ) -> list[Slot]:
        """Collect up to `limit` slots from `start` over the following `days` days."""
        found: list[Slot] = []
        for day in iter_days(start, start + timedelta(days=max(days, 0))):
            if len(found) >= limit:
                break
            found.extend(self.slots_for_duration(day, duration_minutes, exclude=exclude))
        return found[:limit]

    def busy_between(self, start: datetime, end: datetime) -> list[BusyInterval]:
        return [
            BusyInterval(
                start=to_local(b.start, self._timezone),
                end=to_local(b.end, self._timezone),
                event_id=b.event_id,
            )
            for b in self._calendar.freebusy(start, end)
        ]

    def now(self) -> datetime:
        return self._now()

    def _duration_for(self, procedure_id: str | None) -> int | None:
        # No procedure chosen means no day can be considered open.
        if not procedure_id:
            return None
        procedure = self._catalog.get_procedure(procedure_id)
        if procedure is None:
            self._logger.warning("Unknown procedure requested", extra={"procedure_id": procedure_id})
            return None
        return procedure.duration_minutes

    def _walk(
        self,
        schedule: DaySchedule,
        duration_minutes: int,
        busy: list[BusyInterval],
        now: datetime,
        first_only: bool,
    ) -> list[Slot]:
        duration = timedelta(minutes=duration_minutes)
        slots: list[Slot] = []
        start = schedule.open_at
        while start < schedule.close_at:
            end = start + duration
            if end > schedule.close_at:
                break
            if start >= now and not any(b.overlaps(start, end) for b in busy):
                slots.append(Slot(start=start, end=end))
                if first_only:
                    break
            start += self._step
        return slots
