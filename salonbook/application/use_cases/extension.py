from __future__ import annotations

import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from salonbook.application.exceptions import BookingNotFoundError
from salonbook.application.ports.reference_data import ProcedureCatalogPort
from salonbook.application.use_cases.availability import AvailabilityEngine, without_booking
from salonbook.application.use_cases.schedule_resolver import ScheduleResolver
from salonbook.application.utils.local_time import to_local
from salonbook.domain.entities.booking import BookingRecord
from salonbook.domain.entities.extension import ExtensionCheckResult, ExtensionStatus
from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.slot import BusyInterval, Slot


class ExtensionNegotiator:
    """
    Decide how an existing booking can absorb a longer procedure.

    Order of preference: grow forward from the same start, then start earlier on the
    same day, then offer other slots (same day first, then the following days).
    """

    def __init__(
        self,
        engine: AvailabilityEngine,
        resolver: ScheduleResolver,
        catalog: ProcedureCatalogPort,
        timezone: ZoneInfo,
        shift_step_minutes: int = 15,
        alternative_days: int = 7,
        alternative_limit: int = 6,
    ) -> None:
        if shift_step_minutes <= 0:
            raise ValueError("shift_step_minutes must be positive")
        self._engine = engine
        self._resolver = resolver
        self._catalog = catalog
        self._timezone = timezone
        self._shift_step = timedelta(minutes=shift_step_minutes)
        self._alternative_days = alternative_days
        self._alternative_limit = alternative_limit
        self._logger = logging.getLogger(__name__)

    def check(self, booking: BookingRecord, new_procedure_id: str) -> ExtensionCheckResult:
        procedure = self._catalog.get_procedure(new_procedure_id)
        if procedure is None:
            raise BookingNotFoundError("The selected procedure is no longer offered.")
        return self.check_procedure(booking, procedure)

    def check_procedure(self, booking: BookingRecord, procedure: Procedure) -> ExtensionCheckResult:
        start = to_local(booking.start, self._timezone)
        duration = timedelta(minutes=procedure.duration_minutes)

        if procedure.duration_minutes <= booking.duration_minutes:
            return ExtensionCheckResult(status=ExtensionStatus.can_extend)

        schedule = self._resolver.resolve(start.date())
        if schedule.closed:
            self._logger.info("Booking day is closed", extra={"event_id": booking.event_id, "date": start.date().isoformat()})
            return self._alternatives(booking, procedure, reason="closed")

        busy = without_booking(self._engine.busy_between(schedule.open_at, schedule.close_at), booking)

        new_end = start + duration
        conflict = _conflicts(busy, start, new_end)
        within_hours = new_end <= schedule.close_at
        if not conflict and within_hours:
            self._logger.info("Booking can grow in place", extra={"event_id": booking.event_id, "status": "can_extend"})
            return ExtensionCheckResult(status=ExtensionStatus.can_extend)

        reason = "conflict" if conflict else "outside_hours"
        now = self._engine.now()
        candidate = start - self._shift_step
        while candidate >= schedule.open_at:
            candidate_end = candidate + duration
            if candidate >= now and candidate_end <= schedule.close_at and not _conflicts(busy, candidate, candidate_end):
                shift = int((start - candidate).total_seconds() // 60)
                self._logger.info(
                    "Booking can shift back",
                    extra={"event_id": booking.event_id, "status": "can_shift_back", "reason": reason},
                )
                return ExtensionCheckResult(
                    status=ExtensionStatus.can_shift_back,
                    suggested=Slot(start=candidate, end=candidate_end),
                    shift_minutes=shift,
                    reason=reason,
                )
            candidate -= self._shift_step

        return self._alternatives(booking, procedure, reason=reason)

    def _alternatives(self, booking: BookingRecord, procedure: Procedure, reason: str) -> ExtensionCheckResult:
        slots = self._engine.find_slots(
            to_local(booking.start, self._timezone).date(),
            self._alternative_days,
            procedure.duration_minutes,
            exclude=booking,
            limit=self._alternative_limit,
        )
        self._logger.info(
            "No same-day fit for longer procedure",
            extra={"event_id": booking.event_id, "status": "no_availability", "reason": reason},
        )
        return ExtensionCheckResult(
            status=ExtensionStatus.no_availability,
            reason=reason,
            alternative_slots=tuple(slots),
        )


def _conflicts(busy: list[BusyInterval], start: datetime, end: datetime) -> bool:
    return any(b.overlaps(start, end) for b in busy)
