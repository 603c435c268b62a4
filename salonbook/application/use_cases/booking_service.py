from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from salonbook.application.exceptions import (
    BookingNotFoundError,
    DuplicateBookingError,
    RateLimitedError,
    SlotConflictError,
    TooLateToModifyError,
    VerificationFailedError,
)
from salonbook.application.ports.calendar import CalendarPort
from salonbook.application.ports.reference_data import ProcedureCatalogPort
from salonbook.application.ports.request_guard import RequestGuardPort
from salonbook.application.ports.staff_contact import StaffContactPort
from salonbook.application.ports.verification import BotChallengePort
from salonbook.application.use_cases.availability import AvailabilityEngine, without_booking
from salonbook.application.use_cases.booking_matcher import SecureBookingMatcher
from salonbook.application.use_cases.extension import ExtensionNegotiator
from salonbook.application.use_cases.schedule_resolver import ScheduleResolver
from salonbook.application.utils.event_format import (
    build_description,
    build_properties,
    parse_booking_event,
    parse_booking_events,
)
from salonbook.application.utils.local_time import day_bounds, to_local
from salonbook.application.utils.normalization import (
    SIGNIFICANT_PHONE_DIGITS,
    mask_email,
    mask_phone,
    normalize_name,
    phone_digits,
    phones_match,
)
from salonbook.domain.entities.booking import (
    BookingRecord,
    NewBookingRequest,
    SearchCriteria,
    StaffContactRequest,
)
from salonbook.domain.entities.extension import ExtensionCheckResult
from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.slot import BusyInterval, Slot

# Which endpoints need the bot-challenge token. Later mutations in a session rely on
# the verification done during search.
REQUIRED = "required"
FORWARDED = "forwarded"
EXEMPT = "exempt"

VERIFICATION_POLICY: dict[str, str] = {
    "search": REQUIRED,
    "create": REQUIRED,
    "combined_update": FORWARDED,
    "update_time": EXEMPT,
    "update_procedure": EXEMPT,
    "check_extension": EXEMPT,
    "cancel": EXEMPT,
}


@dataclass(frozen=True)
class BookingPolicy:
    modification_cutoff_hours: int = 24
    search_window_days: int = 90
    availability_horizon_days: int = 60
    rate_limit_per_minute: int = 10
    rate_limit_per_hour: int = 50
    booking_cooldown_seconds: int = 300
    contact_rate_limit_per_hour: int = 5


BookingRef = BookingRecord | str


def _ensure_duration(slot: Slot, minutes: int) -> None:
    if slot.duration_minutes != minutes:
        raise ValueError(f"Slot must be exactly {minutes} minutes long")


class BookingService:
    def __init__(
        self,
        calendar: CalendarPort,
        catalog: ProcedureCatalogPort,
        resolver: ScheduleResolver,
        engine: AvailabilityEngine,
        negotiator: ExtensionNegotiator,
        matcher: SecureBookingMatcher,
        verifier: BotChallengePort,
        guard: RequestGuardPort,
        staff_contact: StaffContactPort,
        timezone: ZoneInfo,
        policy: BookingPolicy | None = None,
        now: Callable[[], datetime] | None = None,
        live_calendar: CalendarPort | None = None,
    ) -> None:
        self._calendar = calendar
        # Uncached view used for the last conflict check before a write.
        self._live_calendar = live_calendar or calendar
        self._catalog = catalog
        self._resolver = resolver
        self._engine = engine
        self._negotiator = negotiator
        self._matcher = matcher
        self._verifier = verifier
        self._guard = guard
        self._staff_contact = staff_contact
        self._timezone = timezone
        self._policy = policy or BookingPolicy()
        self._now = now or (lambda: datetime.now(self._timezone))
        self._logger = logging.getLogger(__name__)

    # Reads

    def list_procedures(self) -> list[Procedure]:
        return self._catalog.list_procedures()

    def slots_for_day(self, day: date, procedure_id: str | None) -> list[Slot]:
        return self._engine.slots_for_day(day, procedure_id)

    def days_with_availability(self, start: date, until: date, procedure_id: str | None) -> dict[date, bool]:
        if (until - start).days > self._policy.availability_horizon_days:
            raise ValueError(f"Date range is limited to {self._policy.availability_horizon_days} days")
        return self._engine.days_with_availability(start, until, procedure_id)

    def search_bookings(
        self,
        criteria: SearchCriteria,
        turnstile_token: str | None = None,
        remote_ip: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[BookingRecord]:
        if not normalize_name(criteria.first_name):
            raise ValueError("First name is required")
        if len(phone_digits(criteria.phone)) < SIGNIFICANT_PHONE_DIGITS:
            raise ValueError(f"Phone number must have at least {SIGNIFICANT_PHONE_DIGITS} digits")
        self._verify("search", turnstile_token, remote_ip)

        today = self._now().date()
        date_from = date_from or today
        date_to = date_to or today + timedelta(days=self._policy.search_window_days)
        if date_from > date_to:
            raise ValueError("Invalid date range")

        range_start, _ = day_bounds(date_from, self._timezone)
        _, range_end = day_bounds(date_to, self._timezone)
        events = self._calendar.list_events(range_start, range_end)
        records = [self._with_flags(record) for record in parse_booking_events(events)]
        matched = self._matcher.filter(records, criteria)

        self._logger.info(
            "Booking search completed",
            extra={"status": f"{len(matched)} match(es)", "ip": remote_ip, "reason": mask_phone(criteria.phone)},
        )
        return matched

    def slots_for_rebooking(
        self,
        booking: BookingRef,
        criteria: SearchCriteria,
        day: date,
        procedure_id: str | None = None,
    ) -> list[Slot]:
        """Slots a booking could move to on `day`.

        The booking's own interval does not block its new time. Without a
        procedure id the booking keeps its current length.
        """
        record = self._load_owned(booking, criteria)
        if not record.can_modify:
            raise TooLateToModifyError()
        duration = self._require_procedure(procedure_id).duration_minutes if procedure_id else record.duration_minutes
        return self._engine.slots_for_duration(day, duration, exclude=record)

    def check_extension(self, booking: BookingRef, new_procedure_id: str) -> ExtensionCheckResult:
        self._verify("check_extension", None, None)
        record = self._load(booking)
        return self._negotiator.check(record, new_procedure_id)

    # Mutations

    def update_booking_time(self, booking: BookingRef, slot: Slot) -> BookingRecord:
        self._verify("update_time", None, None)
        record = self._load_modifiable(booking)
        _ensure_duration(slot, record.duration_minutes)
        self._ensure_slot_available(slot, record)

        self._calendar.update_event(record.event_id, {"start": slot.start, "end": slot.end})
        self._logger.info("Booking time updated", extra={"event_id": record.event_id, "date": slot.start_iso})
        return self._with_flags(replace(record, start=slot.start, end=slot.end))

    def update_booking_procedure(self, booking: BookingRef, procedure_id: str) -> BookingRecord:
        self._verify("update_procedure", None, None)
        procedure = self._require_procedure(procedure_id)
        record = self._load_modifiable(booking)

        slot = Slot(start=record.start, end=record.start + timedelta(minutes=procedure.duration_minutes))
        if procedure.duration_minutes > record.duration_minutes:
            self._ensure_slot_available(slot, record)
        return self._apply_procedure(record, procedure, slot)

    def update_booking_combined(
        self,
        booking: BookingRef,
        criteria: SearchCriteria,
        procedure_id: str | None = None,
        slot: Slot | None = None,
        turnstile_token: str | None = None,
        remote_ip: str | None = None,
    ) -> BookingRecord:
        if not procedure_id and slot is None:
            raise ValueError("At least one change (procedure or time) must be provided")
        self._verify("combined_update", turnstile_token, remote_ip)
        record = self._load_owned(booking, criteria)
        if not record.can_modify:
            raise TooLateToModifyError()

        if procedure_id is None:
            _ensure_duration(slot, record.duration_minutes)
            self._ensure_slot_available(slot, record)
            self._calendar.update_event(record.event_id, {"start": slot.start, "end": slot.end})
            return self._with_flags(replace(record, start=slot.start, end=slot.end))

        procedure = self._require_procedure(procedure_id)
        if slot is None:
            slot = Slot(start=record.start, end=record.start + timedelta(minutes=procedure.duration_minutes))
        _ensure_duration(slot, procedure.duration_minutes)
        self._ensure_slot_available(slot, record)
        return self._apply_procedure(record, procedure, slot)

    def cancel_booking(self, booking: BookingRef, criteria: SearchCriteria) -> None:
        self._verify("cancel", None, None)
        record = self._load(booking)
        if not self._owns(record, criteria):
            self._logger.warning("Cancel attempted with mismatching identity", extra={"event_id": record.event_id})
            raise BookingNotFoundError()
        if not record.can_cancel:
            raise TooLateToModifyError("Bookings less than 24 hours away can only be cancelled by contacting us.")

        if not self._calendar.delete_event(record.event_id):
            raise BookingNotFoundError()
        self._logger.info("Booking cancelled", extra={"event_id": record.event_id})

    def create_booking(
        self,
        request: NewBookingRequest,
        turnstile_token: str | None = None,
        remote_ip: str | None = None,
    ) -> BookingRecord:
        ip = remote_ip or "0.0.0.0"
        minute_ok = self._guard.hit(f"rl:book:ip:{ip}:1m", self._policy.rate_limit_per_minute, 60)
        hour_ok = self._guard.hit(f"rl:book:ip:{ip}:1h", self._policy.rate_limit_per_hour, 3600)
        if not minute_ok or not hour_ok:
            raise RateLimitedError()
        self._verify("create", turnstile_token, ip)

        names = request.full_name.split()
        if not names:
            raise ValueError("Name is required")
        if len(phone_digits(request.phone)) < SIGNIFICANT_PHONE_DIGITS:
            raise ValueError(f"Phone number must have at least {SIGNIFICANT_PHONE_DIGITS} digits")

        procedure = self._require_procedure(request.procedure_id) if request.procedure_id else None
        slot = Slot(start=request.slot_start, end=request.slot_end)
        if procedure:
            _ensure_duration(slot, procedure.duration_minutes)
        self._ensure_slot_available(slot, None)

        idempotency_key = f"idem:book:{slot.start_iso}:{slot.end_iso}:{phone_digits(request.phone)}"
        if not self._guard.acquire(idempotency_key, self._policy.booking_cooldown_seconds):
            raise DuplicateBookingError()

        price = procedure.price if procedure else 0
        try:
            event_id = self._calendar.create_event(
                start=slot.start,
                end=slot.end,
                summary=procedure.name if procedure else f"Booking: {request.full_name}",
                description=build_description(request.full_name, request.phone, request.email, price),
                properties=build_properties(
                    request.full_name,
                    request.phone,
                    request.email,
                    procedure.id if procedure else None,
                    price,
                ),
            )
        except Exception:
            self._guard.release(idempotency_key)
            raise

        self._logger.info(
            "Booking created",
            extra={"event_id": event_id, "procedure_id": request.procedure_id, "ip": ip},
        )
        return self._with_flags(
            BookingRecord(
                event_id=event_id,
                first_name=names[0],
                last_name=" ".join(names[1:]),
                phone=request.phone,
                email=request.email,
                procedure_id=procedure.id if procedure else None,
                procedure_name=procedure.name if procedure else "",
                start=to_local(slot.start, self._timezone),
                end=to_local(slot.end, self._timezone),
                price=price,
            )
        )

    def contact_staff(self, request: StaffContactRequest, remote_ip: str | None = None) -> str:
        ip = remote_ip or "0.0.0.0"
        if not self._guard.hit(f"rl:contact:ip:{ip}:1h", self._policy.contact_rate_limit_per_hour, 3600):
            raise RateLimitedError()
        if len(request.full_name.strip()) < 2:
            raise ValueError("Full name must have at least 2 characters")
        if len(phone_digits(request.phone)) < SIGNIFICANT_PHONE_DIGITS:
            raise ValueError(f"Phone number must have at least {SIGNIFICANT_PHONE_DIGITS} digits")
        if len(request.message.strip()) < 10:
            raise ValueError("Message must have at least 10 characters")

        request_id = f"staff-contact-{uuid.uuid4().hex[:12]}"
        self._staff_contact.send(request, request_id)
        self._logger.info(
            "Staff contact request forwarded",
            extra={"event_id": request.event_id, "ip": ip, "reason": f"{mask_phone(request.phone)} {mask_email(request.email)}"},
        )
        return request_id

    # Helpers

    def _verify(self, endpoint: str, token: str | None, remote_ip: str | None) -> None:
        policy = VERIFICATION_POLICY[endpoint]
        if policy == EXEMPT or (policy == FORWARDED and not token):
            return
        result = self._verifier.verify(token, remote_ip)
        if not result.ok:
            self._logger.warning("Bot challenge rejected", extra={"reason": result.code, "ip": remote_ip})
            raise VerificationFailedError()

    def _load(self, booking: BookingRef) -> BookingRecord:
        event_id = booking.event_id if isinstance(booking, BookingRecord) else booking
        event = self._calendar.get_event(event_id)
        record = parse_booking_event(event) if event else None
        if record is None:
            self._logger.warning("Booking not found", extra={"event_id": event_id})
            raise BookingNotFoundError()
        return self._with_flags(record)

    def _load_owned(self, booking: BookingRef, criteria: SearchCriteria) -> BookingRecord:
        record = self._load(booking)
        if not self._matcher.matches(record, criteria):
            self._logger.warning("Booking access with mismatching identity", extra={"event_id": record.event_id})
            raise BookingNotFoundError()
        return record

    def _load_modifiable(self, booking: BookingRef) -> BookingRecord:
        record = self._load(booking)
        if not record.can_modify:
            self._logger.warning("Modification attempted inside cutoff", extra={"event_id": record.event_id})
            raise TooLateToModifyError()
        return record

    def _with_flags(self, record: BookingRecord) -> BookingRecord:
        start = to_local(record.start, self._timezone)
        end = to_local(record.end, self._timezone)
        allowed = start - self._now() >= timedelta(hours=self._policy.modification_cutoff_hours)
        return replace(record, start=start, end=end, can_modify=allowed, can_cancel=allowed)

    def _require_procedure(self, procedure_id: str) -> Procedure:
        procedure = self._catalog.get_procedure(procedure_id)
        if procedure is None:
            raise BookingNotFoundError("The selected procedure is no longer offered.")
        return procedure

    def _ensure_slot_available(self, slot: Slot, record: BookingRecord | None) -> None:
        start = to_local(slot.start, self._timezone)
        end = to_local(slot.end, self._timezone)
        if start < self._now():
            raise SlotConflictError("This time has already passed. Please pick another slot.")

        schedule = self._resolver.resolve(start.date())
        if schedule.closed or start < schedule.open_at or end > schedule.close_at:
            raise SlotConflictError("This time is outside working hours. Please pick another slot.")

        busy = [
            BusyInterval(start=to_local(b.start, self._timezone), end=to_local(b.end, self._timezone), event_id=b.event_id)
            for b in self._live_calendar.freebusy(start, end)
        ]
        busy = without_booking(busy, record)
        if any(b.overlaps(start, end) for b in busy):
            self._logger.warning(
                "Requested time conflicts with another booking",
                extra={"event_id": record.event_id if record else None, "date": start.isoformat()},
            )
            raise SlotConflictError()

    def _apply_procedure(self, record: BookingRecord, procedure: Procedure, slot: Slot) -> BookingRecord:
        self._calendar.update_event(
            record.event_id,
            {
                "summary": procedure.name,
                "description": build_description(record.full_name, record.phone, record.email, procedure.price),
                "start": slot.start,
                "end": slot.end,
                "properties": build_properties(
                    record.full_name, record.phone, record.email, procedure.id, procedure.price
                ),
            },
        )
        self._logger.info(
            "Booking procedure updated",
            extra={"event_id": record.event_id, "procedure_id": procedure.id},
        )
        return self._with_flags(
            replace(
                record,
                procedure_id=procedure.id,
                procedure_name=procedure.name,
                price=procedure.price,
                start=slot.start,
                end=slot.end,
            )
        )

    def _owns(self, record: BookingRecord, criteria: SearchCriteria) -> bool:
        if criteria.last_name and normalize_name(criteria.last_name) != normalize_name(record.last_name):
            return False
        return normalize_name(record.first_name) == normalize_name(criteria.first_name) and phones_match(
            record.phone, criteria.phone
        )
