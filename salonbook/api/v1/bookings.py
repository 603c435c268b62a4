from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from salonbook.api.v1.schemas import (
    AvailabilityResponseSchema,
    BookingSchema,
    BookRequestSchema,
    BookResponseSchema,
    CancelRequestSchema,
    CheckExtensionRequestSchema,
    CombinedUpdateRequestSchema,
    DayAvailabilitySchema,
    DaySlotsResponseSchema,
    ExtensionResponseSchema,
    OkResponseSchema,
    ProcedureSchema,
    ProceduresResponseSchema,
    RebookingSlotsRequestSchema,
    SearchRequestSchema,
    SearchResponseSchema,
    SlotSchema,
    StaffContactRequestSchema,
    StaffContactResponseSchema,
    UpdateProcedureRequestSchema,
    UpdateResponseSchema,
    UpdateTimeRequestSchema,
)
from salonbook.application.use_cases.booking_service import BookingService
from salonbook.application.utils.local_time import parse_iso_date
from salonbook.domain.entities.booking import (
    BookingRecord,
    NewBookingRequest,
    SearchCriteria,
    StaffContactRequest,
)
from salonbook.domain.entities.extension import ExtensionCheckResult
from salonbook.domain.entities.slot import Slot
from salonbook.wiring.dependencies import get_booking_service

router = APIRouter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "0.0.0.0")


def to_booking_schema(record: BookingRecord) -> BookingSchema:
    return BookingSchema(
        event_id=record.event_id,
        first_name=record.first_name,
        last_name=record.last_name,
        phone=record.phone,
        email=record.email,
        procedure_id=record.procedure_id,
        procedure_name=record.procedure_name,
        start_time=record.start.isoformat(),
        end_time=record.end.isoformat(),
        price=record.price,
        can_modify=record.can_modify,
        can_cancel=record.can_cancel,
    )


def to_slot_schema(slot: Slot) -> SlotSchema:
    return SlotSchema(start_iso=slot.start_iso, end_iso=slot.end_iso)


def to_extension_schema(result: ExtensionCheckResult) -> ExtensionResponseSchema:
    return ExtensionResponseSchema(
        status=result.status.value,
        suggested_start_iso=result.suggested_start_iso,
        suggested_end_iso=result.suggested_end_iso,
        shift_minutes=result.shift_minutes,
        reason=result.reason,
        alternative_slots=[to_slot_schema(s) for s in result.alternative_slots],
    )


@router.get("/procedures", response_model=ProceduresResponseSchema)
def list_procedures(service: BookingService = Depends(get_booking_service)):
    return ProceduresResponseSchema(
        procedures=[
            ProcedureSchema(
                id=p.id,
                name=p.name,
                duration_minutes=p.duration_minutes,
                price=p.price,
                category=p.category,
            )
            for p in service.list_procedures()
        ]
    )


@router.get("/availability", response_model=AvailabilityResponseSchema)
def availability(
    from_: str = Query(alias="from"),
    until: str = Query(),
    procedure_id: str | None = Query(default=None, alias="procedureId"),
    service: BookingService = Depends(get_booking_service),
):
    try:
        days = service.days_with_availability(parse_iso_date(from_), parse_iso_date(until), procedure_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AvailabilityResponseSchema(
        days=[DayAvailabilitySchema(date=day, has_window=has_window) for day, has_window in sorted(days.items())]
    )


@router.get("/day/{day}", response_model=DaySlotsResponseSchema)
def day_slots(
    day: str,
    procedure_id: str | None = Query(default=None, alias="procedureId"),
    service: BookingService = Depends(get_booking_service),
):
    try:
        parsed: date = parse_iso_date(day)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    slots = service.slots_for_day(parsed, procedure_id)
    return DaySlotsResponseSchema(date=parsed, slots=[to_slot_schema(s) for s in slots])


@router.post("/book", response_model=BookResponseSchema)
def book(
    req: BookRequestSchema,
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    try:
        slot = Slot.from_iso(req.start_iso, req.end_iso)
        record = service.create_booking(
            NewBookingRequest(
                slot_start=slot.start,
                slot_end=slot.end,
                full_name=req.name.strip(),
                phone=req.phone.strip(),
                procedure_id=req.procedure_id,
                email=(req.email or "").strip() or None,
            ),
            turnstile_token=req.turnstile_token,
            remote_ip=client_ip(request),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookResponseSchema(booking=to_booking_schema(record))


@router.post("/bookings/search", response_model=SearchResponseSchema)
def search_bookings(
    req: SearchRequestSchema,
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    try:
        records = service.search_bookings(
            SearchCriteria.from_full_name(req.full_name, req.phone, req.email),
            turnstile_token=req.turnstile_token,
            remote_ip=client_ip(request),
            date_from=req.date_from,
            date_to=req.date_to,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SearchResponseSchema(bookings=[to_booking_schema(r) for r in records], count=len(records))


@router.post("/bookings/{event_id}/check-extension", response_model=ExtensionResponseSchema)
def check_extension(
    event_id: str,
    req: CheckExtensionRequestSchema,
    service: BookingService = Depends(get_booking_service),
):
    return to_extension_schema(service.check_extension(event_id, req.new_procedure_id))


@router.post("/bookings/{event_id}/availability", response_model=DaySlotsResponseSchema)
def rebooking_slots(
    event_id: str,
    req: RebookingSlotsRequestSchema,
    service: BookingService = Depends(get_booking_service),
):
    slots = service.slots_for_rebooking(
        event_id,
        SearchCriteria.from_full_name(req.full_name, req.phone, req.email),
        req.day,
        req.procedure_id,
    )
    return DaySlotsResponseSchema(date=req.day, slots=[to_slot_schema(s) for s in slots])


@router.post("/bookings/update-time", response_model=UpdateResponseSchema)
def update_time(
    req: UpdateTimeRequestSchema,
    service: BookingService = Depends(get_booking_service),
):
    try:
        record = service.update_booking_time(req.event_id, Slot.from_iso(req.new_start_iso, req.new_end_iso))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UpdateResponseSchema(booking=to_booking_schema(record))


@router.post("/bookings/update-procedure", response_model=UpdateResponseSchema)
def update_procedure(
    req: UpdateProcedureRequestSchema,
    service: BookingService = Depends(get_booking_service),
):
    record = service.update_booking_procedure(req.event_id, req.new_procedure_id)
    return UpdateResponseSchema(booking=to_booking_schema(record))


@router.patch("/bookings/{event_id}", response_model=UpdateResponseSchema)
def update_combined(
    event_id: str,
    req: CombinedUpdateRequestSchema,
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    try:
        slot = None
        if req.start_iso or req.end_iso:
            if not (req.start_iso and req.end_iso):
                raise ValueError("Both startISO and endISO are required to change the time")
            slot = Slot.from_iso(req.start_iso, req.end_iso)
        record = service.update_booking_combined(
            event_id,
            SearchCriteria.from_full_name(req.full_name, req.phone, req.email),
            procedure_id=req.procedure_id,
            slot=slot,
            turnstile_token=req.turnstile_token,
            remote_ip=client_ip(request),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UpdateResponseSchema(booking=to_booking_schema(record))


@router.post("/bookings/cancel", response_model=OkResponseSchema)
def cancel(
    req: CancelRequestSchema,
    service: BookingService = Depends(get_booking_service),
):
    criteria = SearchCriteria(
        first_name=req.first_name.strip(),
        last_name=req.last_name.strip(),
        phone=req.phone.strip(),
        email=(req.email or "").strip() or None,
    )
    service.cancel_booking(req.event_id, criteria)
    return OkResponseSchema()


@router.post("/staff/contact", response_model=StaffContactResponseSchema)
def contact_staff(
    req: StaffContactRequestSchema,
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    try:
        request_id = service.contact_staff(
            StaffContactRequest(
                full_name=req.full_name.strip(),
                phone=req.phone.strip(),
                email=(req.email or "").strip() or None,
                message=req.message.strip(),
                event_id=req.event_id,
            ),
            remote_ip=client_ip(request),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return StaffContactResponseSchema(request_id=request_id)
