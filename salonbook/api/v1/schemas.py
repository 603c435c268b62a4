from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CamelSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExtensionStatusSchema(str, Enum):
    can_extend = "can_extend"
    can_shift_back = "can_shift_back"
    no_availability = "no_availability"


class ProcedureSchema(CamelSchema):
    id: str
    name: str
    duration_minutes: int = Field(alias="durationMinutes")
    price: int = 0
    category: str | None = None


class ProceduresResponseSchema(CamelSchema):
    procedures: list[ProcedureSchema]


class DayAvailabilitySchema(CamelSchema):
    date: date
    has_window: bool = Field(alias="hasWindow")


class AvailabilityResponseSchema(CamelSchema):
    days: list[DayAvailabilitySchema]


class SlotSchema(CamelSchema):
    start_iso: str = Field(alias="startISO")
    end_iso: str = Field(alias="endISO")


class DaySlotsResponseSchema(CamelSchema):
    date: date
    slots: list[SlotSchema]


class BookingSchema(CamelSchema):
    event_id: str = Field(alias="eventId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    phone: str
    email: str | None = None
    procedure_id: str | None = Field(default=None, alias="procedureId")
    procedure_name: str = Field(alias="procedureName")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    price: int = 0
    can_modify: bool = Field(alias="canModify")
    can_cancel: bool = Field(alias="canCancel")


class BookRequestSchema(CamelSchema):
    start_iso: str = Field(alias="startISO")
    end_iso: str = Field(alias="endISO")
    name: str = Field(min_length=2, max_length=120)
    phone: str = Field(min_length=6, max_length=40)
    email: str | None = None
    procedure_id: str | None = Field(default=None, alias="procedureId")
    turnstile_token: str | None = Field(default=None, alias="turnstileToken")


class BookResponseSchema(CamelSchema):
    ok: bool = True
    booking: BookingSchema


class SearchRequestSchema(CamelSchema):
    full_name: str = Field(alias="fullName", min_length=1, max_length=120)
    phone: str = Field(min_length=1, max_length=40)
    email: str | None = None
    turnstile_token: str | None = Field(default=None, alias="turnstileToken")
    date_from: date | None = Field(default=None, alias="dateFrom")
    date_to: date | None = Field(default=None, alias="dateTo")


class SearchResponseSchema(CamelSchema):
    bookings: list[BookingSchema]
    count: int


class CheckExtensionRequestSchema(CamelSchema):
    new_procedure_id: str = Field(alias="newProcedureId", min_length=1)


class ExtensionResponseSchema(CamelSchema):
    status: ExtensionStatusSchema
    suggested_start_iso: str | None = Field(default=None, alias="suggestedStartISO")
    suggested_end_iso: str | None = Field(default=None, alias="suggestedEndISO")
    shift_minutes: int = Field(default=0, alias="shiftMinutes")
    reason: str | None = None
    alternative_slots: list[SlotSchema] = Field(default_factory=list, alias="alternativeSlots")


class UpdateTimeRequestSchema(CamelSchema):
    event_id: str = Field(alias="eventId", min_length=1)
    new_start_iso: str = Field(alias="newStartISO")
    new_end_iso: str = Field(alias="newEndISO")


class UpdateProcedureRequestSchema(CamelSchema):
    event_id: str = Field(alias="eventId", min_length=1)
    new_procedure_id: str = Field(alias="newProcedureId", min_length=1)


class CombinedUpdateRequestSchema(CamelSchema):
    full_name: str = Field(alias="fullName", min_length=1, max_length=120)
    phone: str = Field(min_length=5, max_length=40)
    email: str | None = None
    procedure_id: str | None = Field(default=None, alias="procedureId")
    start_iso: str | None = Field(default=None, alias="startISO")
    end_iso: str | None = Field(default=None, alias="endISO")
    turnstile_token: str | None = Field(default=None, alias="turnstileToken")


class RebookingSlotsRequestSchema(CamelSchema):
    full_name: str = Field(alias="fullName", min_length=1, max_length=120)
    phone: str = Field(min_length=5, max_length=40)
    email: str | None = None
    day: date = Field(alias="date")
    procedure_id: str | None = Field(default=None, alias="procedureId")


class UpdateResponseSchema(CamelSchema):
    ok: bool = True
    booking: BookingSchema


class CancelRequestSchema(CamelSchema):
    event_id: str = Field(alias="eventId", min_length=1)
    first_name: str = Field(alias="firstName", min_length=1, max_length=60)
    last_name: str = Field(default="", alias="lastName", max_length=60)
    phone: str = Field(min_length=5, max_length=40)
    email: str | None = None


class OkResponseSchema(CamelSchema):
    ok: bool = True


class StaffContactRequestSchema(CamelSchema):
    full_name: str = Field(alias="fullName", min_length=2, max_length=120)
    phone: str = Field(min_length=6, max_length=40)
    email: str | None = None
    message: str = Field(min_length=10, max_length=2000)
    event_id: str | None = Field(default=None, alias="eventId")


class StaffContactResponseSchema(CamelSchema):
    ok: bool = True
    request_id: str = Field(alias="requestId")


class ErrorResponseSchema(CamelSchema):
    error: str
    code: str
    next_action: str
