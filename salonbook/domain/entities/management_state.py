from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from salonbook.domain.entities.booking import BookingRecord
from salonbook.domain.entities.errors import ErrorInfo
from salonbook.domain.entities.extension import ExtensionCheckResult
from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.slot import Slot


class ManagementStatus(str, Enum):
    search = "search"
    loading = "loading"
    results = "results"
    not_found = "not-found"
    edit_selection = "edit-selection"
    edit_procedure = "edit-procedure"
    direct_time_change = "direct-time-change"
    confirm_time_change = "confirm-time-change"
    confirm_cancel = "confirm-cancel"
    contact_staff = "contact-staff"
    time_change_success = "time-change-success"
    time_change_error = "time-change-error"
    procedure_change_success = "procedure-change-success"
    procedure_change_error = "procedure-change-error"
    cancel_success = "cancel-success"
    cancel_error = "cancel-error"
    contact_staff_success = "contact-staff-success"


@dataclass(frozen=True)
class SearchForm:
    full_name: str = ""
    phone: str = ""
    email: str = ""


@dataclass(frozen=True)
class TimeChangeSession:
    original_booking: BookingRecord
    selected_procedure: Procedure
    new_slot: Slot | None = None

    @property
    def is_procedure_change(self) -> bool:
        # "No procedure change" means the session procedure equals the original one.
        return self.selected_procedure.name != self.original_booking.procedure_name


@dataclass(frozen=True)
class CalendarSelection:
    mode: str = "booking"  # "booking" | "editing"
    day: date | None = None
    procedure_id: str | None = None
    slot: Slot | None = None


@dataclass(frozen=True)
class BookingManagementState:
    status: ManagementStatus = ManagementStatus.search
    is_open: bool = False
    session_id: int = 0
    form: SearchForm = SearchForm()
    form_error: str | None = None
    results: tuple[BookingRecord, ...] = ()
    selected_booking: BookingRecord | None = None
    original_procedure: Procedure | None = None
    selected_procedure: Procedure | None = None
    time_change_session: TimeChangeSession | None = None
    extension_phase: str = "idle"  # "idle", "checking", "done"
    extension_result: ExtensionCheckResult | None = None
    selected_alternative_slot: Slot | None = None
    calendar: CalendarSelection = CalendarSelection()
    pending_mutation: str | None = None  # "search", "time", "procedure", "cancel", "contact"
    action_error: ErrorInfo | None = None
    verification_token: str | None = None
    requires_verification: bool = True
