from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Union

from salonbook.application.exceptions import describe_error
from salonbook.application.utils.normalization import normalize_name, phone_digits, SIGNIFICANT_PHONE_DIGITS
from salonbook.domain.entities.booking import BookingRecord, SearchCriteria, StaffContactRequest
from salonbook.domain.entities.errors import ErrorInfo
from salonbook.domain.entities.extension import ExtensionCheckResult, ExtensionStatus
from salonbook.domain.entities.management_state import (
    BookingManagementState,
    CalendarSelection,
    ManagementStatus,
    SearchForm,
    TimeChangeSession,
)
from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.slot import Slot

S = ManagementStatus

# Actions. Completion actions carry the session_id they were started under.


@dataclass(frozen=True)
class OpenPanel:
    pass


@dataclass(frozen=True)
class ClosePanel:
    pass


@dataclass(frozen=True)
class UpdateForm:
    full_name: str
    phone: str
    email: str = ""


@dataclass(frozen=True)
class SetVerificationToken:
    token: str | None


@dataclass(frozen=True)
class SubmitSearch:
    pass


@dataclass(frozen=True)
class SearchSucceeded:
    session_id: int
    results: tuple[BookingRecord, ...]


@dataclass(frozen=True)
class SearchFailed:
    session_id: int
    error: ErrorInfo


@dataclass(frozen=True)
class BackToSearch:
    pass


@dataclass(frozen=True)
class SelectBooking:
    booking: BookingRecord
    procedure: Procedure


@dataclass(frozen=True)
class BackToResults:
    pass


@dataclass(frozen=True)
class BackToSelection:
    pass


@dataclass(frozen=True)
class StartProcedureChange:
    pass


@dataclass(frozen=True)
class ChooseProcedure:
    procedure: Procedure


@dataclass(frozen=True)
class CheckAvailability:
    pass


@dataclass(frozen=True)
class ExtensionChecked:
    session_id: int
    result: ExtensionCheckResult


@dataclass(frozen=True)
class ExtensionCheckFailed:
    session_id: int
    error: ErrorInfo


@dataclass(frozen=True)
class AcceptSuggestion:
    pass


@dataclass(frozen=True)
class PickAlternativeSlot:
    slot: Slot


@dataclass(frozen=True)
class ConfirmSameTime:
    pass


@dataclass(frozen=True)
class StartTimeChange:
    pass


@dataclass(frozen=True)
class RequestNewTime:
    pass


@dataclass(frozen=True)
class SelectDay:
    day: date


@dataclass(frozen=True)
class SelectSlot:
    slot: Slot


@dataclass(frozen=True)
class ConfirmSlot:
    pass


@dataclass(frozen=True)
class SubmitTimeChange:
    pass


@dataclass(frozen=True)
class StartCancel:
    pass


@dataclass(frozen=True)
class ConfirmCancel:
    pass


@dataclass(frozen=True)
class StartContactStaff:
    pass


@dataclass(frozen=True)
class SubmitContactStaff:
    pass


@dataclass(frozen=True)
class MutationSucceeded:
    session_id: int
    mutation: str  # "time", "combined", "procedure", "cancel", "contact"
    booking: BookingRecord | None = None


@dataclass(frozen=True)
class MutationFailed:
    session_id: int
    mutation: str
    error: ErrorInfo


Action = Union[
    OpenPanel,
    ClosePanel,
    UpdateForm,
    SetVerificationToken,
    SubmitSearch,
    SearchSucceeded,
    SearchFailed,
    BackToSearch,
    SelectBooking,
    BackToResults,
    BackToSelection,
    StartProcedureChange,
    ChooseProcedure,
    CheckAvailability,
    ExtensionChecked,
    ExtensionCheckFailed,
    AcceptSuggestion,
    PickAlternativeSlot,
    ConfirmSameTime,
    StartTimeChange,
    RequestNewTime,
    SelectDay,
    SelectSlot,
    ConfirmSlot,
    SubmitTimeChange,
    StartCancel,
    ConfirmCancel,
    StartContactStaff,
    SubmitContactStaff,
    MutationSucceeded,
    MutationFailed,
]

SUCCESS_STATUS = {
    "time": S.time_change_success,
    "combined": S.procedure_change_success,
    "procedure": S.procedure_change_success,
    "cancel": S.cancel_success,
    "contact": S.contact_staff_success,
}

ERROR_STATUS = {
    "time": S.time_change_error,
    "combined": S.procedure_change_error,
    "procedure": S.procedure_change_error,
    "cancel": S.cancel_error,
    "contact": S.contact_staff,
}


def derive_procedure_for_booking(booking: BookingRecord, procedures: list[Procedure]) -> Procedure:
    """Catalog entry for the booking (by id, then by name); a synthetic one when the catalog lacks it."""
    if booking.procedure_id:
        for procedure in procedures:
            if procedure.id == booking.procedure_id:
                return procedure
    wanted = normalize_name(booking.procedure_name)
    for procedure in procedures:
        if wanted and normalize_name(procedure.name) == wanted:
            return procedure
    return Procedure(
        id=booking.procedure_id or f"booking-{booking.event_id}",
        name=booking.procedure_name,
        duration_minutes=booking.duration_minutes,
        price=booking.price,
    )


def duration_diff(state: BookingManagementState) -> int:
    if state.selected_booking is None or state.selected_procedure is None:
        return 0
    return state.selected_procedure.duration_minutes - state.selected_booking.duration_minutes


def can_cancel(booking: BookingRecord | None) -> bool:
    return booking is not None and booking.can_cancel and booking.can_modify


def validate_form(form: SearchForm) -> str | None:
    if not form.full_name.split():
        return "Please enter your name."
    if len(phone_digits(form.phone)) < SIGNIFICANT_PHONE_DIGITS:
        return f"Phone number must have at least {SIGNIFICANT_PHONE_DIGITS} digits."
    return None


def search_criteria(state: BookingManagementState) -> SearchCriteria:
    return SearchCriteria.from_full_name(state.form.full_name, state.form.phone, state.form.email)


def contact_request(state: BookingManagementState, message: str) -> StaffContactRequest:
    booking = state.selected_booking
    return StaffContactRequest(
        full_name=state.form.full_name.strip() or (booking.full_name if booking else ""),
        phone=state.form.phone.strip() or (booking.phone if booking else ""),
        email=(state.form.email or "").strip() or (booking.email if booking else None),
        message=message,
        event_id=booking.event_id if booking else None,
    )


def available_actions(state: BookingManagementState) -> tuple[str, ...]:
    """Names of the controls a client may use in the current state."""
    if state.pending_mutation is not None:
        return ()
    status = state.status
    booking = state.selected_booking

    if status == S.search:
        return ("submit_search",) if _verified(state) else ()
    if status == S.results:
        return ("select_booking", "back_to_search")
    if status == S.not_found:
        return ("back_to_search", "contact_staff")
    if status == S.edit_selection:
        if booking is not None and not booking.can_modify:
            return ("contact_staff", "back_to_results")
        actions = ["change_procedure", "change_time"]
        if can_cancel(booking):
            actions.append("cancel")
        actions.append("back_to_results")
        return tuple(actions)
    if status == S.edit_procedure:
        if state.selected_procedure is None:
            return ("choose_procedure", "back_to_selection")
        if duration_diff(state) <= 0:
            return ("choose_procedure", "confirm_same_time", "request_new_time", "back_to_selection")
        if state.extension_phase == "idle":
            return ("choose_procedure", "check_availability", "back_to_selection")
        if state.extension_phase == "checking":
            return ()
        result = state.extension_result
        if result is not None and result.status == ExtensionStatus.can_extend:
            return ("choose_procedure", "confirm_same_time", "request_new_time", "back_to_selection")
        if result is not None and result.status == ExtensionStatus.can_shift_back:
            return ("choose_procedure", "accept_suggestion", "request_new_time", "back_to_selection")
        actions = ["choose_procedure"]
        if result is not None and result.alternative_slots:
            actions.append("pick_alternative")
        else:
            actions.append("contact_staff")
        actions.extend(["request_new_time", "back_to_selection"])
        return tuple(actions)
    if status == S.direct_time_change:
        actions = ["select_day"]
        if state.calendar.day is not None:
            actions.append("select_slot")
        if state.time_change_session is not None and state.time_change_session.new_slot is not None:
            actions.append("confirm_slot")
        actions.append("back_to_selection")
        return tuple(actions)
    if status == S.confirm_time_change:
        return ("submit_time_change", "back_to_selection")
    if status == S.confirm_cancel:
        return ("confirm_cancel", "back_to_selection")
    if status == S.contact_staff:
        return ("submit_contact_staff", "back_to_selection")
    if status in (S.time_change_error, S.procedure_change_error, S.cancel_error):
        if state.action_error is not None and state.action_error.next_action.value == "contact_staff":
            return ("contact_staff", "back_to_selection")
        if state.action_error is not None and state.action_error.next_action.value == "search_again":
            return ("back_to_search",)
        return ("back_to_selection", "back_to_search")
    if status in (S.time_change_success, S.procedure_change_success, S.cancel_success, S.contact_staff_success):
        return ("back_to_results", "close") if state.results else ("back_to_search", "close")
    return ()


def reduce(state: BookingManagementState, action: Action) -> BookingManagementState:
    """Pure transition function for the booking management panel."""
    if isinstance(action, OpenPanel):
        return replace(state, is_open=True)

    if isinstance(action, ClosePanel):
        # A closed panel abandons everything in flight; late completions carry an old session_id.
        return BookingManagementState(
            session_id=state.session_id + 1,
            is_open=False,
            requires_verification=state.requires_verification,
        )

    if isinstance(action, (SearchSucceeded, SearchFailed, ExtensionChecked, ExtensionCheckFailed)):
        if action.session_id != state.session_id:
            return state
    if isinstance(action, (MutationSucceeded, MutationFailed)):
        if action.session_id != state.session_id or state.pending_mutation != action.mutation:
            return state

    if isinstance(action, UpdateForm):
        return replace(
            state,
            form=SearchForm(full_name=action.full_name, phone=action.phone, email=action.email),
            form_error=None,
        )

    if isinstance(action, SetVerificationToken):
        return replace(state, verification_token=action.token)

    if isinstance(action, SubmitSearch):
        if state.pending_mutation is not None or not _verified(state):
            return state
        error = validate_form(state.form)
        if error is not None:
            return replace(state, form_error=error)
        return replace(
            state,
            status=S.loading,
            session_id=state.session_id + 1,
            form_error=None,
            results=(),
            selected_booking=None,
            original_procedure=None,
            selected_procedure=None,
            time_change_session=None,
            pending_mutation="search",
            action_error=None,
        )

    if isinstance(action, SearchSucceeded):
        results = tuple(sorted(action.results, key=lambda record: record.start))
        return replace(
            state,
            status=S.results if results else S.not_found,
            results=results,
            pending_mutation=None,
        )

    if isinstance(action, SearchFailed):
        return replace(state, status=S.search, form_error=action.error.message, pending_mutation=None)

    if isinstance(action, BackToSearch):
        if state.pending_mutation is not None:
            return state
        return BookingManagementState(
            status=S.search,
            is_open=state.is_open,
            session_id=state.session_id + 1,
            form=state.form,
            verification_token=state.verification_token,
            requires_verification=state.requires_verification,
        )

    if state.pending_mutation is not None:
        if isinstance(action, MutationSucceeded):
            return _mutation_succeeded(state, action)
        if isinstance(action, MutationFailed):
            return _mutation_failed(state, action)
        if isinstance(action, ExtensionChecked):
            return replace(state, extension_phase="done", extension_result=action.result, pending_mutation=None)
        if isinstance(action, ExtensionCheckFailed):
            return replace(state, extension_phase="idle", action_error=action.error, pending_mutation=None)
        # Everything else waits for the in-flight call.
        return state

    if isinstance(action, SelectBooking):
        if state.status not in (S.results, S.edit_selection) and not _is_terminal(state.status):
            return state
        return _clean_selection(
            replace(
                state,
                status=S.edit_selection,
                selected_booking=action.booking,
                original_procedure=action.procedure,
                selected_procedure=action.procedure,
            )
        )

    if isinstance(action, BackToResults):
        if not state.results:
            return state
        return _clean_selection(
            replace(state, status=S.results, selected_booking=None, original_procedure=None, selected_procedure=None)
        )

    if isinstance(action, BackToSelection):
        if state.selected_booking is None:
            return state
        return _clean_selection(replace(state, status=S.edit_selection, selected_procedure=_original_procedure(state)))

    if isinstance(action, StartProcedureChange):
        if state.status != S.edit_selection or not _modifiable(state):
            return state
        return replace(state, status=S.edit_procedure, extension_phase="idle", extension_result=None)

    if isinstance(action, ChooseProcedure):
        if state.status != S.edit_procedure:
            return state
        return replace(
            state,
            selected_procedure=action.procedure,
            extension_phase="idle",
            extension_result=None,
            selected_alternative_slot=None,
            action_error=None,
        )

    if isinstance(action, CheckAvailability):
        if state.status != S.edit_procedure or duration_diff(state) <= 0 or state.extension_phase != "idle":
            return state
        return replace(state, extension_phase="checking", pending_mutation="extension", action_error=None)

    if isinstance(action, AcceptSuggestion):
        result = state.extension_result
        if state.status != S.edit_procedure or result is None or result.suggested is None:
            return state
        return _to_confirm(state, result.suggested)

    if isinstance(action, PickAlternativeSlot):
        result = state.extension_result
        if state.status != S.edit_procedure or result is None or action.slot not in result.alternative_slots:
            return state
        return replace(_to_confirm(state, action.slot), selected_alternative_slot=action.slot)

    if isinstance(action, ConfirmSameTime):
        if state.status != S.edit_procedure or state.selected_procedure is None:
            return state
        extended = state.extension_result is not None and state.extension_result.status == ExtensionStatus.can_extend
        if duration_diff(state) > 0 and not extended:
            return state
        return replace(state, pending_mutation="procedure", action_error=None)

    if isinstance(action, StartTimeChange):
        if state.status != S.edit_selection or not _modifiable(state):
            return state
        return _to_direct_time_change(state, _original_procedure(state))

    if isinstance(action, RequestNewTime):
        if state.status != S.edit_procedure or state.selected_procedure is None:
            return state
        return _to_direct_time_change(state, state.selected_procedure)

    if isinstance(action, SelectDay):
        if state.status != S.direct_time_change:
            return state
        session = state.time_change_session
        return replace(
            state,
            calendar=replace(state.calendar, day=action.day, slot=None),
            time_change_session=replace(session, new_slot=None) if session else None,
        )

    if isinstance(action, SelectSlot):
        if state.status != S.direct_time_change or state.time_change_session is None:
            return state
        return replace(
            state,
            calendar=replace(state.calendar, day=action.slot.start.date(), slot=action.slot),
            time_change_session=replace(state.time_change_session, new_slot=action.slot),
        )

    if isinstance(action, ConfirmSlot):
        session = state.time_change_session
        if state.status != S.direct_time_change or session is None or session.new_slot is None:
            return state
        return replace(state, status=S.confirm_time_change)

    if isinstance(action, SubmitTimeChange):
        session = state.time_change_session
        if state.status != S.confirm_time_change or session is None or session.new_slot is None:
            return state
        return replace(state, pending_mutation="combined" if session.is_procedure_change else "time", action_error=None)

    if isinstance(action, StartCancel):
        if state.status != S.edit_selection or not can_cancel(state.selected_booking):
            return state
        return replace(state, status=S.confirm_cancel)

    if isinstance(action, ConfirmCancel):
        if state.status != S.confirm_cancel or not can_cancel(state.selected_booking):
            return state
        return replace(state, pending_mutation="cancel", action_error=None)

    if isinstance(action, StartContactStaff):
        if "contact_staff" not in available_actions(state):
            return state
        return replace(state, status=S.contact_staff, calendar=CalendarSelection(), action_error=None)

    if isinstance(action, SubmitContactStaff):
        if state.status != S.contact_staff:
            return state
        return replace(state, pending_mutation="contact", action_error=None)

    return state


def _mutation_succeeded(state: BookingManagementState, action: MutationSucceeded) -> BookingManagementState:
    results = state.results
    selected = state.selected_booking
    if action.mutation == "cancel" and selected is not None:
        results = tuple(r for r in results if r.event_id != selected.event_id)
        selected = None
    elif action.booking is not None:
        results = tuple(action.booking if r.event_id == action.booking.event_id else r for r in results)
        selected = action.booking
    return replace(
        state,
        status=SUCCESS_STATUS[action.mutation],
        results=results,
        selected_booking=selected,
        time_change_session=None,
        extension_phase="idle",
        extension_result=None,
        selected_alternative_slot=None,
        calendar=CalendarSelection(),
        pending_mutation=None,
        action_error=None,
    )


def _mutation_failed(state: BookingManagementState, action: MutationFailed) -> BookingManagementState:
    return replace(
        state,
        status=ERROR_STATUS[action.mutation],
        calendar=CalendarSelection(),
        pending_mutation=None,
        action_error=action.error,
    )


def _clean_selection(state: BookingManagementState) -> BookingManagementState:
    return replace(
        state,
        time_change_session=None,
        extension_phase="idle",
        extension_result=None,
        selected_alternative_slot=None,
        calendar=CalendarSelection(),
        action_error=None,
    )


def _to_confirm(state: BookingManagementState, slot: Slot) -> BookingManagementState:
    session = TimeChangeSession(
        original_booking=state.selected_booking,
        selected_procedure=state.selected_procedure,
        new_slot=slot,
    )
    return replace(state, status=S.confirm_time_change, time_change_session=session)


def _to_direct_time_change(state: BookingManagementState, procedure: Procedure) -> BookingManagementState:
    session = TimeChangeSession(original_booking=state.selected_booking, selected_procedure=procedure)
    return replace(
        state,
        status=S.direct_time_change,
        selected_procedure=procedure,
        time_change_session=session,
        calendar=CalendarSelection(mode="editing", procedure_id=procedure.id),
        action_error=None,
    )


def _original_procedure(state: BookingManagementState) -> Procedure | None:
    if state.original_procedure is not None:
        return state.original_procedure
    if state.selected_booking is None:
        return None
    return derive_procedure_for_booking(state.selected_booking, [])


def _verified(state: BookingManagementState) -> bool:
    return not state.requires_verification or bool(state.verification_token)


def _modifiable(state: BookingManagementState) -> bool:
    return state.selected_booking is not None and state.selected_booking.can_modify


def _is_terminal(status: ManagementStatus) -> bool:
    return status.value.endswith("-success") or status.value.endswith("-error")


class BookingManagementController:
    """
    Drives the reducer against the booking service.

    Calls are synchronous; each one remembers the session it started in and its
    completion is dropped by the reducer if the panel moved on in the meantime.
    """

    def __init__(
        self,
        service,
        procedures: list[Procedure] | None = None,
        requires_verification: bool = True,
    ) -> None:
        self._service = service
        self._procedures = procedures
        self._logger = logging.getLogger(__name__)
        self.state = BookingManagementState(requires_verification=requires_verification)

    def dispatch(self, action: Action) -> BookingManagementState:
        self.state = reduce(self.state, action)
        return self.state

    def procedures(self) -> list[Procedure]:
        if self._procedures is None:
            self._procedures = self._service.list_procedures()
        return self._procedures

    def search(self, remote_ip: str | None = None) -> BookingManagementState:
        self.dispatch(SubmitSearch())
        if self.state.pending_mutation != "search":
            return self.state
        session_id = self.state.session_id
        try:
            results = self._service.search_bookings(
                search_criteria(self.state), self.state.verification_token, remote_ip
            )
        except Exception as exc:
            return self.dispatch(SearchFailed(session_id=session_id, error=self._describe(exc)))
        return self.dispatch(SearchSucceeded(session_id=session_id, results=tuple(results)))

    def select(self, booking: BookingRecord) -> BookingManagementState:
        return self.dispatch(SelectBooking(booking=booking, procedure=derive_procedure_for_booking(booking, self.procedures())))

    def check_availability(self) -> BookingManagementState:
        self.dispatch(CheckAvailability())
        if self.state.pending_mutation != "extension":
            return self.state
        session_id = self.state.session_id
        try:
            result = self._service.check_extension(self.state.selected_booking, self.state.selected_procedure.id)
        except Exception as exc:
            return self.dispatch(ExtensionCheckFailed(session_id=session_id, error=self._describe(exc)))
        return self.dispatch(ExtensionChecked(session_id=session_id, result=result))

    def slots_for_day(self, day: date) -> list[Slot]:
        """Pick a day in the time picker and list the slots the selected booking could move to."""
        state = self.dispatch(SelectDay(day))
        session = state.time_change_session
        if state.status != S.direct_time_change or session is None:
            return []
        procedure_id = session.selected_procedure.id if session.is_procedure_change else None
        return self._service.slots_for_rebooking(state.selected_booking, search_criteria(state), day, procedure_id)

    def confirm_same_time(self) -> BookingManagementState:
        self.dispatch(ConfirmSameTime())
        return self._run("procedure", lambda s: self._service.update_booking_procedure(
            s.selected_booking, s.selected_procedure.id
        ))

    def submit_time_change(self) -> BookingManagementState:
        self.dispatch(SubmitTimeChange())
        session = self.state.time_change_session
        if self.state.pending_mutation == "combined":
            return self._run("combined", lambda s: self._service.update_booking_combined(
                s.selected_booking,
                search_criteria(s),
                procedure_id=session.selected_procedure.id,
                slot=session.new_slot,
                turnstile_token=s.verification_token,
            ))
        return self._run("time", lambda s: self._service.update_booking_time(s.selected_booking, session.new_slot))

    def confirm_cancel(self) -> BookingManagementState:
        self.dispatch(ConfirmCancel())
        return self._run("cancel", lambda s: self._service.cancel_booking(s.selected_booking, search_criteria(s)))

    def submit_contact_staff(self, message: str, remote_ip: str | None = None) -> BookingManagementState:
        self.dispatch(SubmitContactStaff())
        return self._run("contact", lambda s: self._service.contact_staff(contact_request(s, message), remote_ip))

    def _run(self, mutation: str, call) -> BookingManagementState:
        if self.state.pending_mutation != mutation:
            return self.state
        session_id = self.state.session_id
        try:
            outcome = call(self.state)
        except Exception as exc:
            return self.dispatch(MutationFailed(session_id=session_id, mutation=mutation, error=self._describe(exc)))
        booking = outcome if isinstance(outcome, BookingRecord) else None
        return self.dispatch(MutationSucceeded(session_id=session_id, mutation=mutation, booking=booking))

    def _describe(self, exc: Exception) -> ErrorInfo:
        info = describe_error(exc)
        self._logger.warning(
            "Booking management call failed",
            extra={"kind": info.kind.value, "reason": str(exc)},
        )
        return info
