from __future__ import annotations

from dataclasses import replace

from builders import FRIDAY, MONDAY, PROCEDURES, TUESDAY, at, booking_event, busy_event, make_service, record
from salonbook.application.use_cases.booking_management import (
    AcceptSuggestion,
    BackToSearch,
    BackToSelection,
    BookingManagementController,
    CalendarSelection,
    ChooseProcedure,
    ClosePanel,
    ConfirmCancel,
    ConfirmSameTime,
    ConfirmSlot,
    MutationFailed,
    MutationSucceeded,
    OpenPanel,
    RequestNewTime,
    SearchSucceeded,
    SelectBooking,
    SelectDay,
    SelectSlot,
    SetVerificationToken,
    StartCancel,
    StartContactStaff,
    StartProcedureChange,
    StartTimeChange,
    SubmitSearch,
    SubmitTimeChange,
    UpdateForm,
    available_actions,
    derive_procedure_for_booking,
    reduce,
)
from salonbook.domain.entities.errors import ErrorInfo, ErrorKind, NextAction
from salonbook.domain.entities.management_state import BookingManagementState, ManagementStatus as S
from salonbook.domain.entities.slot import Slot
from salonbook.infrastructure.calendar.memory_calendar import InMemoryCalendar

BROWS, HENNA, MANICURE, PEDICURE = PROCEDURES
CONFLICT = ErrorInfo(kind=ErrorKind.conflict, message="taken", next_action=NextAction.pick_new_time)


def verified() -> BookingManagementState:
    return BookingManagementState(verification_token="token")


def run(state: BookingManagementState, *actions) -> BookingManagementState:
    for action in actions:
        state = reduce(state, action)
    return state


def searched(*records) -> BookingManagementState:
    state = run(
        verified(),
        OpenPanel(),
        UpdateForm(full_name="Anna Nowak", phone="600 100 200"),
        SubmitSearch(),
    )
    return reduce(state, SearchSucceeded(session_id=state.session_id, results=tuple(records)))


def selected(booking=None, procedure=BROWS) -> BookingManagementState:
    booking = booking or record()
    return reduce(searched(booking), SelectBooking(booking=booking, procedure=procedure))


def test_search_validation_stays_on_form():
    state = run(verified(), OpenPanel(), UpdateForm(full_name="Anna", phone="123"), SubmitSearch())

    assert state.status == S.search
    assert state.form_error
    assert state.pending_mutation is None


def test_empty_results_route_to_not_found():
    state = searched()
    assert state.status == S.not_found
    assert state.results == ()


def test_results_are_listed():
    state = searched(record())
    assert state.status == S.results
    assert available_actions(state) == ("select_booking", "back_to_search")


def test_late_search_response_after_close_is_ignored():
    state = run(
        verified(),
        OpenPanel(),
        UpdateForm(full_name="Anna Nowak", phone="600100200"),
        SubmitSearch(),
    )
    stale_session = state.session_id
    state = run(state, ClosePanel(), OpenPanel())

    state = reduce(state, SearchSucceeded(session_id=stale_session, results=(record(),)))

    assert state.status == S.search
    assert state.results == ()


def test_new_search_discards_old_completions():
    first = run(
        verified(),
        OpenPanel(),
        UpdateForm(full_name="Anna Nowak", phone="600100200"),
        SubmitSearch(),
    )
    old_session = first.session_id
    state = reduce(first, SearchSucceeded(session_id=old_session, results=(record(),)))
    state = run(state, BackToSearch(), SubmitSearch())

    assert reduce(state, SearchSucceeded(session_id=old_session, results=())).status == S.loading


def test_same_or_shorter_procedure_confirms_without_confirmation_screen():
    booking = record(procedure_name="Manicure klasyczny", procedure_id="manicure", end=at(MONDAY, 11))
    state = run(selected(booking, MANICURE), StartProcedureChange(), ChooseProcedure(BROWS))

    assert "confirm_same_time" in available_actions(state)
    assert "request_new_time" in available_actions(state)
    assert "check_availability" not in available_actions(state)

    state = reduce(state, ConfirmSameTime())
    assert state.status == S.edit_procedure
    assert state.pending_mutation == "procedure"

    updated = replace(booking, procedure_name=BROWS.name, end=at(MONDAY, 10, 30))
    state = reduce(state, MutationSucceeded(session_id=state.session_id, mutation="procedure", booking=updated))

    assert state.status == S.procedure_change_success
    assert state.results == (updated,)
    assert state.time_change_session is None


def test_longer_procedure_requires_availability_check():
    state = run(selected(), StartProcedureChange(), ChooseProcedure(PEDICURE))

    assert "check_availability" in available_actions(state)
    assert "confirm_same_time" not in available_actions(state)
    assert reduce(state, ConfirmSameTime()) == state


def test_direct_time_change_without_procedure_change_is_a_time_update():
    slot = Slot(at(TUESDAY, 12), at(TUESDAY, 12, 30))
    state = run(
        selected(),
        StartTimeChange(),
        SelectDay(TUESDAY),
        SelectSlot(slot),
        ConfirmSlot(),
    )
    assert state.status == S.confirm_time_change
    assert state.calendar.mode == "editing"
    assert not state.time_change_session.is_procedure_change

    state = reduce(state, SubmitTimeChange())
    assert state.pending_mutation == "time"


def test_new_time_after_procedure_swap_is_a_combined_update():
    state = run(
        selected(),
        StartProcedureChange(),
        ChooseProcedure(PEDICURE),
        RequestNewTime(),
        SelectSlot(Slot(at(TUESDAY, 12), at(TUESDAY, 13, 30))),
        ConfirmSlot(),
        SubmitTimeChange(),
    )

    assert state.time_change_session.is_procedure_change
    assert state.pending_mutation == "combined"


def test_in_flight_mutation_blocks_other_actions():
    state = run(selected(), StartTimeChange(), SelectSlot(Slot(at(TUESDAY, 12), at(TUESDAY, 12, 30))), ConfirmSlot())
    state = reduce(state, SubmitTimeChange())

    assert available_actions(state) == ()
    assert reduce(state, SubmitTimeChange()) == state
    assert reduce(state, BackToSelection()) == state


def test_error_keeps_results_and_booking_but_clears_calendar():
    booking = record()
    state = run(
        selected(booking),
        StartTimeChange(),
        SelectSlot(Slot(at(TUESDAY, 12), at(TUESDAY, 12, 30))),
        ConfirmSlot(),
        SubmitTimeChange(),
    )
    state = reduce(state, MutationFailed(session_id=state.session_id, mutation="time", error=CONFLICT))

    assert state.status == S.time_change_error
    assert state.results == (booking,)
    assert state.selected_booking == booking
    assert state.calendar == CalendarSelection()
    assert state.action_error == CONFLICT

    state = reduce(state, BackToSelection())
    assert state.status == S.edit_selection
    assert state.action_error is None


def test_cancel_is_unreachable_inside_cutoff():
    booking = record(can_modify=False)
    state = selected(booking)

    assert "cancel" not in available_actions(state)
    assert available_actions(state) == ("contact_staff", "back_to_results")
    assert reduce(state, StartCancel()).status == S.edit_selection
    assert reduce(state, StartProcedureChange()).status == S.edit_selection


def test_cancel_flow_removes_booking_from_results():
    booking = record()
    state = run(selected(booking), StartCancel(), ConfirmCancel())
    assert state.pending_mutation == "cancel"

    state = reduce(state, MutationSucceeded(session_id=state.session_id, mutation="cancel"))

    assert state.status == S.cancel_success
    assert state.results == ()
    assert available_actions(state) == ("back_to_search", "close")


def test_derive_procedure_prefers_catalog():
    assert derive_procedure_for_booking(record(procedure_id="manicure"), PROCEDURES) == MANICURE
    assert derive_procedure_for_booking(record(procedure_id=None, procedure_name="pedicure"), PROCEDURES) == PEDICURE

    synthetic = derive_procedure_for_booking(record(procedure_id=None, procedure_name="Old thing"), PROCEDURES)
    assert synthetic.name == "Old thing"
    assert synthetic.duration_minutes == 30


def test_controller_runs_a_time_change_end_to_end():
    calendar = InMemoryCalendar()
    calendar.add_raw(booking_event("b1", at(MONDAY, 10), at(MONDAY, 10, 30)))
    controller = BookingManagementController(make_service(calendar=calendar))

    controller.dispatch(OpenPanel())
    controller.dispatch(UpdateForm(full_name="Anna Nowak", phone="+48 600 100 200"))
    controller.state = replace(controller.state, verification_token="token")
    state = controller.search()
    assert state.status == S.results

    state = controller.select(state.results[0])
    assert state.selected_procedure == BROWS

    controller.dispatch(StartTimeChange())
    controller.dispatch(SelectSlot(Slot(at(TUESDAY, 15), at(TUESDAY, 15, 30))))
    controller.dispatch(ConfirmSlot())
    state = controller.submit_time_change()

    assert state.status == S.time_change_success
    assert state.selected_booking.start == at(TUESDAY, 15)
    assert state.results[0].start == at(TUESDAY, 15)


def test_controller_maps_conflict_to_error_state():
    calendar = InMemoryCalendar()
    calendar.add_raw(booking_event("b1", at(MONDAY, 10), at(MONDAY, 10, 30)))
    calendar.add_raw(busy_event("b2", at(MONDAY, 10, 30), at(MONDAY, 11)))
    controller = BookingManagementController(make_service(calendar=calendar), procedures=PROCEDURES)

    controller.dispatch(OpenPanel())
    controller.dispatch(UpdateForm(full_name="Anna Nowak", phone="600100200"))
    controller.state = replace(controller.state, verification_token="token")
    controller.select(controller.search().results[0])
    controller.dispatch(StartProcedureChange())
    controller.dispatch(ChooseProcedure(HENNA))

    state = controller.check_availability()
    assert state.extension_phase == "done"
    assert "accept_suggestion" in available_actions(state)

    # Somebody takes the suggested slot before the client confirms.
    calendar.add_raw(busy_event("b3", at(MONDAY, 9, 30), at(MONDAY, 10)))
    controller.dispatch(AcceptSuggestion())
    state = controller.submit_time_change()

    assert state.status == S.procedure_change_error
    assert state.action_error.kind == ErrorKind.conflict
    assert state.selected_booking.event_id == "b1"


def test_controller_contact_staff_for_late_booking():
    calendar = InMemoryCalendar()
    calendar.add_raw(booking_event("soon", at(FRIDAY, 15), at(FRIDAY, 15, 30)))
    service = make_service(calendar=calendar)
    controller = BookingManagementController(service, procedures=PROCEDURES)

    controller.dispatch(OpenPanel())
    controller.dispatch(UpdateForm(full_name="Anna Nowak", phone="600100200"))
    controller.state = replace(controller.state, verification_token="token")
    state = controller.select(controller.search().results[0])
    assert "contact_staff" in available_actions(state)

    controller.dispatch(StartContactStaff())
    state = controller.submit_contact_staff("Please move my visit to next week.")

    assert state.status == S.contact_staff_success


def test_search_waits_for_verification_token():
    state = run(BookingManagementState(), OpenPanel(), UpdateForm(full_name="Anna Nowak", phone="600100200"))

    assert available_actions(state) == ()
    assert reduce(state, SubmitSearch()) == state

    state = reduce(state, SetVerificationToken("token"))
    assert available_actions(state) == ("submit_search",)
    assert reduce(state, SubmitSearch()).status == S.loading


def test_search_without_verification_needs_no_token():
    state = run(
        BookingManagementState(requires_verification=False),
        OpenPanel(),
        UpdateForm(full_name="Anna Nowak", phone="600100200"),
        ClosePanel(),
        OpenPanel(),
    )

    assert not state.requires_verification
    assert available_actions(state) == ("submit_search",)


def test_contact_staff_only_where_offered():
    start = run(verified(), OpenPanel())
    assert reduce(start, StartContactStaff()) == start

    modifiable = selected()
    assert reduce(modifiable, StartContactStaff()) == modifiable

    assert reduce(searched(), StartContactStaff()).status == S.contact_staff
    assert reduce(selected(record(can_modify=False)), StartContactStaff()).status == S.contact_staff


def test_controller_does_not_search_before_verification():
    calls = []

    class CountingService:
        def search_bookings(self, *args):
            calls.append(args)
            return []

    controller = BookingManagementController(CountingService(), procedures=PROCEDURES)
    controller.dispatch(OpenPanel())
    controller.dispatch(UpdateForm(full_name="Anna Nowak", phone="600100200"))

    state = controller.search()

    assert state.status == S.search
    assert calls == []


def test_controller_day_picker_offers_times_overlapping_own_booking():
    calendar = InMemoryCalendar()
    calendar.add_raw(
        booking_event("b1", at(MONDAY, 10), at(MONDAY, 11), procedure="Manicure klasyczny", procedure_id="manicure")
    )
    controller = BookingManagementController(make_service(calendar=calendar), procedures=PROCEDURES)
    controller.dispatch(OpenPanel())
    controller.dispatch(UpdateForm(full_name="Anna Nowak", phone="600100200"))
    controller.dispatch(SetVerificationToken("token"))
    controller.select(controller.search().results[0])
    controller.dispatch(StartTimeChange())

    slots = controller.slots_for_day(MONDAY)

    assert controller.state.calendar.day == MONDAY
    assert Slot(at(MONDAY, 10, 30), at(MONDAY, 11, 30)) in slots
    assert all(s.duration_minutes == 60 for s in slots)
