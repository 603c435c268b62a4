from __future__ import annotations

from builders import MONDAY, at, booking_event, busy_event
from salonbook.application.utils.event_format import (
    build_description,
    parse_booking_event,
    parse_booking_events,
    parse_description,
)


def test_polish_description_is_parsed():
    event = booking_event("e1", at(MONDAY, 10), at(MONDAY, 11), email="anna@example.com", price=120)
    parsed = parse_booking_event(event)

    assert parsed.first_name == "Anna"
    assert parsed.last_name == "Nowak"
    assert parsed.phone == "+48 600 100 200"
    assert parsed.email == "anna@example.com"
    assert parsed.price == 120
    assert parsed.procedure_name == "Regulacja brwi"
    assert parsed.procedure_id == "brows"
    assert parsed.duration_minutes == 60


def test_english_labels_and_legacy_summary():
    event = {
        "id": "e2",
        "summary": "Pedicure • Maria Wiśniewska",
        "description": "Phone: 501 222 333\nPrice: 160 PLN",
        "start": {"dateTime": "2030-03-04T09:00:00Z"},
        "end": {"dateTime": "2030-03-04T10:30:00Z"},
    }
    parsed = parse_booking_event(event)

    assert parsed.procedure_name == "Pedicure"
    assert parsed.first_name == "Maria"
    assert parsed.last_name == "Wiśniewska"
    assert parsed.price == 160


def test_extended_properties_fill_missing_description():
    event = {
        "id": "e3",
        "summary": "Manicure klasyczny",
        "start": {"dateTime": "2030-03-04T09:00:00+01:00"},
        "end": {"dateTime": "2030-03-04T10:00:00+01:00"},
        "extendedProperties": {
            "private": {"customerName": "Ola", "phone": "600100200", "procedurePricePLN": "100", "procedureId": "m"}
        },
    }
    parsed = parse_booking_event(event)

    assert parsed.first_name == "Ola"
    assert parsed.last_name == ""
    assert parsed.price == 100
    assert parsed.procedure_id == "m"


def test_staff_notes_are_not_bookings():
    assert parse_booking_event(busy_event("n", at(MONDAY, 12), at(MONDAY, 13))) is None
    assert parse_booking_event({"id": "x", "summary": "No times"}) is None


def test_bulk_parse_skips_broken_events():
    events = [
        booking_event("ok", at(MONDAY, 10), at(MONDAY, 11)),
        {"id": "broken", "start": {"dateTime": "not a date"}, "end": {"dateTime": "2030-03-04T10:00:00Z"}},
        busy_event("note", at(MONDAY, 12), at(MONDAY, 13)),
    ]

    assert [b.event_id for b in parse_booking_events(events)] == ["ok"]


def test_description_round_trips_labels():
    text = build_description("Anna Nowak", "600100200", None, 50)

    assert text == "Imię Nazwisko: Anna Nowak\nTelefon: 600100200\nCena: 50zł"
    assert parse_description(text) == {"name": "Anna Nowak", "phone": "600100200", "price": "50zł"}
