from __future__ import annotations

from builders import at, MONDAY, TUESDAY, record
from salonbook.application.use_cases.booking_matcher import SecureBookingMatcher
from salonbook.domain.entities.booking import SearchCriteria

NATALIA = record(
    event_id="nk",
    first_name="Natalia",
    last_name="Kowalska",
    phone="+48 501 222 333",
    email="natalia@example.com",
)


def test_bare_first_name_with_other_phone_does_not_match():
    matcher = SecureBookingMatcher()
    criteria = SearchCriteria.from_full_name("Natalia", "600 999 888")

    assert not matcher.matches(NATALIA, criteria)


def test_bare_first_name_with_matching_phone_still_needs_email():
    matcher = SecureBookingMatcher()

    assert not matcher.matches(NATALIA, SearchCriteria.from_full_name("Natalia", "501222333"))
    assert not matcher.matches(
        NATALIA, SearchCriteria.from_full_name("Natalia", "501222333", "someone@example.com")
    )
    assert matcher.matches(NATALIA, SearchCriteria.from_full_name("Natalia", "501222333", "Natalia@Example.com "))


def test_full_name_and_phone_match_regardless_of_email():
    matcher = SecureBookingMatcher()

    assert matcher.matches(NATALIA, SearchCriteria.from_full_name("natalia  KOWALSKA", "501-222-333"))
    assert matcher.matches(NATALIA, SearchCriteria.from_full_name("Natalia Kowalska", "+48501222333", "x@y.pl"))


def test_full_name_and_email_accept_a_partial_phone():
    matcher = SecureBookingMatcher()
    criteria = SearchCriteria.from_full_name("Natalia Kowalska", "222 333", "natalia@example.com")

    assert matcher.matches(NATALIA, criteria)


def test_email_alone_never_matches():
    matcher = SecureBookingMatcher()
    criteria = SearchCriteria.from_full_name("Natalia Nowak", "600 999 888", "natalia@example.com")

    assert not matcher.matches(NATALIA, criteria)


def test_first_name_must_match():
    matcher = SecureBookingMatcher()
    criteria = SearchCriteria.from_full_name("Natalie Kowalska", "501222333", "natalia@example.com")

    assert not matcher.matches(NATALIA, criteria)


def test_records_without_surname_match_bare_first_name_search():
    matcher = SecureBookingMatcher()
    single = record(first_name="Ola", last_name="", phone="600100200")

    assert matcher.matches(single, SearchCriteria.from_full_name("ola", "+48 600 100 200"))
    assert not matcher.matches(single, SearchCriteria.from_full_name("Ola Nowak", "600100200"))


def test_short_phones_never_match():
    matcher = SecureBookingMatcher()
    short = record(first_name="Ola", last_name="Nowak", phone="12345")

    assert not matcher.matches(short, SearchCriteria.from_full_name("Ola Nowak", "12345"))


def test_filter_keeps_only_own_bookings_sorted():
    matcher = SecureBookingMatcher()
    later = record(event_id="a2", start=at(TUESDAY, 11), end=at(TUESDAY, 12))
    earlier = record(event_id="a1", start=at(MONDAY, 9), end=at(MONDAY, 10))
    stranger = record(event_id="z", first_name="Zofia")

    found = matcher.filter([later, stranger, earlier], SearchCriteria.from_full_name("Anna Nowak", "600100200"))

    assert [r.event_id for r in found] == ["a1", "a2"]


def test_first_name_and_email_without_surnames_still_need_the_phone():
    matcher = SecureBookingMatcher()
    single = record(first_name="Ola", last_name="", phone="600100200", email="ola@example.com")

    assert not matcher.matches(single, SearchCriteria.from_full_name("Ola", "700 999 888", "ola@example.com"))
    assert matcher.matches(single, SearchCriteria.from_full_name("Ola", "600 100 200", "ola@example.com"))


def test_cyrillic_lookalike_letters_match_latin_names():
    matcher = SecureBookingMatcher()
    # "Оla Nоwak" typed with a Cyrillic capital O and a Cyrillic small o.
    criteria = SearchCriteria.from_full_name("Оla Nоwak", "600100200")

    assert matcher.matches(record(first_name="Ola", last_name="Nowak", phone="600100200"), criteria)
