from __future__ import annotations

from unittest.mock import patch

import pytest

from salonbook.core.config import settings
from salonbook.infrastructure.calendar.cached_calendar import CachedCalendar
from salonbook.infrastructure.calendar.google_calendar import GoogleCalendar
from salonbook.infrastructure.calendar.memory_calendar import InMemoryCalendar
from salonbook.infrastructure.contact.webhook_contact import LogStaffContact
from salonbook.infrastructure.knowledge.static_reference import StaticReferenceData
from salonbook.infrastructure.sheets.sheets_reference import SheetsReferenceData
from salonbook.wiring import dependencies

CACHED = (
    dependencies.get_token_provider,
    dependencies.get_live_calendar,
    dependencies.get_calendar,
    dependencies.get_reference_data,
    dependencies.get_verifier,
    dependencies.get_request_guard,
    dependencies.get_staff_contact,
    dependencies.get_booking_service,
)

GOOGLE = {
    "GOOGLE_CLIENT_ID": "client",
    "GOOGLE_CLIENT_SECRET": "secret",
    "GOOGLE_REFRESH_TOKEN": "refresh",
    "GOOGLE_CALENDAR_ID": "salon@group.calendar.google.com",
    "GOOGLE_SHEET_ID": "sheet",
}


@pytest.fixture(autouse=True)
def fresh_wiring():
    for factory in CACHED:
        factory.cache_clear()
    yield
    for factory in CACHED:
        factory.cache_clear()


def test_dev_uses_local_adapters():
    with patch.object(settings, "ENV", "dev"):
        calendar = dependencies.get_calendar()
        reference = dependencies.get_reference_data()
        contact = dependencies.get_staff_contact()

    assert isinstance(calendar, CachedCalendar)
    assert isinstance(calendar._inner, InMemoryCalendar)
    assert isinstance(reference, StaticReferenceData)
    assert isinstance(contact, LogStaffContact)


def test_production_with_credentials_uses_google():
    with patch.multiple(settings, ENV="production", **GOOGLE):
        calendar = dependencies.get_calendar()
        reference = dependencies.get_reference_data()

    assert isinstance(calendar._inner, GoogleCalendar)
    assert isinstance(reference, SheetsReferenceData)


def test_missing_credentials_fall_back_to_memory():
    with patch.multiple(settings, ENV="production", GOOGLE_CLIENT_ID=None):
        assert isinstance(dependencies.get_calendar()._inner, InMemoryCalendar)


def test_production_requires_staff_webhook():
    with patch.multiple(settings, ENV="production", STAFF_CONTACT_WEBHOOK_URL=None):
        with pytest.raises(ValueError):
            dependencies.get_staff_contact()


def test_policy_follows_settings():
    with patch.multiple(settings, MODIFICATION_CUTOFF_HOURS=48, BOOKING_COOLDOWN_SECONDS=60):
        policy = dependencies.get_booking_policy()

    assert policy.modification_cutoff_hours == 48
    assert policy.booking_cooldown_seconds == 60


def test_service_is_built_once():
    with patch.object(settings, "ENV", "dev"):
        assert dependencies.get_booking_service() is dependencies.get_booking_service()


def test_service_checks_conflicts_against_uncached_calendar():
    with patch.object(settings, "ENV", "dev"):
        service = dependencies.get_booking_service()

    assert service._calendar._inner is dependencies.get_live_calendar()
    assert service._live_calendar is dependencies.get_live_calendar()
