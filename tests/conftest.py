from __future__ import annotations

import pytest

from builders import make_reference, make_service
from salonbook.infrastructure.calendar.memory_calendar import InMemoryCalendar
from salonbook.infrastructure.contact.webhook_contact import LogStaffContact


@pytest.fixture
def calendar() -> InMemoryCalendar:
    return InMemoryCalendar()


@pytest.fixture
def reference():
    return make_reference()


@pytest.fixture
def staff_contact() -> LogStaffContact:
    return LogStaffContact()


@pytest.fixture
def service(calendar, reference, staff_contact):
    return make_service(calendar=calendar, reference=reference, staff_contact=staff_contact)
