from __future__ import annotations

import logging

from salonbook.application.utils.normalization import (
    normalize_email,
    normalize_name,
    phones_match,
)
from salonbook.domain.entities.booking import BookingRecord, SearchCriteria


class SecureBookingMatcher:
    """
    Whitelist filter over a bulk event export.

    A record passes only when it demonstrably belongs to the searcher; a missed booking
    is acceptable, showing somebody else's is not.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def matches(self, record: BookingRecord, criteria: SearchCriteria) -> bool:
        search_first = normalize_name(criteria.first_name)
        search_last = normalize_name(criteria.last_name)
        search_email = normalize_email(criteria.email)

        record_first = normalize_name(record.first_name)
        record_last = normalize_name(record.last_name)
        record_email = normalize_email(record.email)

        if not search_first or search_first != record_first:
            return False

        # A bare first name must never surface a record that has a surname on file.
        if search_last and record_last:
            structure_match = search_last == record_last
        else:
            structure_match = not search_last and not record_last

        phone_match = phones_match(criteria.phone, record.phone)

        if structure_match and phone_match:
            return True

        # Email is only ever a second signal, never enough on its own. With a wrong
        # phone it also needs a surname on both sides.
        email_match = bool(search_email) and search_email == record_email
        if email_match and (phone_match or (structure_match and bool(search_last))):
            return True

        return False

    def filter(self, records: list[BookingRecord], criteria: SearchCriteria) -> list[BookingRecord]:
        matched = [record for record in records if self.matches(record, criteria)]
        self._logger.info(
            "Booking search filtered",
            extra={"status": f"{len(matched)}/{len(records)}"},
        )
        return sorted(matched, key=lambda record: record.start)
