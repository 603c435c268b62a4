"""
Mapping between raw calendar events and BookingRecord.

A booking event looks like:

    summary:      "<procedure name>"
    description:  "Imię Nazwisko: Anna Nowak\nTelefon: +48 600 100 200\nEmail: a@b.pl\nCena: 180zł"
    extendedProperties.private: {procedureId, customerName, phone, customerEmail, price}

Older events used "<procedure> • <name>" summaries and English labels; both are accepted.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from salonbook.application.utils.local_time import parse_iso_datetime
from salonbook.domain.entities.booking import BookingRecord

logger = logging.getLogger(__name__)

_LABELS = {
    "imię nazwisko": "name",
    "imie nazwisko": "name",
    "imię": "name",
    "name": "name",
    "telefon": "phone",
    "phone": "phone",
    "email": "email",
    "e-mail": "email",
    "cena": "price",
    "price": "price",
}
_DIGITS = re.compile(r"\d+")


def parse_description(description: str | None) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in (description or "").splitlines():
        label, sep, value = line.partition(":")
        if not sep:
            continue
        key = _LABELS.get(label.strip().lower())
        if key and key not in fields and value.strip():
            fields[key] = value.strip()
    return fields


def parse_price(raw: str | int | None) -> int:
    if isinstance(raw, int):
        return raw
    match = _DIGITS.search(str(raw or ""))
    return int(match.group()) if match else 0


def _event_time(raw: dict[str, Any] | None) -> str | None:
    if not raw:
        return None
    return raw.get("dateTime") or raw.get("date")


def parse_booking_event(event: dict[str, Any]) -> BookingRecord | None:
    """Return a BookingRecord, or None for events that are not client bookings (staff notes)."""
    event_id = event.get("id")
    start = parse_iso_datetime(_event_time(event.get("start")))
    end = parse_iso_datetime(_event_time(event.get("end")))
    if not event_id or not start or not end:
        return None

    fields = parse_description(event.get("description"))
    private = (event.get("extendedProperties") or {}).get("private") or {}

    summary = (event.get("summary") or "").strip()
    procedure_name, _, summary_name = summary.partition(" • ")
    if procedure_name.lower().startswith("booking:"):
        summary_name = procedure_name.split(":", 1)[1]
        procedure_name = ""

    full_name = fields.get("name") or private.get("customerName") or summary_name.strip()
    phone = fields.get("phone") or private.get("phone") or ""
    parts = full_name.split()
    if not parts or not phone.strip():
        return None

    email = fields.get("email") or private.get("customerEmail") or None
    price_raw = fields.get("price") or private.get("price") or private.get("procedurePricePLN")

    return BookingRecord(
        event_id=str(event_id),
        first_name=parts[0],
        last_name=" ".join(parts[1:]),
        phone=phone.strip(),
        email=email,
        procedure_id=private.get("procedureId") or None,
        procedure_name=procedure_name.strip() or private.get("procedureName", ""),
        start=start,
        end=end,
        price=parse_price(price_raw),
    )


def build_description(full_name: str, phone: str, email: str | None, price: int) -> str:
    lines = [f"Imię Nazwisko: {full_name}", f"Telefon: {phone}"]
    if email:
        lines.append(f"Email: {email}")
    lines.append(f"Cena: {price}zł")
    return "\n".join(lines)


def build_properties(
    full_name: str,
    phone: str,
    email: str | None,
    procedure_id: str | None,
    price: int,
) -> dict[str, str]:
    properties = {"customerName": full_name, "phone": phone, "price": str(price)}
    if email:
        properties["customerEmail"] = email
    if procedure_id:
        properties["procedureId"] = procedure_id
    return properties


def parse_booking_events(events: list[dict[str, Any]]) -> list[BookingRecord]:
    bookings: list[BookingRecord] = []
    for event in events:
        try:
            booking = parse_booking_event(event)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Skipping unparsable calendar event", extra={"event_id": event.get("id"), "reason": str(e)})
            continue
        if booking:
            bookings.append(booking)
    return bookings
