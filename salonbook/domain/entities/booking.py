from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BookingRecord:
    event_id: str
    first_name: str
    last_name: str
    phone: str
    procedure_name: str
    start: datetime
    end: datetime
    price: int = 0
    email: str | None = None
    procedure_id: str | None = None
    can_modify: bool = False
    can_cancel: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class SearchCriteria:
    first_name: str
    last_name: str
    phone: str
    email: str | None = None

    @staticmethod
    def from_full_name(full_name: str, phone: str, email: str | None = None) -> "SearchCriteria":
        parts = (full_name or "").split()
        return SearchCriteria(
            first_name=parts[0] if parts else "",
            last_name=" ".join(parts[1:]),
            phone=phone or "",
            email=(email or "").strip() or None,
        )


@dataclass(frozen=True)
class NewBookingRequest:
    slot_start: datetime
    slot_end: datetime
    full_name: str
    phone: str
    procedure_id: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class StaffContactRequest:
    full_name: str
    phone: str
    message: str
    email: str | None = None
    event_id: str | None = None
