from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from salonbook.domain.entities.slot import Slot


class ExtensionStatus(str, Enum):
    can_extend = "can_extend"
    can_shift_back = "can_shift_back"
    no_availability = "no_availability"


@dataclass(frozen=True)
class ExtensionCheckResult:
    status: ExtensionStatus
    suggested: Slot | None = None
    shift_minutes: int = 0
    reason: str | None = None  # "conflict", "outside_hours", "closed"
    alternative_slots: tuple[Slot, ...] = field(default_factory=tuple)

    @property
    def suggested_start_iso(self) -> str | None:
        return self.suggested.start_iso if self.suggested else None

    @property
    def suggested_end_iso(self) -> str | None:
        return self.suggested.end_iso if self.suggested else None
