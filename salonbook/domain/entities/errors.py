from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    conflict = "CONFLICT"
    duplicate = "DUPLICATE"
    rate_limited = "RATE_LIMITED"
    verification_failed = "VERIFICATION_FAILED"
    not_found = "NOT_FOUND"
    too_late_to_modify = "TOO_LATE_TO_MODIFY"
    network = "NETWORK"
    unknown = "UNKNOWN"


class NextAction(str, Enum):
    retry = "retry"
    pick_new_time = "pick_new_time"
    wait = "wait"
    reverify = "reverify"
    search_again = "search_again"
    contact_staff = "contact_staff"


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    message: str
    next_action: NextAction

    @property
    def recoverable(self) -> bool:
        return self.kind not in (ErrorKind.not_found, ErrorKind.too_late_to_modify)
