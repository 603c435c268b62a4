from __future__ import annotations

from salonbook.domain.entities.errors import ErrorInfo, ErrorKind, NextAction


class BookingError(RuntimeError):
    """Base for every failure the booking flows surface to a client."""

    kind: ErrorKind = ErrorKind.unknown
    next_action: NextAction = NextAction.retry
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(kind=self.kind, message=self.message, next_action=self.next_action)


class SlotConflictError(BookingError):
    """Raised when the chosen time was taken before the write landed."""

    kind = ErrorKind.conflict
    next_action = NextAction.pick_new_time
    default_message = "This time is no longer available. Please pick another slot."


class DuplicateBookingError(BookingError):
    """Raised when an identical booking attempt is still inside its cooldown."""

    kind = ErrorKind.duplicate
    next_action = NextAction.wait
    default_message = "This booking is already being processed. Please wait a moment."


class RateLimitedError(BookingError):
    """Raised when a caller exceeded the allowed number of attempts."""

    kind = ErrorKind.rate_limited
    next_action = NextAction.wait
    default_message = "Too many attempts. Please wait a few minutes and try again."


class VerificationFailedError(BookingError):
    """Raised when the bot-challenge token is missing or rejected."""

    kind = ErrorKind.verification_failed
    next_action = NextAction.reverify
    default_message = "Verification failed. Please confirm you are not a robot and try again."


class BookingNotFoundError(BookingError):
    """Raised when a booking (or procedure) referenced by the client no longer exists."""

    kind = ErrorKind.not_found
    next_action = NextAction.search_again
    default_message = "We could not find this booking. Please search again."


class TooLateToModifyError(BookingError):
    """Raised when the booking starts inside the modification cutoff."""

    kind = ErrorKind.too_late_to_modify
    next_action = NextAction.contact_staff
    default_message = "Bookings less than 24 hours away can only be changed by contacting us."


class CalendarUnavailableError(BookingError):
    """Raised when the calendar or reference-data service cannot be reached."""

    kind = ErrorKind.network
    next_action = NextAction.retry
    default_message = "We could not reach the calendar. Please try again."


class UnexpectedBookingError(BookingError):
    """Raised for failures that fit no other kind."""

    kind = ErrorKind.unknown
    next_action = NextAction.retry


def describe_error(error: BaseException) -> ErrorInfo:
    if isinstance(error, BookingError):
        return error.to_info()
    if isinstance(error, ValueError):
        # Rejected input: the message is already meant for the client.
        return ErrorInfo(kind=ErrorKind.unknown, message=str(error), next_action=NextAction.retry)
    return UnexpectedBookingError().to_info()
