from __future__ import annotations

import logging

import httpx

from salonbook.application.exceptions import CalendarUnavailableError
from salonbook.application.ports.staff_contact import StaffContactPort
from salonbook.application.utils.normalization import mask_email, mask_phone
from salonbook.core.config import settings
from salonbook.domain.entities.booking import StaffContactRequest


class WebhookStaffContact(StaffContactPort):
    def __init__(
        self,
        webhook_url: str | None = None,
        secret: str | None = None,
        secret_header: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._webhook_url = webhook_url or settings.STAFF_CONTACT_WEBHOOK_URL
        self._secret = secret or settings.STAFF_CONTACT_SECRET
        self._secret_header = secret_header or settings.STAFF_CONTACT_SECRET_HEADER
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

        if not self._webhook_url:
            raise ValueError("STAFF_CONTACT_WEBHOOK_URL is required for the staff contact webhook")

    def send(self, request: StaffContactRequest, request_id: str) -> None:
        headers = {"Content-Type": "application/json"}
        if self._secret:
            headers[self._secret_header] = self._secret
        payload = {
            "requestId": request_id,
            "fullName": request.full_name,
            "phone": request.phone,
            "email": request.email or "",
            "message": request.message,
            "eventId": request.event_id or "",
        }
        try:
            response = self._client.post(self._webhook_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self._logger.error("Staff contact webhook failed", extra={"reason": str(e), "event_id": request.event_id})
            raise CalendarUnavailableError("We could not deliver your message. Please try again.") from e
        self._logger.info("Staff contact delivered", extra={"event_id": request.event_id})


class LogStaffContact(StaffContactPort):
    """Dev adapter: records requests and logs them instead of calling out."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, StaffContactRequest]] = []
        self._logger = logging.getLogger(__name__)

    def send(self, request: StaffContactRequest, request_id: str) -> None:
        self.sent.append((request_id, request))
        self._logger.info(
            "Staff contact request (not delivered)",
            extra={
                "event_id": request.event_id,
                "reason": f"{request_id} {mask_phone(request.phone)} {mask_email(request.email)}",
            },
        )
