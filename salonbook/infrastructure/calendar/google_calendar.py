from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from salonbook.application.exceptions import (
    BookingNotFoundError,
    CalendarUnavailableError,
    SlotConflictError,
    UnexpectedBookingError,
)
from salonbook.application.ports.calendar import CalendarPort
from salonbook.application.utils.local_time import parse_iso_datetime
from salonbook.core.config import settings
from salonbook.domain.entities.slot import BusyInterval
from salonbook.infrastructure.google.auth import GoogleTokenProvider

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


class GoogleCalendar(CalendarPort):
    """Google Calendar v3 over REST. Busy time is derived from the event list so each interval keeps its event id."""

    def __init__(
        self,
        tokens: GoogleTokenProvider,
        calendar_id: str | None = None,
        timezone: str | None = None,
        client: httpx.Client | None = None,
        base_url: str = GOOGLE_CALENDAR_API,
    ) -> None:
        self._tokens = tokens
        self._calendar_id = calendar_id or settings.GOOGLE_CALENDAR_ID
        self._timezone = timezone or settings.BUSINESS_TIMEZONE
        self._client = client or httpx.Client(timeout=settings.GOOGLE_API_TIMEOUT_SECONDS)
        self._base_url = base_url
        self._logger = logging.getLogger(__name__)

        if not self._calendar_id:
            raise ValueError("GOOGLE_CALENDAR_ID is required for Google Calendar")

    def freebusy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        tz = ZoneInfo(self._timezone)
        busy: list[BusyInterval] = []
        for event in self.list_events(start, end):
            if event.get("transparency") == "transparent":
                continue
            event_start = _event_datetime(event.get("start"), tz)
            event_end = _event_datetime(event.get("end"), tz)
            if event_start is None or event_end is None:
                continue
            busy.append(BusyInterval(start=event_start, end=event_end, event_id=event.get("id")))
        return busy

    def list_events(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 2500,
        }
        events: list[dict[str, Any]] = []
        while True:
            response = self._request("GET", self._events_url(), params=params)
            data = response.json()
            events.extend(e for e in data.get("items", []) if e.get("status") != "cancelled")
            page_token = data.get("nextPageToken")
            if not page_token:
                return events
            params["pageToken"] = page_token

    def get_event(self, event_id: str) -> dict[str, Any] | None:
        response = self._request("GET", self._events_url(event_id), missing_ok=True)
        if response is None:
            return None
        event = response.json()
        if event.get("status") == "cancelled":
            return None
        return event

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        properties: dict[str, str] | None = None,
    ) -> str:
        body = self._event_body(
            {"summary": summary, "description": description or "", "start": start, "end": end, "properties": properties}
        )
        response = self._request("POST", self._events_url(), json=body)
        event_id = response.json().get("id")
        if not event_id:
            raise UnexpectedBookingError("The calendar did not return an event id.")
        self._logger.info("Calendar event created", extra={"event_id": event_id})
        return str(event_id)

    def update_event(self, event_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        response = self._request("PATCH", self._events_url(event_id), json=self._event_body(patch), missing_ok=True)
        if response is None:
            raise BookingNotFoundError()
        self._logger.info("Calendar event updated", extra={"event_id": event_id})
        return response.json()

    def delete_event(self, event_id: str) -> bool:
        response = self._request("DELETE", self._events_url(event_id), missing_ok=True)
        if response is None:
            return False
        self._logger.info("Calendar event deleted", extra={"event_id": event_id})
        return True

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{self._base_url}/calendars/{quote(self._calendar_id, safe='')}/events"
        if event_id:
            url = f"{url}/{quote(event_id, safe='')}"
        return url

    def _event_body(self, patch: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if "summary" in patch:
            body["summary"] = patch["summary"]
        if "description" in patch:
            body["description"] = patch["description"]
        for key in ("start", "end"):
            if patch.get(key) is not None:
                body[key] = {"dateTime": patch[key].isoformat(), "timeZone": self._timezone}
        if patch.get("properties"):
            body["extendedProperties"] = {"private": {k: str(v) for k, v in patch["properties"].items()}}
        return body

    def _request(self, method: str, url: str, missing_ok: bool = False, **kwargs: Any) -> httpx.Response | None:
        for attempt in range(2):
            try:
                response = self._client.request(method, url, headers=self._tokens.headers(), **kwargs)
            except httpx.HTTPError as e:
                self._logger.error("Calendar request failed", extra={"reason": str(e)})
                raise CalendarUnavailableError() from e

            if response.status_code == 401 and attempt == 0:
                self._tokens.invalidate()
                continue
            break

        status = response.status_code
        if missing_ok and status in (404, 410):
            return None
        if status in (409, 412):
            raise SlotConflictError()
        if status >= 500 or status == 429:
            self._logger.error("Calendar service unavailable", extra={"status": status})
            raise CalendarUnavailableError()
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._logger.error("Calendar request rejected", extra={"status": status, "reason": response.text[:200]})
            raise UnexpectedBookingError() from e
        return response


def _event_datetime(raw: dict[str, Any] | None, tz: ZoneInfo) -> datetime | None:
    if not raw:
        return None
    if raw.get("dateTime"):
        return parse_iso_datetime(raw["dateTime"])
    if raw.get("date"):
        # All-day events block the whole local day.
        return datetime.combine(date.fromisoformat(raw["date"]), time.min, tzinfo=tz)
    return None
