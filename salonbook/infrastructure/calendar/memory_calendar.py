from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime
from typing import Any

from salonbook.application.exceptions import BookingNotFoundError
from salonbook.application.ports.calendar import CalendarPort
from salonbook.application.utils.local_time import parse_iso_datetime
from salonbook.domain.entities.slot import BusyInterval


class InMemoryCalendar(CalendarPort):
    """Calendar kept in process memory, storing events in the Google event shape."""

    def __init__(self, events: list[dict[str, Any]] | None = None) -> None:
        self._events: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)
        for event in events or []:
            self.add_raw(event)

    def add_raw(self, event: dict[str, Any]) -> str:
        with self._lock:
            event_id = str(event.get("id") or f"mock_event_{next(self._ids)}")
            self._events[event_id] = {**event, "id": event_id}
            return event_id

    def freebusy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        busy: list[BusyInterval] = []
        for event in self.list_events(start, end):
            event_start, event_end = _bounds(event)
            busy.append(BusyInterval(start=event_start, end=event_end, event_id=event["id"]))
        return busy

    def list_events(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        with self._lock:
            events = [dict(e) for e in self._events.values()]
        found = []
        for event in events:
            event_start, event_end = _bounds(event)
            if event_start < end and event_end > start:
                found.append(event)
        return sorted(found, key=lambda e: _bounds(e)[0])

    def get_event(self, event_id: str) -> dict[str, Any] | None:
        with self._lock:
            event = self._events.get(event_id)
            return dict(event) if event else None

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        properties: dict[str, str] | None = None,
    ) -> str:
        event = _apply({}, {"summary": summary, "description": description or "", "start": start, "end": end, "properties": properties})
        event_id = self.add_raw(event)
        self._logger.info(
            "Mock calendar event created",
            extra={"event_id": event_id, "date": start.isoformat()},
        )
        return event_id

    def update_event(self, event_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            if event_id not in self._events:
                raise BookingNotFoundError()
            self._events[event_id] = _apply(self._events[event_id], patch)
            event = dict(self._events[event_id])
        self._logger.info("Mock calendar event updated", extra={"event_id": event_id})
        return event

    def delete_event(self, event_id: str) -> bool:
        with self._lock:
            if event_id not in self._events:
                return False
            del self._events[event_id]
        self._logger.info("Mock calendar event cancelled", extra={"event_id": event_id})
        return True


def _bounds(event: dict[str, Any]) -> tuple[datetime, datetime]:
    return parse_iso_datetime(event["start"]["dateTime"]), parse_iso_datetime(event["end"]["dateTime"])


def _apply(event: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    updated = dict(event)
    for key in ("summary", "description"):
        if key in patch:
            updated[key] = patch[key]
    for key in ("start", "end"):
        if patch.get(key) is not None:
            updated[key] = {"dateTime": patch[key].isoformat()}
    if patch.get("properties"):
        updated["extendedProperties"] = {"private": {k: str(v) for k, v in patch["properties"].items()}}
    return updated
