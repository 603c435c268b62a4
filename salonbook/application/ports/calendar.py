from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from salonbook.domain.entities.slot import BusyInterval


class CalendarPort(ABC):
    @abstractmethod
    def freebusy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        """Busy intervals of the shared calendar overlapping [start, end)."""
        raise NotImplementedError

    @abstractmethod
    def list_events(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Raw events starting in [start, end), ordered by start time."""
        raise NotImplementedError

    @abstractmethod
    def get_event(self, event_id: str) -> dict[str, Any] | None:
        """Raw event by id, or None if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        properties: dict[str, str] | None = None,
    ) -> str:
        """Create calendar event. Returns event_id."""
        raise NotImplementedError

    @abstractmethod
    def update_event(self, event_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        """Patch an event. Keys: summary, description, start, end, properties."""
        raise NotImplementedError

    @abstractmethod
    def delete_event(self, event_id: str) -> bool:
        """Delete calendar event. Returns False if it was already gone."""
        raise NotImplementedError
