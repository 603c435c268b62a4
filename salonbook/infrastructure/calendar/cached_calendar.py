from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from salonbook.application.ports.calendar import CalendarPort
from salonbook.domain.entities.slot import BusyInterval
from salonbook.infrastructure.store.ttl_cache import TTLCache


class CachedCalendar(CalendarPort):
    """Caches busy-time reads per range; any write clears the cache."""

    def __init__(self, inner: CalendarPort, ttl_seconds: float = 30) -> None:
        self._inner = inner
        self._busy = TTLCache(ttl_seconds)
        self._logger = logging.getLogger(__name__)

    def freebusy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        key = (start.isoformat(), end.isoformat())
        return list(self._busy.get_or_load(key, lambda: self._inner.freebusy(start, end)))

    def list_events(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        return self._inner.list_events(start, end)

    def get_event(self, event_id: str) -> dict[str, Any] | None:
        return self._inner.get_event(event_id)

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        properties: dict[str, str] | None = None,
    ) -> str:
        try:
            return self._inner.create_event(start, end, summary, description, properties)
        finally:
            self.invalidate()

    def update_event(self, event_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._inner.update_event(event_id, patch)
        finally:
            self.invalidate()

    def delete_event(self, event_id: str) -> bool:
        try:
            return self._inner.delete_event(event_id)
        finally:
            self.invalidate()

    def invalidate(self) -> None:
        self._busy.clear()
        self._logger.debug("Busy cache cleared")
