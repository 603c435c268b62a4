from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Callable
from urllib.parse import quote

import httpx

from salonbook.application.exceptions import CalendarUnavailableError
from salonbook.application.ports.reference_data import ProcedureCatalogPort, ScheduleSourcePort
from salonbook.application.utils.hours_parser import normalize_cell
from salonbook.core.config import settings
from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.schedule import ExceptionRule, WeeklyRule
from salonbook.infrastructure.google.auth import GoogleTokenProvider
from salonbook.infrastructure.store.ttl_cache import TTLCache

GOOGLE_SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
HEADER_SCAN_ROWS = 10
DEFAULT_DURATION_MINUTES = 30

logger = logging.getLogger(__name__)


def _lower(value: Any) -> str:
    return normalize_cell(value).lower()


def _is_yes(value: Any) -> bool:
    return _lower(value) in {"yes", "y", "1", "true", "tak"}


def _cell(row: list[Any], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return normalize_cell(row[index])


def _find(header: list[str], predicate: Callable[[str], bool]) -> int:
    for index, cell in enumerate(header):
        if predicate(cell):
            return index
    return -1


def _hours_column(cell: str) -> bool:
    return any(word in cell for word in ("working", "work", "hours", "special", "godziny"))


def _day_off_column(cell: str) -> bool:
    return any(word in cell for word in ("day off", "closed", "off", "wolne"))


def _locate_header(
    rows: list[list[Any]], key_column: Callable[[str], bool]
) -> tuple[int, int, int, int] | None:
    """Find (row, key, hours, day_off) column indexes; title rows above the header are skipped."""
    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        header = [_lower(cell) for cell in row]
        key = _find(header, key_column)
        hours = _find(header, _hours_column)
        day_off = _find(header, _day_off_column)
        if key >= 0 and (hours >= 0 or day_off >= 0):
            return row_index, key, hours, day_off
    return None


def parse_weekly_rows(rows: list[list[Any]]) -> dict[str, WeeklyRule]:
    located = _locate_header(rows, lambda c: "weekday" in c or "week day" in c or c in ("day", "dzień"))
    if located is None:
        logger.warning("Weekly sheet has no recognisable header")
        return {}
    header_row, key, hours, day_off = located
    weekly: dict[str, WeeklyRule] = {}
    for row in rows[header_row + 1 :]:
        weekday = _cell(row, key).lower()
        if not weekday or weekday == "weekday":
            continue
        weekly[weekday] = WeeklyRule(weekday=weekday, hours=_cell(row, hours), is_day_off=_is_yes(_cell(row, day_off)))
    return weekly


def parse_exception_rows(rows: list[list[Any]]) -> dict[date, ExceptionRule]:
    located = _locate_header(rows, lambda c: "date" in c or "data" in c)
    if located is None:
        logger.warning("Exceptions sheet has no recognisable header")
        return {}
    header_row, key, hours, day_off = located
    exceptions: dict[date, ExceptionRule] = {}
    for row in rows[header_row + 1 :]:
        raw = _cell(row, key)[:10]
        if not raw or raw.lower() == "date":
            continue
        try:
            day = date.fromisoformat(raw)
        except ValueError:
            logger.warning("Skipping exception row with unreadable date", extra={"date": raw})
            continue
        exceptions[day] = ExceptionRule(day=day, hours=_cell(row, hours), is_day_off=_is_yes(_cell(row, day_off)))
    return exceptions


def parse_duration(value: Any) -> int:
    text = normalize_cell(value)
    clock = re.fullmatch(r"(\d{1,2}):(\d{1,2})(?::\d{1,2})?", text)
    if clock:
        return int(clock.group(1)) * 60 + int(clock.group(2))
    digits = re.sub(r"\D", "", text)
    minutes = int(digits) if digits else 0
    return minutes if minutes > 0 else DEFAULT_DURATION_MINUTES


def _digits(value: Any) -> int:
    digits = re.sub(r"\D", "", normalize_cell(value))
    return int(digits) if digits else 0


def parse_procedure_rows(rows: list[list[Any]]) -> list[Procedure]:
    """All procedure rows, inactive ones included, in display order."""
    if not rows:
        return []
    header = [_lower(cell) for cell in rows[0]]

    def column(pattern: str) -> int:
        return _find(header, lambda c: re.search(pattern, c) is not None)

    id_col = column(r"^id$")
    name_col = column(r"name.*procedure|name_pl|name|nazwa")
    category_col = column(r"category|kategoria")
    duration_col = column(r"duration|czas|min")
    price_col = column(r"price|pln|cena")
    active_col = column(r"is.?active|active|aktyw")
    order_col = column(r"order|sort")

    procedures: list[Procedure] = []
    for index, row in enumerate(rows[1:], start=1):
        name = _cell(row, name_col)
        if not name:
            continue
        duration = parse_duration(_cell(row, duration_col)) if duration_col >= 0 else DEFAULT_DURATION_MINUTES
        procedure_id = (_cell(row, id_col) if id_col >= 0 else "") or f"{name}-{duration}"
        procedures.append(
            Procedure(
                id=procedure_id[:100],
                name=name,
                duration_minutes=duration,
                price=_digits(_cell(row, price_col)) if price_col >= 0 else 0,
                category=_cell(row, category_col) or None,
                is_active=_is_yes(_cell(row, active_col)) if active_col >= 0 else True,
                order=_digits(_cell(row, order_col)) if order_col >= 0 else index,
            )
        )
    return sorted(procedures, key=lambda p: p.order)


class SheetsReferenceData(ScheduleSourcePort, ProcedureCatalogPort):
    """Weekly hours, exceptions and the procedure catalog read from a Google spreadsheet."""

    def __init__(
        self,
        tokens: GoogleTokenProvider,
        sheet_id: str | None = None,
        client: httpx.Client | None = None,
        ttl_seconds: float | None = None,
        base_url: str = GOOGLE_SHEETS_API,
    ) -> None:
        self._tokens = tokens
        self._sheet_id = sheet_id or settings.GOOGLE_SHEET_ID
        self._client = client or httpx.Client(timeout=settings.GOOGLE_API_TIMEOUT_SECONDS)
        self._cache = TTLCache(ttl_seconds if ttl_seconds is not None else settings.REFERENCE_CACHE_TTL_SECONDS)
        self._base_url = base_url
        self._logger = logging.getLogger(__name__)

        if not self._sheet_id:
            raise ValueError("GOOGLE_SHEET_ID is required for spreadsheet reference data")

    def weekly_rules(self) -> dict[str, WeeklyRule]:
        return self._cache.get_or_load(
            "weekly", lambda: parse_weekly_rows(self._values(settings.GOOGLE_SHEET_TAB_WEEKLY))
        )

    def exception_rules(self) -> dict[date, ExceptionRule]:
        return self._cache.get_or_load(
            "exceptions", lambda: parse_exception_rows(self._values(settings.GOOGLE_SHEET_TAB_EXCEPTIONS))
        )

    def list_procedures(self) -> list[Procedure]:
        procedures = self._cache.get_or_load(
            "procedures", lambda: parse_procedure_rows(self._values(settings.GOOGLE_SHEET_TAB_PROCEDURES))
        )
        return [p for p in procedures if p.is_active]

    def refresh(self) -> None:
        self._cache.clear()

    def _values(self, tab: str) -> list[list[Any]]:
        url = f"{self._base_url}/{quote(self._sheet_id, safe='')}/values/{quote(f'{tab}!A1:Z1000', safe='')}"
        try:
            response = self._client.get(url, headers=self._tokens.headers())
            response.raise_for_status()
        except httpx.HTTPError as e:
            self._logger.error("Spreadsheet read failed", extra={"reason": f"{tab}: {e}"})
            raise CalendarUnavailableError("We could not load the salon schedule. Please try again.") from e
        return response.json().get("values", [])
