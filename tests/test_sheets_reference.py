from __future__ import annotations

from datetime import date

import httpx

from salonbook.infrastructure.sheets.sheets_reference import (
    SheetsReferenceData,
    parse_duration,
    parse_exception_rows,
    parse_procedure_rows,
    parse_weekly_rows,
)


class FakeTokens:
    def headers(self) -> dict[str, str]:
        return {"Authorization": "Bearer test"}


def test_weekly_header_found_below_title_row():
    rows = [
        ["Godziny pracy salonu"],
        [],
        ["Weekday", "Working Hours", "Is Day Off"],
        ["Monday", "09:00-18:00", "no"],
        ["Sunday", "", "yes"],
        ["weekday", "", ""],
    ]
    weekly = parse_weekly_rows(rows)

    assert set(weekly) == {"monday", "sunday"}
    assert weekly["monday"].hours == "09:00-18:00"
    assert not weekly["monday"].is_day_off
    assert weekly["sunday"].is_day_off


def test_weekly_without_header_is_empty():
    assert parse_weekly_rows([["a", "b"], ["c", "d"]]) == {}
    assert parse_weekly_rows([]) == {}


def test_exception_rows_parse_dates_and_flags():
    rows = [
        ["Date", "Special Hours", "Closed"],
        ["2030-03-04", "12:00-15:00", ""],
        ["2030-12-25 (Christmas)", "", "1"],
        ["someday", "10:00-12:00", ""],
    ]
    exceptions = parse_exception_rows(rows)

    assert set(exceptions) == {date(2030, 3, 4), date(2030, 12, 25)}
    assert exceptions[date(2030, 3, 4)].hours == "12:00-15:00"
    assert exceptions[date(2030, 12, 25)].is_day_off


def test_duration_formats():
    assert parse_duration("90") == 90
    assert parse_duration("90 min") == 90
    assert parse_duration("1:30") == 90
    assert parse_duration("") == 30
    assert parse_duration("n/a") == 30


def test_procedure_rows():
    rows = [
        ["ID", "Name", "Category", "Duration (min)", "Price PLN", "Active", "Order"],
        ["p2", "Pedicure", "Feet", "1:30", "160 zł", "yes", "2"],
        ["p1", "Manicure", "Hands", "60", "100", "TRUE", "1"],
        ["p3", "Old thing", "", "30", "10", "no", "3"],
        ["", "", "", "", "", "", ""],
    ]
    procedures = parse_procedure_rows(rows)

    assert [p.id for p in procedures] == ["p1", "p2", "p3"]
    assert procedures[1].duration_minutes == 90
    assert procedures[1].price == 160
    assert not procedures[2].is_active


def test_sheets_adapter_reads_and_caches_tabs():
    calls: list[str] = []
    tabs = {
        "Weekly": [["Weekday", "Hours", "Day off"], ["Monday", "09:00-17:00", ""]],
        "Exceptions": [["Date", "Hours", "Day off"]],
        "PROCEDURES": [["id", "name", "duration", "price", "active"], ["m", "Manicure", "60", "100", "yes"], ["x", "Gone", "30", "5", "no"]],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        tab = request.url.path.split("/values/")[1].split("!")[0]
        calls.append(tab)
        return httpx.Response(200, json={"values": tabs[tab]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    data = SheetsReferenceData(tokens=FakeTokens(), sheet_id="sheet", client=client, ttl_seconds=60)

    assert data.weekly_rules()["monday"].hours == "09:00-17:00"
    assert [p.id for p in data.list_procedures()] == ["m"]
    assert data.get_procedure("x") is None
    data.weekly_rules()

    assert calls.count("Weekly") == 1
    assert calls.count("PROCEDURES") == 1
