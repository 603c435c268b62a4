from __future__ import annotations

import re
from datetime import time

_RANGE_RE = re.compile(r"^(\d{1,2})[:.](\d{2})\s*[-–—]\s*(\d{1,2})[:.](\d{2})$")


def normalize_cell(value: object) -> str:
    return str(value if value is not None else "").replace("\u00a0", " ").strip()


def parse_hours(text: str | None) -> tuple[time, time] | None:
    """
    Parse operator-maintained opening hours like "09:00-18:00" or "9.30 – 17.00".
    A comma-separated list yields its first valid range. Anything unusable returns None
    so the caller can treat the day as closed.
    """
    for chunk in normalize_cell(text).split(","):
        parsed = _parse_range(chunk.strip())
        if parsed:
            return parsed
    return None


def _parse_range(chunk: str) -> tuple[time, time] | None:
    match = _RANGE_RE.match(chunk)
    if not match:
        return None
    open_h, open_m, close_h, close_m = (int(g) for g in match.groups())
    if open_h > 23 or close_h > 23 or open_m > 59 or close_m > 59:
        return None
    opens, closes = time(open_h, open_m), time(close_h, close_m)
    if closes <= opens:
        return None
    return opens, closes
