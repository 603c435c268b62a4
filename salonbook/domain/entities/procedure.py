from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Procedure:
    id: str
    name: str
    duration_minutes: int
    price: int = 0
    category: str | None = None
    is_active: bool = True
    order: int = 0
