from __future__ import annotations

from datetime import date

from salonbook.application.ports.reference_data import ProcedureCatalogPort, ScheduleSourcePort
from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.schedule import ExceptionRule, WeeklyRule

DEFAULT_WEEKLY: dict[str, WeeklyRule] = {
    "monday": WeeklyRule(weekday="monday", hours="09:00-18:00"),
    "tuesday": WeeklyRule(weekday="tuesday", hours="09:00-18:00"),
    "wednesday": WeeklyRule(weekday="wednesday", hours="09:00-18:00"),
    "thursday": WeeklyRule(weekday="thursday", hours="10:00-20:00"),
    "friday": WeeklyRule(weekday="friday", hours="09:00-18:00"),
    "saturday": WeeklyRule(weekday="saturday", hours="10:00-14:00"),
    "sunday": WeeklyRule(weekday="sunday", is_day_off=True),
}

DEFAULT_PROCEDURES: list[Procedure] = [
    Procedure(id="manicure-classic", name="Manicure klasyczny", duration_minutes=60, price=100, category="Manicure", order=1),
    Procedure(id="manicure-hybrid", name="Manicure hybrydowy", duration_minutes=90, price=140, category="Manicure", order=2),
    Procedure(id="pedicure", name="Pedicure", duration_minutes=90, price=160, category="Pedicure", order=3),
    Procedure(id="brow-shaping", name="Regulacja brwi", duration_minutes=30, price=50, category="Brows", order=4),
    Procedure(id="lash-lift", name="Laminacja rzęs", duration_minutes=60, price=150, category="Lashes", order=5),
    Procedure(id="gel-removal", name="Zdjęcie hybrydy", duration_minutes=30, price=40, category="Manicure", is_active=False, order=6),
]


class StaticReferenceData(ScheduleSourcePort, ProcedureCatalogPort):
    """Fixed schedule and catalog for dev and tests."""

    def __init__(
        self,
        weekly: dict[str, WeeklyRule] | None = None,
        exceptions: dict[date, ExceptionRule] | None = None,
        procedures: list[Procedure] | None = None,
    ) -> None:
        self._weekly = dict(DEFAULT_WEEKLY if weekly is None else weekly)
        self._exceptions = dict(exceptions or {})
        self._procedures = list(DEFAULT_PROCEDURES if procedures is None else procedures)

    def weekly_rules(self) -> dict[str, WeeklyRule]:
        return dict(self._weekly)

    def exception_rules(self) -> dict[date, ExceptionRule]:
        return dict(self._exceptions)

    def list_procedures(self) -> list[Procedure]:
        return sorted((p for p in self._procedures if p.is_active), key=lambda p: p.order)
