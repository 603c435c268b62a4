from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from salonbook.domain.entities.procedure import Procedure
from salonbook.domain.entities.schedule import ExceptionRule, WeeklyRule


class ScheduleSourcePort(ABC):
    @abstractmethod
    def weekly_rules(self) -> dict[str, WeeklyRule]:
        """Weekly rules keyed by lowercase english weekday name."""
        raise NotImplementedError

    @abstractmethod
    def exception_rules(self) -> dict[date, ExceptionRule]:
        """Date-level overrides keyed by calendar date."""
        raise NotImplementedError


class ProcedureCatalogPort(ABC):
    @abstractmethod
    def list_procedures(self) -> list[Procedure]:
        """Active procedures in display order."""
        raise NotImplementedError

    def get_procedure(self, procedure_id: str) -> Procedure | None:
        for procedure in self.list_procedures():
            if procedure.id == procedure_id:
                return procedure
        return None
