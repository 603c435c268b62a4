from __future__ import annotations

from abc import ABC, abstractmethod

from salonbook.domain.entities.booking import StaffContactRequest


class StaffContactPort(ABC):
    @abstractmethod
    def send(self, request: StaffContactRequest, request_id: str) -> None:
        """Deliver a contact request to staff."""
        raise NotImplementedError
