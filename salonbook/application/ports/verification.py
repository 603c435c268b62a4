from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    code: str | None = None


class BotChallengePort(ABC):
    @abstractmethod
    def verify(self, token: str | None, remote_ip: str | None = None) -> VerificationResult:
        """Validate an opaque bot-challenge token."""
        raise NotImplementedError
