from __future__ import annotations

from abc import ABC, abstractmethod


class RequestGuardPort(ABC):
    @abstractmethod
    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one attempt for key. Returns False once the window limit is exceeded."""
        raise NotImplementedError

    @abstractmethod
    def acquire(self, key: str, ttl_seconds: int) -> bool:
        """Set key if absent. Returns False while an earlier acquisition is still live."""
        raise NotImplementedError

    @abstractmethod
    def release(self, key: str) -> None:
        raise NotImplementedError
