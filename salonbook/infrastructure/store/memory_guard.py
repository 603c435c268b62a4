from __future__ import annotations

import threading
import time
from typing import Callable

from salonbook.application.ports.request_guard import RequestGuardPort


class MemoryRequestGuard(RequestGuardPort):
    """Fixed-window counters and cooldown keys kept in process memory.

    Expired counters and keys are dropped at most once per `sweep_interval`
    seconds, so the maps only hold what is still live.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60) -> None:
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = 0.0
        self._counters: dict[str, tuple[float, int]] = {}
        self._keys: dict[str, float] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            window_end, count = self._counters.get(key, (0.0, 0))
            if now >= window_end:
                window_end, count = now + window_seconds, 0
            count += 1
            self._counters[key] = (window_end, count)
            return count <= limit

    def acquire(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            expires_at = self._keys.get(key)
            if expires_at is not None and now < expires_at:
                return False
            self._keys[key] = now + ttl_seconds
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._keys.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters) + len(self._keys)

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        self._next_sweep = now + self._sweep_interval
        self._counters = {k: v for k, v in self._counters.items() if v[0] > now}
        self._keys = {k: v for k, v in self._keys.items() if v > now}
