from __future__ import annotations

from salonbook.infrastructure.store.memory_guard import MemoryRequestGuard
from salonbook.infrastructure.store.ttl_cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_guard_limits_hits_per_window():
    clock = FakeClock()
    guard = MemoryRequestGuard(clock=clock)

    assert guard.hit("rl:a", 2, 60)
    assert guard.hit("rl:a", 2, 60)
    assert not guard.hit("rl:a", 2, 60)

    clock.now += 60
    assert guard.hit("rl:a", 2, 60)


def test_guard_cooldown_key_until_release_or_expiry():
    clock = FakeClock()
    guard = MemoryRequestGuard(clock=clock)

    assert guard.acquire("idem:x", 300)
    assert not guard.acquire("idem:x", 300)
    guard.release("idem:x")
    assert guard.acquire("idem:x", 300)

    clock.now += 300
    assert guard.acquire("idem:x", 300)


def test_guard_drops_expired_counters_and_keys():
    clock = FakeClock()
    guard = MemoryRequestGuard(clock=clock)
    for n in range(50):
        guard.hit(f"rl:ip:10.0.0.{n}:1m", 10, 60)
        guard.acquire(f"idem:book:{n}", 300)
    assert len(guard) == 100

    clock.now += 301
    guard.hit("rl:ip:10.0.1.1:1m", 10, 60)

    assert len(guard) == 1


def test_guard_keeps_live_entries_when_sweeping():
    clock = FakeClock()
    guard = MemoryRequestGuard(clock=clock)
    guard.hit("rl:short", 1, 60)
    guard.acquire("idem:long", 3600)

    clock.now += 120
    guard.hit("rl:new", 1, 60)

    assert len(guard) == 2
    assert not guard.acquire("idem:long", 3600)


def test_cache_entries_expire():
    clock = FakeClock()
    cache = TTLCache(30, clock=clock)
    cache.set("k", [1])

    assert cache.get("k") == [1]
    clock.now += 30
    assert cache.get("k") is None


def test_cache_write_drops_expired_entries_never_read_again():
    clock = FakeClock()
    cache = TTLCache(30, clock=clock)
    for n in range(20):
        cache.set(("2030-03-04", n), [])
    assert len(cache) == 20

    clock.now += 31
    cache.set("fresh", [])

    assert len(cache) == 1


def test_cache_loads_once_while_fresh():
    cache = TTLCache(30, clock=FakeClock())
    calls = []

    def load():
        calls.append(1)
        return ["busy"]

    assert cache.get_or_load("k", load) == ["busy"]
    assert cache.get_or_load("k", load) == ["busy"]
    assert len(calls) == 1
