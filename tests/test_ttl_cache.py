from __future__ import annotations

from chatrelay.core.cache.ttl import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_ttl_cache_expires_entries() -> None:
    clock = FakeClock()
    cache = TTLCache(default_ttl_s=10, clock=clock)

    cache.set(("weather", 3), ["hit"])
    assert cache.get(("weather", 3)) == ["hit"]

    clock.now += 11
    assert cache.get(("weather", 3)) is None
    assert len(cache) == 0


def test_ttl_cache_evicts_when_full() -> None:
    clock = FakeClock()
    cache = TTLCache(default_ttl_s=10, max_entries=2, clock=clock)

    cache.set("a", 1)
    clock.now += 1
    cache.set("b", 2)
    clock.now += 1
    cache.set("c", 3)

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
