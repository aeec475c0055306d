from unittest.mock import MagicMock

from src.data.cache import CacheEntry, KeyedTtlCache, TtlCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_entry_freshness():
    entry = CacheEntry(value="x", loaded_at=10.0)

    assert entry.is_fresh(70.0, 60)
    assert not entry.is_fresh(70.5, 60)


def test_ttl_cache_reuses_value_until_expiry():
    clock = FakeClock()
    loader = MagicMock(side_effect=["first", "second"])
    cache = TtlCache(loader, ttl_seconds=60, clock=clock)

    assert cache.get() == "first"
    clock.now = 59
    assert cache.get() == "first"
    assert loader.call_count == 1

    clock.now = 61
    assert cache.get() == "second"
    assert cache.loaded_at == 61
    assert loader.call_count == 2


def test_ttl_cache_invalidate_forces_reload():
    loader = MagicMock(return_value={"tables": []})
    cache = TtlCache(loader, ttl_seconds=60, clock=FakeClock())

    cache.get()
    cache.invalidate()
    assert cache.loaded_at is None
    cache.get()

    assert loader.call_count == 2


def test_keyed_cache_loads_once_per_key():
    clock = FakeClock()
    cache = KeyedTtlCache(ttl_seconds=10, clock=clock)
    loader = MagicMock(return_value="index")

    assert cache.get_or_load(("a", "2025-06-01"), loader) == "index"
    assert cache.get_or_load(("a", "2025-06-01"), loader) == "index"
    assert loader.call_count == 1

    clock.now = 11
    cache.get_or_load(("a", "2025-06-01"), loader)
    assert loader.call_count == 2


def test_keyed_cache_evicts_oldest_and_expired():
    clock = FakeClock()
    cache = KeyedTtlCache(ttl_seconds=100, max_size=2, clock=clock)

    cache.get_or_load("a", lambda: 1)
    clock.now = 1
    cache.get_or_load("b", lambda: 2)
    clock.now = 2
    cache.get_or_load("c", lambda: 3)

    assert len(cache) == 2
    assert cache.get_or_load("b", lambda: -1) == 2
    assert cache.get_or_load("a", lambda: 10) == 10

    clock.now = 500
    cache.get_or_load("d", lambda: 4)
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_ttl_cache_generation_bumps_on_reload():
    clock = FakeClock()
    cache = TtlCache(MagicMock(side_effect=["first", "second"]), ttl_seconds=60, clock=clock)

    assert cache.generation == 0
    first = cache.get_entry()
    assert (first.value, first.generation) == ("first", 1)
    assert cache.get_entry() is first

    clock.now = 61
    second = cache.get_entry()
    assert (second.value, second.generation) == ("second", 2)
    assert cache.generation == 2
