"""
Time-to-live caches for table snapshots and derived indexes.

A cache owns ``{value, loaded_at, ttl}``. Refresh replaces the entry
reference in a single assignment, so concurrent readers observe either the
old snapshot or the new one, never a mix. The clock is injectable so tests
can drive expiry deterministically.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

from src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    loaded_at: float
    generation: int = 0

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.loaded_at <= ttl_seconds


class TtlCache(Generic[T]):
    """
    Single-value TTL cache around a loader.

    Example:
        >>> cache = TtlCache(provider.load_tables, ttl_seconds=60)
        >>> tables = cache.get()
    """

    def __init__(
        self,
        loader: Callable[[], T],
        ttl_seconds: float,
        clock: Clock = time.monotonic,
        name: str = "cache",
    ):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.name = name
        self._entry: Optional[CacheEntry[T]] = None
        self._generation = 0

    def get(self) -> T:
        """Return the cached value, reloading when the TTL has elapsed."""
        return self.get_entry().value

    def get_entry(self) -> CacheEntry[T]:
        """
        Return the current entry, reloading when the TTL has elapsed.

        Each reload bumps ``generation`` so values derived from the snapshot
        can be keyed on the exact load they came from.
        """
        now = self._clock()
        entry = self._entry
        if entry is not None and entry.is_fresh(now, self.ttl_seconds):
            return entry

        value = self._loader()
        self._generation += 1
        entry = CacheEntry(value=value, loaded_at=now, generation=self._generation)
        self._entry = entry
        logger.debug(
            "Cache refreshed",
            cache=self.name,
            generation=entry.generation,
            ttl_seconds=self.ttl_seconds,
        )
        return entry

    def invalidate(self) -> None:
        self._entry = None

    @property
    def loaded_at(self) -> Optional[float]:
        entry = self._entry
        return entry.loaded_at if entry else None

    @property
    def generation(self) -> int:
        return self._generation


class KeyedTtlCache(Generic[T]):
    """TTL cache of values keyed by request context (e.g. category and snapshot)."""

    def __init__(
        self,
        ttl_seconds: float,
        max_size: int = 64,
        clock: Clock = time.monotonic,
        name: str = "keyed_cache",
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self.name = name
        self._entries: dict[Hashable, CacheEntry[T]] = {}

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(now, self.ttl_seconds):
            return entry.value

        value = loader()
        entries = {
            k: v for k, v in self._entries.items()
            if k != key and v.is_fresh(now, self.ttl_seconds)
        }
        if len(entries) >= self.max_size:
            oldest = sorted(entries.items(), key=lambda item: item[1].loaded_at)
            entries = dict(oldest[len(entries) - self.max_size + 1:])
        entries[key] = CacheEntry(value=value, loaded_at=now)
        self._entries = entries
        return value

    def clear(self) -> None:
        self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)
