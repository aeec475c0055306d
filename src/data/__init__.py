"""Data access layer: table providers and TTL caches."""

from src.data.cache import CacheEntry, KeyedTtlCache, TtlCache
from src.data.providers import (
    InMemoryTableProvider,
    JsonFileTableProvider,
    TableProvider,
    normalize_tables,
)

__all__ = [
    "CacheEntry",
    "KeyedTtlCache",
    "TtlCache",
    "TableProvider",
    "InMemoryTableProvider",
    "JsonFileTableProvider",
    "normalize_tables",
]
