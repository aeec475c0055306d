"""Product/brand index and entity resolution."""

from src.resolution.entity_resolver import EntityResolution, resolve_entities, resolve_scope
from src.resolution.product_index import (
    BrandTotal,
    HistoryPoint,
    HistorySummary,
    IndexedProduct,
    ProductIndex,
    SnapshotFrame,
    TypeMetric,
    WindowSummary,
    build_product_index,
)

__all__ = [
    "build_product_index",
    "ProductIndex",
    "IndexedProduct",
    "HistoryPoint",
    "HistorySummary",
    "WindowSummary",
    "BrandTotal",
    "SnapshotFrame",
    "TypeMetric",
    "EntityResolution",
    "resolve_entities",
    "resolve_scope",
]
