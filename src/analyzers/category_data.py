"""
Category-level view of one snapshot.

Flattens the product index into the brand, type-mix, price-tier and feature
premium rows used by the category analyzers and the proactive signals.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from src.query.catalog import Tables
from src.resolution.product_index import IndexedProduct, ProductIndex
from src.utils.formatters import normalize_key, safe_number

DEFAULT_BUCKET_BOUNDS: tuple[float, float, float] = (75.0, 200.0, 400.0)

TRUTHY_FEATURE_VALUES = frozenset({"true", "yes", "y", "1"})
FALSY_FEATURE_VALUES = frozenset({"false", "no", "n", "0"})


@dataclass(frozen=True)
class BrandRow:
    brand: str
    revenue: float
    units: float
    share: float
    avg_price: float
    avg_rating: float
    listings: int

    @property
    def key(self) -> str:
        return normalize_key(self.brand)


@dataclass(frozen=True)
class MixRow:
    """Revenue/unit mix of one product type or price tier."""
    label: str
    revenue: float
    units: float
    revenue_share: float
    unit_share: float
    avg_price: float


@dataclass(frozen=True)
class FeaturePremium:
    feature: str
    with_feature_avg_price: float
    without_feature_avg_price: float
    premium_pct: float
    with_feature_revenue_share: float
    with_feature_unit_share: float


@dataclass
class NormalizedCategoryData:
    category_id: str
    category_label: str
    snapshot_date: str
    source_file: str
    top_by_revenue: list[IndexedProduct]
    top_by_units: list[IndexedProduct]
    brands: list[BrandRow]
    market_revenue: float
    market_units: float
    type_mix: list[MixRow]
    price_tiers: list[MixRow]
    feature_premiums: list[FeaturePremium] = field(default_factory=list)
    bucket_bounds: tuple[float, float, float] = DEFAULT_BUCKET_BOUNDS
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TrendContext:
    """Previous-snapshot totals used by the trend-reversal signal."""
    previous_date: str
    previous_revenue: float
    previous_units: float


# =============================================================================
# Price Buckets
# =============================================================================

def bucket_labels(bounds: Sequence[float] = DEFAULT_BUCKET_BOUNDS) -> list[tuple[str, float, float]]:
    """``(label, min, max)`` for the four price buckets; max is exclusive."""
    low, mid, high = bounds
    return [
        (f"<${low:g}", 0.0, low),
        (f"${low:g}-${mid - 1:g}", low, mid),
        (f"${mid:g}-${high - 1:g}", mid, high),
        (f"${high:g}+", high, float("inf")),
    ]


def price_bucket(price: float, bounds: Sequence[float] = DEFAULT_BUCKET_BOUNDS) -> str:
    for label, low, high in bucket_labels(bounds):
        if low <= price < high:
            return label
    return bucket_labels(bounds)[0][0]


# =============================================================================
# Builders
# =============================================================================

def _mix_row(label: str, revenue: float, units: float, market_revenue: float, market_units: float) -> MixRow:
    return MixRow(
        label=label,
        revenue=revenue,
        units=units,
        revenue_share=revenue / market_revenue if market_revenue > 0 else 0.0,
        unit_share=units / market_units if market_units > 0 else 0.0,
        avg_price=revenue / units if units > 0 else 0.0,
    )


def build_brand_rows(index: ProductIndex) -> list[BrandRow]:
    listings: dict[str, list[IndexedProduct]] = defaultdict(list)
    for product in index.products:
        listings[product.brand_key].append(product)

    rows = []
    market_revenue = index.snapshot.market_revenue
    for total in index.snapshot.brand_totals:
        products = listings.get(total.key, [])
        ratings = [product.rating for product in products if product.rating > 0]
        share = total.share if total.share > 0 else (total.revenue / market_revenue if market_revenue > 0 else 0.0)
        rows.append(BrandRow(
            brand=total.brand,
            revenue=total.revenue,
            units=total.units,
            share=share,
            avg_price=total.revenue / total.units if total.units > 0 else 0.0,
            avg_rating=sum(ratings) / len(ratings) if ratings else 0.0,
            listings=len(products),
        ))
    return sorted(rows, key=lambda row: row.revenue, reverse=True)


def build_type_mix(products: Sequence[IndexedProduct], market_revenue: float, market_units: float) -> list[MixRow]:
    totals: dict[str, list[float]] = {}
    for product in products:
        bucket = totals.setdefault(product.type or "Unknown", [0.0, 0.0])
        bucket[0] += product.revenue
        bucket[1] += product.units
    rows = [_mix_row(label, revenue, units, market_revenue, market_units) for label, (revenue, units) in totals.items()]
    return sorted(rows, key=lambda row: row.revenue, reverse=True)


def build_price_tiers(
    products: Sequence[IndexedProduct],
    market_revenue: float,
    market_units: float,
    bounds: Sequence[float] = DEFAULT_BUCKET_BOUNDS,
) -> list[MixRow]:
    """Four fixed price buckets; empty tiers are dropped."""
    rows = []
    for label, low, high in bucket_labels(bounds):
        members = [product for product in products if low <= product.price < high]
        revenue = sum(product.revenue for product in members)
        units = sum(product.units for product in members)
        if revenue > 0 or units > 0:
            rows.append(_mix_row(label, revenue, units, market_revenue, market_units))
    return rows


def _feature_flag(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return False
    text = str(value).strip().lower()
    if text.endswith(".0"):
        text = text[:-2]
    if text in TRUTHY_FEATURE_VALUES:
        return True
    if text in FALSY_FEATURE_VALUES:
        return False
    return None


def build_feature_premiums(
    tables: Tables,
    index: ProductIndex,
) -> list[FeaturePremium]:
    """
    Average-price premium of products carrying each workbook feature flag.

    Feature flags are ``code_reader_workbook_rows`` with ``sheet_type ==
    "feature"``; products without a row for a feature count as lacking it.
    Both groups must have priced products for a premium to be reported.
    """
    features: dict[str, dict[str, Any]] = defaultdict(dict)
    for row in tables.get("code_reader_workbook_rows", []):
        if str(row.get("category_id", "")) != index.category_id:
            continue
        if str(row.get("snapshot_date", "")) != index.snapshot_date:
            continue
        if str(row.get("sheet_type", "")).lower() != "feature":
            continue
        name = str(row.get("metric_name") or "").strip()
        asin = normalize_key(str(row.get("asin") or ""))
        if name and asin:
            features[name][asin] = row.get("metric_value")

    market_revenue = index.snapshot.market_revenue
    market_units = index.snapshot.market_units
    result = []
    for feature, values in features.items():
        with_rows = [product for product in index.products if _feature_flag(values.get(product.key)) is True]
        without_rows = [product for product in index.products if _feature_flag(values.get(product.key)) is False]
        if not with_rows or not without_rows:
            continue
        with_prices = [product.price for product in with_rows if product.price > 0]
        without_prices = [product.price for product in without_rows if product.price > 0]
        if not with_prices or not without_prices:
            continue
        with_avg = sum(with_prices) / len(with_prices)
        without_avg = sum(without_prices) / len(without_prices)
        with_revenue = sum(product.revenue for product in with_rows)
        with_units = sum(product.units for product in with_rows)
        result.append(FeaturePremium(
            feature=feature,
            with_feature_avg_price=with_avg,
            without_feature_avg_price=without_avg,
            premium_pct=(with_avg - without_avg) / without_avg,
            with_feature_revenue_share=with_revenue / market_revenue if market_revenue > 0 else 0.0,
            with_feature_unit_share=with_units / market_units if market_units > 0 else 0.0,
        ))
    return sorted(result, key=lambda item: abs(item.premium_pct), reverse=True)


def normalize_category_data(
    index: ProductIndex,
    tables: Optional[Tables] = None,
    bucket_bounds: Sequence[float] = DEFAULT_BUCKET_BOUNDS,
) -> NormalizedCategoryData:
    """Category view of the index's selected snapshot."""
    low, mid, high = (safe_number(value) for value in bucket_bounds)
    bounds = (low, mid, high)
    market_revenue = index.snapshot.market_revenue
    market_units = index.snapshot.market_units
    top_by_revenue = sorted(index.products, key=lambda product: product.revenue, reverse=True)
    warnings = list(index.quality_warnings)
    if not top_by_revenue:
        warnings.append("Top products were unavailable for this snapshot.")

    return NormalizedCategoryData(
        category_id=index.category_id,
        category_label=index.category_label,
        snapshot_date=index.snapshot_date,
        source_file=index.snapshot.source_files[0] if index.snapshot.source_files else f"{index.category_id}:{index.snapshot_date}",
        top_by_revenue=top_by_revenue,
        top_by_units=sorted(index.products, key=lambda product: product.units, reverse=True),
        brands=build_brand_rows(index),
        market_revenue=market_revenue,
        market_units=market_units,
        type_mix=build_type_mix(index.products, market_revenue, market_units),
        price_tiers=build_price_tiers(index.products, market_revenue, market_units, bounds),
        feature_premiums=build_feature_premiums(tables or {}, index),
        bucket_bounds=bounds,
        warnings=warnings,
    )


def trend_context(index: ProductIndex) -> Optional[TrendContext]:
    if index.previous is None:
        return None
    return TrendContext(
        previous_date=index.previous.date,
        previous_revenue=index.previous.market_revenue,
        previous_units=index.previous.market_units,
    )


__all__ = [
    "BrandRow",
    "MixRow",
    "FeaturePremium",
    "NormalizedCategoryData",
    "TrendContext",
    "normalize_category_data",
    "trend_context",
    "build_brand_rows",
    "build_type_mix",
    "build_price_tiers",
    "build_feature_premiums",
    "bucket_labels",
    "price_bucket",
]
