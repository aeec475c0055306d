"""
Product/brand index built from the curated tables.

The index is the read-only view every deterministic component works on:
ranked products of the selected snapshot with MoM deltas and history,
per-snapshot brand totals, alias lookups for the resolver, and rolling
history windows. It is a pure function of the tables and the selection.
"""

import math
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from src.query.catalog import Row, Tables
from src.utils.formatters import normalize_key, safe_number
from src.utils.logger import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

WINDOW_SIZES: dict[str, float] = {
    "1m": 1,
    "3m": 3,
    "6m": 6,
    "12m": 12,
    "all": math.inf,
}

TREND_THRESHOLD = 0.08

BRAND_ALIAS_STOPWORDS = frozenset({
    "product",
    "products",
    "tool",
    "tools",
    "scanner",
    "scanners",
    "diagnostic",
    "solutions",
    "america",
    "global",
    "system",
    "systems",
})

# Spelling variants users type for a brand key
BRAND_ALIAS_VARIANTS: dict[str, tuple[str, ...]] = {
    "blcktec": ("blacktec", "blcktek"),
}

# Colloquial model names that do not appear in listing titles
PINNED_PRODUCT_ALIASES: dict[str, str] = {
    "innova5610": "B07Z481NJM",
    "5610innova": "B07Z481NJM",
}

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_PRICE_SCOPE = re.compile(r"(tablet|handheld|dongle|other)")


# =============================================================================
# Index Types
# =============================================================================

@dataclass(frozen=True)
class HistoryPoint:
    """One snapshot of a product (or brand) time series."""
    date: str
    revenue: float
    units: float
    price: float
    rating: float = 0.0
    reviews: float = 0.0
    rank_revenue: Optional[int] = None
    rank_units: Optional[int] = None


@dataclass
class IndexedProduct:
    asin: str
    title: str
    brand: str
    type: str
    price: float
    revenue: float
    units: float
    rating: float
    reviews: float
    rank_revenue: int = 0
    rank_units: int = 0
    revenue_mom: Optional[float] = None
    units_mom: Optional[float] = None
    price_mom: Optional[float] = None
    rating_mom: Optional[float] = None
    history: list[HistoryPoint] = field(default_factory=list)

    @property
    def key(self) -> str:
        return normalize_key(self.asin)

    @property
    def brand_key(self) -> str:
        return normalize_key(self.brand)

    def previous_point(self) -> Optional[HistoryPoint]:
        """History point just before the current snapshot."""
        return self.history[-2] if len(self.history) >= 2 else None

    def point_at(self, snapshot_date: Optional[str]) -> Optional[HistoryPoint]:
        if not snapshot_date:
            return None
        return next((point for point in self.history if point.date == snapshot_date), None)


@dataclass(frozen=True)
class BrandTotal:
    brand: str
    revenue: float
    units: float
    share: float

    @property
    def key(self) -> str:
        return normalize_key(self.brand)


@dataclass(frozen=True)
class TypeMetric:
    """Type/segment scope row with growth against the previous and YoY frames."""
    scope_key: str
    label: str
    revenue: float
    units: float
    revenue_share: float
    units_share: float
    avg_price: float
    revenue_mom: Optional[float] = None
    units_mom: Optional[float] = None
    revenue_yoy: Optional[float] = None
    units_yoy: Optional[float] = None


@dataclass
class SnapshotFrame:
    """Aggregates of one snapshot of the selected category."""
    date: str
    label: str
    brand_totals: list[BrandTotal]
    market_revenue: float
    market_units: float
    type_metrics: list[TypeMetric] = field(default_factory=list)
    source_files: list[str] = field(default_factory=list)

    def brand_total(self, brand: str) -> Optional[BrandTotal]:
        key = normalize_key(brand)
        return next((row for row in self.brand_totals if row.key == key), None)

    def brand_rank(self, brand: str, metric: str = "revenue") -> Optional[int]:
        """1-based rank of a brand by revenue or units, None when absent."""
        ordered = sorted(
            self.brand_totals,
            key=lambda row: row.units if metric == "units" else row.revenue,
            reverse=True,
        )
        key = normalize_key(brand)
        for position, row in enumerate(ordered, start=1):
            if row.key == key:
                return position
        return None


@dataclass(frozen=True)
class WindowSummary:
    months: int
    revenue: float
    units: float
    asp: float
    avg_rating: float
    revenue_growth_mom: Optional[float]
    revenue_growth_window: Optional[float]
    trend: str


@dataclass(frozen=True)
class HistorySummary:
    """Rolling windows over a product or brand series."""
    key: str
    label: str
    windows: dict[str, WindowSummary]
    fastest_growth_score: float = 0.0
    current_share: float = 0.0
    current_revenue_rank: Optional[int] = None
    current_units_rank: Optional[int] = None


@dataclass
class ProductIndex:
    category_id: str
    category_label: str
    snapshot: SnapshotFrame
    previous: Optional[SnapshotFrame]
    yoy: Optional[SnapshotFrame]
    snapshots: list[SnapshotFrame]
    products: list[IndexedProduct]
    products_by_asin: dict[str, IndexedProduct]
    products_by_brand: dict[str, list[IndexedProduct]]
    brand_series: dict[str, list[HistoryPoint]]
    asin_history: dict[str, HistorySummary]
    brand_history: dict[str, HistorySummary]
    brand_lookup: dict[str, str]
    brand_display_by_key: dict[str, str]
    product_alias_to_asins: dict[str, list[str]]
    own_brands: tuple[str, ...]
    market_history: Optional[HistorySummary] = None
    quality_warnings: list[str] = field(default_factory=list)

    @property
    def snapshot_date(self) -> str:
        return self.snapshot.date

    @property
    def price_scope_metrics(self) -> list[TypeMetric]:
        return [row for row in self.snapshot.type_metrics if _PRICE_SCOPE.search(normalize_key(row.scope_key))]

    def product(self, asin: str) -> Optional[IndexedProduct]:
        return self.products_by_asin.get(normalize_key(asin))

    def brand_display(self, brand_key: str) -> str:
        return self.brand_display_by_key.get(normalize_key(brand_key), brand_key.upper())

    def is_own_brand(self, brand: str) -> bool:
        return normalize_key(brand) in self.own_brands


# =============================================================================
# Window Math
# =============================================================================

def trend_from_growth(value: Optional[float]) -> str:
    if value is None:
        return "flat"
    if value >= TREND_THRESHOLD:
        return "up"
    if value <= -TREND_THRESHOLD:
        return "down"
    return "flat"


def _average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize_window(points: Sequence[HistoryPoint], size: float) -> WindowSummary:
    """Summarize the last ``size`` points of an ascending series."""
    source = list(points) if math.isinf(size) else list(points)[-int(size):]
    if not source:
        return WindowSummary(0, 0.0, 0.0, 0.0, 0.0, None, None, "flat")

    revenue = sum(point.revenue for point in source)
    units = sum(point.units for point in source)
    asp = revenue / units if units > 0 else _average([point.price for point in source])
    avg_rating = _average([point.rating for point in source if point.rating > 0])

    latest, first = source[-1], source[0]
    # MoM always compares against the point before the latest, even for 1m
    series = list(points)
    prev = series[-2] if len(series) >= 2 else None
    growth_mom = (latest.revenue - prev.revenue) / prev.revenue if prev and prev.revenue > 0 else None
    growth_window = (latest.revenue - first.revenue) / first.revenue if first.revenue > 0 else None

    return WindowSummary(
        months=len(source),
        revenue=revenue,
        units=units,
        asp=asp,
        avg_rating=avg_rating,
        revenue_growth_mom=growth_mom,
        revenue_growth_window=growth_window,
        trend=trend_from_growth(growth_window),
    )


def build_windows(points: Sequence[HistoryPoint]) -> dict[str, WindowSummary]:
    return {name: summarize_window(points, size) for name, size in WINDOW_SIZES.items()}


def fastest_growth_score(windows: dict[str, WindowSummary]) -> float:
    """Blend of 1m MoM, 3m and 6m window growth, clamped to [-100, 200]."""
    mom = windows["1m"].revenue_growth_mom or 0.0
    growth_3m = windows["3m"].revenue_growth_window or 0.0
    growth_6m = windows["6m"].revenue_growth_window or 0.0
    return min(200.0, max(-100.0, mom * 35 + growth_3m * 40 + growth_6m * 25))


def ratio_delta(current: float, previous: float) -> Optional[float]:
    if not previous:
        return None
    return (current - previous) / previous


def yoy_date(snapshot_date: str) -> Optional[str]:
    """Same month one year earlier, as the first of that month."""
    try:
        parsed = date.fromisoformat(snapshot_date)
    except ValueError:
        return None
    return f"{parsed.year - 1:04d}-{parsed.month:02d}-01"


# =============================================================================
# Table Extraction
# =============================================================================

def _rows_for(tables: Tables, table: str, category_id: str) -> list[Row]:
    return [row for row in tables.get(table, []) if row.get("category_id") == category_id]


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ("" if value is None else str(value))


def _optional_rank(value: object) -> Optional[int]:
    number = safe_number(value)
    return int(number) if number > 0 else None


def _merge_products(rows: Iterable[Row]) -> dict[str, Row]:
    """Merge product rows of one snapshot by normalized ASIN, later non-empty values win."""
    merged: dict[str, Row] = {}
    for row in rows:
        key = normalize_key(_text(row.get("asin")))
        if not key:
            continue
        existing = merged.get(key)
        if existing is None:
            merged[key] = dict(row)
            continue
        for column, value in row.items():
            if isinstance(value, str) and value.strip():
                existing[column] = value
            elif isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
                existing[column] = value
    return merged


def _rank_positions(rows: Sequence[Row], column: str) -> dict[str, int]:
    ordered = sorted(rows, key=lambda row: safe_number(row.get(column)), reverse=True)
    return {normalize_key(_text(row.get("asin"))): position for position, row in enumerate(ordered, start=1)}


def _history_point(row: Row, fallback_revenue_rank: Optional[int], fallback_units_rank: Optional[int]) -> HistoryPoint:
    return HistoryPoint(
        date=_text(row.get("snapshot_date")),
        revenue=safe_number(row.get("revenue")),
        units=safe_number(row.get("units")),
        price=safe_number(row.get("price")),
        rating=safe_number(row.get("rating")),
        reviews=safe_number(row.get("review_count")),
        rank_revenue=_optional_rank(row.get("rank_revenue")) or fallback_revenue_rank,
        rank_units=_optional_rank(row.get("rank_units")) or fallback_units_rank,
    )


def _brand_totals(brand_rows: Sequence[Row], product_rows: Sequence[Row], market_revenue: float) -> list[BrandTotal]:
    """Brand totals of one snapshot; aggregated from products when the brand table is empty."""
    totals: dict[str, BrandTotal] = {}
    if brand_rows:
        for row in brand_rows:
            brand = _text(row.get("brand"))
            key = normalize_key(brand)
            if not key or key in totals:
                continue
            revenue = safe_number(row.get("revenue"))
            share = safe_number(row.get("share"))
            if share <= 0 and market_revenue > 0:
                share = revenue / market_revenue
            totals[key] = BrandTotal(brand, revenue, safe_number(row.get("units")), share)
    else:
        sums: dict[str, list] = {}
        for row in product_rows:
            brand = _text(row.get("brand"))
            key = normalize_key(brand)
            if not key:
                continue
            bucket = sums.setdefault(key, [brand, 0.0, 0.0])
            bucket[1] += safe_number(row.get("revenue"))
            bucket[2] += safe_number(row.get("units"))
        for key, (brand, revenue, units) in sums.items():
            share = revenue / market_revenue if market_revenue > 0 else 0.0
            totals[key] = BrandTotal(brand, revenue, units, share)
    return sorted(totals.values(), key=lambda row: row.revenue, reverse=True)


def _type_metrics(rows: Sequence[Row], market_revenue: float, market_units: float) -> list[TypeMetric]:
    """allAsins type rows; missing shares are derived from the market totals."""
    metrics = []
    seen = set()
    for row in rows:
        metric_set = normalize_key(_text(row.get("metric_set")))
        if metric_set not in ("", "allasins"):
            continue
        scope_key = _text(row.get("scope_key"))
        if not scope_key or scope_key in seen:
            continue
        seen.add(scope_key)
        revenue = safe_number(row.get("revenue"))
        units = safe_number(row.get("units"))
        revenue_share = safe_number(row.get("revenue_share"))
        units_share = safe_number(row.get("units_share"))
        if revenue_share <= 0 and market_revenue > 0:
            revenue_share = revenue / market_revenue
        if units_share <= 0 and market_units > 0:
            units_share = units / market_units
        metrics.append(TypeMetric(
            scope_key=scope_key,
            label=_text(row.get("scope_label")) or scope_key,
            revenue=revenue,
            units=units,
            revenue_share=revenue_share,
            units_share=units_share,
            avg_price=safe_number(row.get("avg_price")),
        ))
    return metrics


def _with_type_growth(
    current: list[TypeMetric],
    previous: Optional[SnapshotFrame],
    yoy: Optional[SnapshotFrame],
) -> list[TypeMetric]:
    prev_by_key = {row.scope_key: row for row in (previous.type_metrics if previous else [])}
    yoy_by_key = {row.scope_key: row for row in (yoy.type_metrics if yoy else [])}
    enriched = []
    for row in current:
        prev_row = prev_by_key.get(row.scope_key)
        yoy_row = yoy_by_key.get(row.scope_key)
        enriched.append(TypeMetric(
            scope_key=row.scope_key,
            label=row.label,
            revenue=row.revenue,
            units=row.units,
            revenue_share=row.revenue_share,
            units_share=row.units_share,
            avg_price=row.avg_price,
            revenue_mom=ratio_delta(row.revenue, prev_row.revenue) if prev_row else None,
            units_mom=ratio_delta(row.units, prev_row.units) if prev_row else None,
            revenue_yoy=ratio_delta(row.revenue, yoy_row.revenue) if yoy_row else None,
            units_yoy=ratio_delta(row.units, yoy_row.units) if yoy_row else None,
        ))
    return enriched


def _snapshot_dates(tables: Tables, category_id: str) -> list[str]:
    dates = {_text(row.get("snapshot_date")) for row in _rows_for(tables, "snapshots", category_id)}
    for table in ("products_monthly", "brands_monthly", "market_monthly"):
        dates.update(_text(row.get("snapshot_date")) for row in _rows_for(tables, table, category_id))
    dates.discard("")
    return sorted(dates)


def _category_label(tables: Tables, category_id: str) -> str:
    for row in tables.get("categories", []):
        if row.get("category_id") == category_id:
            return _text(row.get("label")) or category_id
    return category_id


# =============================================================================
# Lookups
# =============================================================================

def _brand_aliases(display: str, brand_key: str) -> list[str]:
    aliases = [brand_key, normalize_key(display)]
    for token in _TOKEN_SPLIT.split(display.lower()):
        if len(token) >= 4 and token not in BRAND_ALIAS_STOPWORDS:
            aliases.append(token)
    aliases.extend(BRAND_ALIAS_VARIANTS.get(brand_key, ()))
    return list(dict.fromkeys(alias for alias in aliases if alias))


def build_brand_lookups(
    brand_totals: Sequence[BrandTotal],
    products: Sequence[IndexedProduct],
    own_brands: Sequence[str] = (),
) -> tuple[dict[str, str], dict[str, str]]:
    """
    Build ``alias -> brand key`` and ``brand key -> display name`` maps.

    The first brand to claim an alias keeps it, except that an own brand's
    exact key always maps to that brand.
    """
    display_by_key: dict[str, str] = {}
    for name in [row.brand for row in brand_totals] + [product.brand for product in products]:
        key = normalize_key(name)
        if key and key not in display_by_key:
            display_by_key[key] = name

    lookup: dict[str, str] = {}
    for brand_key, display in display_by_key.items():
        for alias in _brand_aliases(display, brand_key):
            if alias not in lookup or (alias == brand_key and brand_key in own_brands):
                lookup[alias] = brand_key
    return lookup, display_by_key


def build_product_aliases(products: Sequence[IndexedProduct]) -> dict[str, list[str]]:
    """Map normalized aliases (ASIN, brand+model, model+brand) to upper-case ASINs."""
    aliases: dict[str, list[str]] = defaultdict(list)

    def add(alias: str, asin: str) -> None:
        key = normalize_key(alias)
        if len(key) < 4:
            return
        code = asin.upper()
        if code not in aliases[key]:
            aliases[key].append(code)

    for product in products:
        add(product.asin, product.asin)
        compact_brand = normalize_key(product.brand)
        for token in _TOKEN_SPLIT.split(f"{product.brand} {product.title}".lower()):
            if len(token) >= 3 and any(char.isdigit() for char in token):
                add(f"{compact_brand}{token}", product.asin)
                add(f"{token}{compact_brand}", product.asin)

    for alias, asin in PINNED_PRODUCT_ALIASES.items():
        add(alias, asin)
    return dict(aliases)


# =============================================================================
# Builder
# =============================================================================

def build_product_index(
    tables: Tables,
    category_id: str,
    snapshot_date: str,
    own_brands: Sequence[str] = ("innova", "blcktec"),
) -> Optional[ProductIndex]:
    """
    Build the index for one category snapshot.

    Args:
        tables: Curated tables keyed by table name.
        category_id: Category to index.
        snapshot_date: Selected snapshot (``YYYY-MM-DD``).
        own_brands: Normalized own-brand keys from configuration.

    Returns:
        The index, or None when the category has no such snapshot.
    """
    dates = _snapshot_dates(tables, category_id)
    if snapshot_date not in dates:
        return None
    dates = [value for value in dates if value <= snapshot_date]

    product_rows = _rows_for(tables, "products_monthly", category_id)
    brand_rows = _rows_for(tables, "brands_monthly", category_id)
    market_rows = {_text(row.get("snapshot_date")): row for row in _rows_for(tables, "market_monthly", category_id)}
    type_rows = _rows_for(tables, "type_breakdowns", category_id)
    snapshot_rows = {_text(row.get("snapshot_date")): row for row in _rows_for(tables, "snapshots", category_id)}

    products_by_date: dict[str, dict[str, Row]] = {
        value: _merge_products(row for row in product_rows if _text(row.get("snapshot_date")) == value)
        for value in dates
    }

    frames: list[SnapshotFrame] = []
    for value in dates:
        merged = list(products_by_date[value].values())
        market_row = market_rows.get(value)
        market_revenue = safe_number(market_row.get("revenue")) if market_row else 0.0
        market_units = safe_number(market_row.get("units")) if market_row else 0.0
        if market_revenue <= 0:
            market_revenue = sum(safe_number(row.get("revenue")) for row in merged)
        if market_units <= 0:
            market_units = sum(safe_number(row.get("units")) for row in merged)
        meta = snapshot_rows.get(value, {})
        frames.append(SnapshotFrame(
            date=value,
            label=_text(meta.get("snapshot_label")) or value,
            brand_totals=_brand_totals(
                [row for row in brand_rows if _text(row.get("snapshot_date")) == value],
                merged,
                market_revenue,
            ),
            market_revenue=market_revenue,
            market_units=market_units,
            type_metrics=_type_metrics(
                [row for row in type_rows if _text(row.get("snapshot_date")) == value],
                market_revenue,
                market_units,
            ),
            source_files=[_text(meta.get("source_file"))] if meta.get("source_file") else [],
        ))

    frames_by_date = {frame.date: frame for frame in frames}
    current = frames[-1]
    previous = frames[-2] if len(frames) >= 2 else None
    yoy = frames_by_date.get(yoy_date(snapshot_date) or "")
    current.type_metrics = _with_type_growth(current.type_metrics, previous, yoy)

    # Per-snapshot positional ranks back rows that carry no rank columns
    ranks_by_date = {
        value: (_rank_positions(list(rows.values()), "revenue"), _rank_positions(list(rows.values()), "units"))
        for value, rows in products_by_date.items()
    }

    def history_for(key: str) -> list[HistoryPoint]:
        points = []
        for value in dates:
            row = products_by_date[value].get(key)
            if row is None:
                continue
            revenue_ranks, units_ranks = ranks_by_date[value]
            points.append(_history_point(row, revenue_ranks.get(key), units_ranks.get(key)))
        return points

    current_rows = products_by_date[snapshot_date]
    previous_rows = products_by_date[previous.date] if previous else {}
    products: list[IndexedProduct] = []
    for key, row in current_rows.items():
        prev = previous_rows.get(key, {})
        revenue = safe_number(row.get("revenue"))
        units = safe_number(row.get("units"))
        price = safe_number(row.get("price"))
        rating = safe_number(row.get("rating"))
        products.append(IndexedProduct(
            asin=_text(row.get("asin")),
            title=_text(row.get("title")),
            brand=_text(row.get("brand")),
            type=_text(row.get("type")) or "Unknown",
            price=price,
            revenue=revenue,
            units=units,
            rating=rating,
            reviews=safe_number(row.get("review_count")),
            revenue_mom=ratio_delta(revenue, safe_number(prev.get("revenue"))),
            units_mom=ratio_delta(units, safe_number(prev.get("units"))),
            price_mom=ratio_delta(price, safe_number(prev.get("price"))),
            rating_mom=rating - safe_number(prev.get("rating")),
            history=history_for(key),
        ))

    products.sort(key=lambda item: item.revenue, reverse=True)
    for position, product in enumerate(products, start=1):
        product.rank_revenue = position
    for position, product in enumerate(sorted(products, key=lambda item: item.units, reverse=True), start=1):
        product.rank_units = position

    products_by_asin = {product.key: product for product in products}
    products_by_brand: dict[str, list[IndexedProduct]] = defaultdict(list)
    for product in products:
        products_by_brand[product.brand_key].append(product)

    brand_series: dict[str, list[HistoryPoint]] = defaultdict(list)
    brand_shares: dict[str, float] = {}
    for frame in frames:
        for row in frame.brand_totals:
            brand_series[row.key].append(HistoryPoint(
                date=frame.date,
                revenue=row.revenue,
                units=row.units,
                price=row.revenue / row.units if row.units > 0 else 0.0,
                rank_revenue=frame.brand_rank(row.brand, "revenue"),
                rank_units=frame.brand_rank(row.brand, "units"),
            ))
            brand_shares[row.key] = row.share

    asin_history = {}
    for product in products:
        windows = build_windows(product.history)
        asin_history[product.key] = HistorySummary(
            key=product.key,
            label=f"{product.brand} {product.asin}",
            windows=windows,
            fastest_growth_score=fastest_growth_score(windows),
        )

    brand_history = {}
    for brand_key, series in brand_series.items():
        latest = series[-1]
        windows = build_windows(series)
        brand_history[brand_key] = HistorySummary(
            key=brand_key,
            label=brand_key,
            windows=windows,
            fastest_growth_score=fastest_growth_score(windows),
            current_share=brand_shares.get(brand_key, 0.0) if latest.date == snapshot_date else 0.0,
            current_revenue_rank=latest.rank_revenue if latest.date == snapshot_date else None,
            current_units_rank=latest.rank_units if latest.date == snapshot_date else None,
        )

    market_points = [
        HistoryPoint(
            date=frame.date,
            revenue=frame.market_revenue,
            units=frame.market_units,
            price=frame.market_revenue / frame.market_units if frame.market_units > 0 else 0.0,
        )
        for frame in frames
    ]
    market_windows = build_windows(market_points)

    own = tuple(normalize_key(brand) for brand in own_brands if normalize_key(brand))
    brand_lookup, brand_display_by_key = build_brand_lookups(current.brand_totals, products, own)

    warnings = []
    if not products:
        warnings.append(f"No product rows for {category_id} on {snapshot_date}.")
    if not current.brand_totals:
        warnings.append(f"No brand totals for {category_id} on {snapshot_date}.")

    index = ProductIndex(
        category_id=category_id,
        category_label=_category_label(tables, category_id),
        snapshot=current,
        previous=previous,
        yoy=yoy,
        snapshots=frames,
        products=products,
        products_by_asin=products_by_asin,
        products_by_brand=dict(products_by_brand),
        brand_series=dict(brand_series),
        asin_history=asin_history,
        brand_history=brand_history,
        brand_lookup=brand_lookup,
        brand_display_by_key=brand_display_by_key,
        product_alias_to_asins=build_product_aliases(products),
        own_brands=own,
        market_history=HistorySummary(
            key="market",
            label="Market",
            windows=market_windows,
            fastest_growth_score=fastest_growth_score(market_windows),
        ),
        quality_warnings=warnings,
    )

    logger.debug(
        "Built product index",
        category_id=category_id,
        snapshot_date=snapshot_date,
        products=len(products),
        brands=len(current.brand_totals),
        snapshots=len(frames),
    )
    return index


__all__ = [
    "HistoryPoint",
    "IndexedProduct",
    "BrandTotal",
    "TypeMetric",
    "SnapshotFrame",
    "WindowSummary",
    "HistorySummary",
    "ProductIndex",
    "build_product_index",
    "build_brand_lookups",
    "build_product_aliases",
    "build_windows",
    "summarize_window",
    "fastest_growth_score",
    "trend_from_growth",
    "ratio_delta",
    "yoy_date",
    "WINDOW_SIZES",
]
