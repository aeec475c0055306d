"""
Shared building blocks of the deterministic analyzers.

Every analyzer receives an AnalyzerContext and returns an AnalyzerOutput; the
metrics engine wraps that output into a ChatResponse. The helpers here cover
scope resolution, brand archetypes, growth windows and the price/volume
revenue bridge.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from src.analyzers.category_data import NormalizedCategoryData
from src.models.schemas import (
    CitationItem,
    EvidenceItem,
    GrowthWindow,
    HistoricalWindow,
    ProactiveSuggestion,
    ProductTypeScope,
    QueryPlan,
    RankingMetric,
    ResolvedEntities,
    ResolvedScope,
    SalesArchetype,
    ScopeMode,
    TopContributor,
)
from src.resolution.entity_resolver import EntityResolution
from src.resolution.product_index import (
    TREND_THRESHOLD,
    BrandTotal,
    HistoryPoint,
    IndexedProduct,
    ProductIndex,
    SnapshotFrame,
)
from src.utils.formatters import format_currency, format_number, normalize_key


# =============================================================================
# Context and Output
# =============================================================================

@dataclass
class AnalyzerContext:
    """Everything an analyzer may read for one request."""
    index: ProductIndex
    plan: QueryPlan
    resolution: EntityResolution
    message: str
    category_data: NormalizedCategoryData
    target_brand: Optional[str] = None
    price_window_pct: float = 0.20
    price_window_abs: float = 120.0
    competitor_min_revenue: float = 10_000.0

    @property
    def scope(self) -> ResolvedScope:
        return self.resolution.scope

    @property
    def entities(self) -> ResolvedEntities:
        return self.resolution.entities

    @property
    def matched_products(self) -> list[IndexedProduct]:
        return self.resolution.matched_products

    @property
    def snapshot(self) -> SnapshotFrame:
        return self.index.snapshot

    @property
    def units_metric(self) -> bool:
        return self.plan.ranking_metric == RankingMetric.UNITS


@dataclass
class AnalyzerOutput:
    answer: str
    bullets: list[str] = field(default_factory=list)
    evidence: list[EvidenceItem] = field(default_factory=list)
    confidence: float = 0.5
    assumptions: list[str] = field(default_factory=list)
    citations: list[CitationItem] = field(default_factory=list)
    suggested_questions: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    historical_window: Optional[HistoricalWindow] = None
    sales_archetype: Optional[SalesArchetype] = None
    top_contributors: list[TopContributor] = field(default_factory=list)
    window_used: Optional[str] = None
    # Analyzer-specific cards; None lets the engine pick its default set
    proactive: Optional[list[ProactiveSuggestion]] = None


UNKNOWN_EXAMPLES = (
    "Who is Innova 5610's biggest competitor?",
    "What are competitors doing this month?",
    "What should I be worried about?",
)


def evidence(label: str, value: str) -> EvidenceItem:
    return EvidenceItem(label=label, value=value)


def citation(metric: str, source: str, snapshot: str) -> CitationItem:
    return CitationItem(metric=metric, source=source, snapshot=snapshot)


def base_evidence(snapshot: SnapshotFrame) -> list[EvidenceItem]:
    """Snapshot, market revenue and market units; every answer leads with these."""
    return [
        evidence("Snapshot", snapshot.date),
        evidence("Market Revenue", format_currency(snapshot.market_revenue)),
        evidence("Market Units", format_number(snapshot.market_units)),
    ]


def unknown_output(ctx: AnalyzerContext, answer: str) -> AnalyzerOutput:
    return AnalyzerOutput(
        answer=answer,
        bullets=[f"Try: {example}" for example in UNKNOWN_EXAMPLES],
        evidence=base_evidence(ctx.snapshot),
        confidence=0.5,
        assumptions=["No strong analyzer route matched this question."],
        citations=[citation("Fallback", "metrics-engine", ctx.snapshot.date)],
        suggested_questions=list(UNKNOWN_EXAMPLES),
    )


# =============================================================================
# Math Helpers
# =============================================================================

def ratio(current: float, previous: Optional[float]) -> float:
    """Relative change; 0 when there is no base."""
    if not previous:
        return 0.0
    return (current - previous) / previous


def growth_for_window(window: str, mom: Optional[float], yoy: Optional[float]) -> Optional[float]:
    if window == GrowthWindow.MOM:
        return mom
    if window == GrowthWindow.YOY:
        return yoy
    if mom is None and yoy is None:
        return None
    if mom is None:
        return yoy
    if yoy is None:
        return mom
    return (mom + yoy) / 2


def window_label(window: str) -> str:
    if window == GrowthWindow.MOM:
        return "MoM"
    if window == GrowthWindow.YOY:
        return "YoY"
    return "MoM + YoY"


def describe_trend(value: Optional[float]) -> str:
    if value is None:
        return "flat"
    if value >= TREND_THRESHOLD:
        return "growing"
    if value <= -TREND_THRESHOLD:
        return "declining"
    return "stable"


def percentile(values: Sequence[float], p: float) -> float:
    if not values:
        return 0.0
    idx = min(len(values) - 1, max(0, int((len(values) - 1) * p)))
    return values[idx]


@dataclass(frozen=True)
class DriverBreakdown:
    unit_effect: float
    price_effect: float
    primary_driver: str


def driver_breakdown(
    current_revenue: float,
    current_units: float,
    previous_revenue: float,
    previous_units: float,
) -> DriverBreakdown:
    """Split a revenue change into a units effect and an ASP effect."""
    current_asp = current_revenue / current_units if current_units > 0 else 0.0
    previous_asp = previous_revenue / previous_units if previous_units > 0 else 0.0
    unit_effect = (current_units - previous_units) * previous_asp
    price_effect = current_units * (current_asp - previous_asp)
    primary = "units" if abs(unit_effect) >= abs(price_effect) else "price"
    return DriverBreakdown(unit_effect=unit_effect, price_effect=price_effect, primary_driver=primary)


# =============================================================================
# Scope Helpers
# =============================================================================

def resolve_own_brands(ctx: AnalyzerContext) -> set[str]:
    """Own-brand keys narrowed by a quick-action brand when one is given."""
    target = normalize_key(ctx.target_brand)
    if target and target in ctx.index.own_brands:
        return {target}
    if ctx.scope.mode == ScopeMode.TARGET_BRAND and ctx.scope.brands:
        return {normalize_key(brand) for brand in ctx.scope.brands}
    return set(ctx.index.own_brands)


def brand_scope_set(ctx: AnalyzerContext) -> set[str]:
    own = resolve_own_brands(ctx)
    if ctx.scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND):
        scoped = {normalize_key(brand) for brand in ctx.scope.brands if normalize_key(brand)}
        return scoped or own
    return own


def scoped_products(ctx: AnalyzerContext) -> list[IndexedProduct]:
    if ctx.scope.mode == ScopeMode.ALL_BRANDS:
        return list(ctx.index.products)
    allowed = {normalize_key(brand) for brand in ctx.scope.brands if normalize_key(brand)}
    if not allowed and ctx.scope.mode == ScopeMode.OWN_BRANDS:
        allowed = set(ctx.index.own_brands)
    return [product for product in ctx.index.products if product.brand_key in allowed]


def scope_label(scope: ResolvedScope) -> str:
    if scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND):
        return " + ".join(brand.upper() for brand in scope.brands)
    if scope.mode == ScopeMode.OWN_BRANDS:
        return "OWN BRANDS"
    return "MARKET"


def default_target_product(ctx: AnalyzerContext) -> Optional[IndexedProduct]:
    """Matched product, else the top scoped product, else the top own-brand product."""
    if ctx.matched_products:
        return ctx.matched_products[0]
    scoped = scoped_products(ctx)
    if scoped:
        return scoped[0]
    own = resolve_own_brands(ctx)
    return next((product for product in ctx.index.products if product.brand_key in own), None)


def find_brand_total(frame: Optional[SnapshotFrame], brand: str) -> Optional[BrandTotal]:
    return frame.brand_total(brand) if frame is not None else None


def history_point(history: Sequence[HistoryPoint], date: Optional[str]) -> Optional[HistoryPoint]:
    if not date:
        return None
    return next((point for point in history if point.date == date), None)


# =============================================================================
# Type Scopes
# =============================================================================

def type_scope_label(scope: str) -> str:
    if scope == ProductTypeScope.OTHER_TOOLS:
        return "Other Tools"
    return str(scope).capitalize()


def matches_type_scope(type_name: str, scope: str) -> bool:
    normalized = normalize_key(type_name)
    if scope == ProductTypeScope.OTHER_TOOLS:
        return "other" in normalized
    if scope == ProductTypeScope.HANDHELD:
        return "handheld" in normalized
    if scope == ProductTypeScope.DONGLE:
        return "dongle" in normalized
    return "tablet" in normalized


# =============================================================================
# Brand Profiles
# =============================================================================

def archetype_label(value: str) -> str:
    if value == SalesArchetype.PRICE_LED:
        return "price-led"
    if value == SalesArchetype.VOLUME_LED:
        return "volume-led"
    return "balanced"


def compute_brand_archetypes(snapshot: SnapshotFrame) -> dict[str, SalesArchetype]:
    """
    Percentile classification of every brand in the snapshot.

    Price-led: ASP at or above the 70th percentile, unit share at or below
    the 40th, revenue share at least 70% of the median. Volume-led mirrors
    it with the 30th ASP and 60th unit-share percentiles.
    """
    rows = []
    for total in snapshot.brand_totals:
        rows.append((
            total.key,
            total.revenue / total.units if total.units > 0 else 0.0,
            total.units / snapshot.market_units if snapshot.market_units > 0 else 0.0,
            total.revenue / snapshot.market_revenue if snapshot.market_revenue > 0 else 0.0,
        ))

    asp_values = sorted(asp for _, asp, _, _ in rows if asp > 0)
    unit_shares = sorted(unit_share for _, _, unit_share, _ in rows)
    revenue_shares = sorted(revenue_share for _, _, _, revenue_share in rows)
    asp_low, asp_high = percentile(asp_values, 0.3), percentile(asp_values, 0.7)
    unit_low, unit_high = percentile(unit_shares, 0.4), percentile(unit_shares, 0.6)
    revenue_floor = percentile(revenue_shares, 0.5) * 0.7

    archetypes = {}
    for key, asp, unit_share, revenue_share in rows:
        archetype = SalesArchetype.BALANCED
        if asp >= asp_high and unit_share <= unit_low and revenue_share >= revenue_floor:
            archetype = SalesArchetype.PRICE_LED
        elif asp <= asp_low and unit_share >= unit_high and revenue_share >= revenue_floor:
            archetype = SalesArchetype.VOLUME_LED
        archetypes[key] = archetype
    return archetypes


def brands_with_archetype(archetypes: dict[str, SalesArchetype], target: SalesArchetype) -> list[str]:
    return [key.upper() for key, value in archetypes.items() if value == target]


@dataclass(frozen=True)
class BrandSnapshotStats:
    brand: str
    revenue: float
    units: float
    asp: float
    revenue_share: float
    unit_share: float


def summarize_brand(snapshot: SnapshotFrame, brand: str) -> Optional[BrandSnapshotStats]:
    row = snapshot.brand_total(brand)
    if row is None:
        return None
    return BrandSnapshotStats(
        brand=row.brand,
        revenue=row.revenue,
        units=row.units,
        asp=row.revenue / row.units if row.units > 0 else 0.0,
        revenue_share=row.share,
        unit_share=row.units / snapshot.market_units if snapshot.market_units > 0 else 0.0,
    )


def brand_top_contributors(index: ProductIndex, brand: str, limit: int = 3) -> list[TopContributor]:
    key = normalize_key(brand)
    products = sorted(
        (product for product in index.products if product.brand_key == key),
        key=lambda product: product.revenue,
        reverse=True,
    )[:limit]
    contributors = []
    for product in products:
        history = index.asin_history.get(product.key)
        window = history.windows.get("3m") if history else None
        contributors.append(TopContributor(
            asin=product.asin,
            title=product.title,
            revenue=product.revenue,
            units=product.units,
            trend=window.trend if window else "flat",
        ))
    return contributors


def contributor_line(item: TopContributor) -> str:
    return (
        f"{item.asin}: {format_currency(item.revenue)} revenue, "
        f"{format_number(item.units)} units, trend {item.trend}."
    )


__all__ = [
    "AnalyzerContext",
    "AnalyzerOutput",
    "DriverBreakdown",
    "BrandSnapshotStats",
    "evidence",
    "citation",
    "base_evidence",
    "unknown_output",
    "ratio",
    "growth_for_window",
    "window_label",
    "describe_trend",
    "percentile",
    "driver_breakdown",
    "resolve_own_brands",
    "brand_scope_set",
    "scoped_products",
    "scope_label",
    "default_target_product",
    "find_brand_total",
    "history_point",
    "type_scope_label",
    "matches_type_scope",
    "archetype_label",
    "compute_brand_archetypes",
    "brands_with_archetype",
    "summarize_brand",
    "brand_top_contributors",
    "contributor_line",
]
