"""
Proactive cards shown next to answers.

``build_signals`` evaluates six independent category templates, ranks them by
an internal score and keeps the top three. ``build_snapshot_suggestions``
produces the own-brand snapshot cards and the rising-product watchlist used by
the brand health and risk answers.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from src.analyzers.category_data import NormalizedCategoryData, TrendContext, price_bucket
from src.models.schemas import ProactiveSuggestion, Severity
from src.resolution.product_index import ProductIndex
from src.utils.formatters import format_currency, format_percent, normalize_key
from src.utils.logger import get_logger

logger = get_logger(__name__)

MAX_SIGNALS = 3
MAX_WATCHLIST = 4

IMBALANCE_MIN_GAP = 0.08
IMBALANCE_RISK_GAP = 0.18
FRAGMENTED_TOP3_SHARE = 0.5
CLUSTER_MIN_SHARE = 0.08
TREND_MIN_DELTA = 0.12
TREND_RISK_DELTA = 0.2
PRICE_PREMIUM_FACTOR = 1.15

NO_RISING_PRODUCTS = "No high-velocity product exceeded the rising-star threshold this month."


@dataclass
class SignalCandidate:
    id: str
    title: str
    summary: str
    severity: Severity
    confidence: float
    score: float

    def to_suggestion(self) -> ProactiveSuggestion:
        return ProactiveSuggestion(
            id=self.id,
            title=self.title,
            summary=self.summary,
            severity=self.severity,
            confidence=round(self.confidence, 2),
        )


@dataclass
class SynthesisSummary:
    proactive: list[ProactiveSuggestion] = field(default_factory=list)
    watchlist: list[str] = field(default_factory=list)


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value * 100:.1f}%"


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


# =============================================================================
# Category Templates
# =============================================================================

def price_volume_imbalance(data: NormalizedCategoryData) -> Optional[SignalCandidate]:
    if not data.type_mix:
        return None
    row = max(data.type_mix, key=lambda item: abs(item.unit_share - item.revenue_share))
    gap = abs(row.unit_share - row.revenue_share)
    if gap < IMBALANCE_MIN_GAP:
        return None
    return SignalCandidate(
        id="price_volume_arbitrage",
        title="Price-Volume Arbitrage Mismatch",
        summary=f"{row.label} has {_signed(row.unit_share)} unit share vs {_signed(row.revenue_share)} revenue share.",
        severity=Severity.RISK if gap >= IMBALANCE_RISK_GAP else Severity.WATCH,
        confidence=_clamp(gap / 0.25, 0.45, 0.95),
        score=gap * 100,
    )


def leader_vulnerability(data: NormalizedCategoryData) -> Optional[SignalCandidate]:
    if len(data.brands) < 3:
        return None
    top3_share = sum(row.share for row in data.brands[:3])
    fragmented = top3_share < FRAGMENTED_TOP3_SHARE
    if fragmented:
        summary = f"Top-3 brands hold only {_signed(top3_share)} share, indicating a fragmented field."
    else:
        summary = f"Top-3 brands hold {_signed(top3_share)} share; leader concentration should still be monitored."
    return SignalCandidate(
        id="leader_vulnerability",
        title="Market Leader Vulnerability",
        summary=summary,
        severity=Severity.WATCH if fragmented else Severity.INFO,
        confidence=0.82 if fragmented else 0.55,
        score=58 if fragmented else 30,
    )


def feature_premium(data: NormalizedCategoryData) -> Optional[SignalCandidate]:
    if not data.feature_premiums:
        return None
    feature = data.feature_premiums[0]
    premium = abs(feature.premium_pct)
    return SignalCandidate(
        id="feature_premium",
        title="Feature Premium Signal",
        summary=(
            f"{feature.feature} shows {_signed(feature.premium_pct)} price premium with "
            f"{_signed(feature.with_feature_revenue_share)} revenue share."
        ),
        severity=Severity.WATCH if premium >= 0.2 else Severity.INFO,
        confidence=_clamp(premium / 0.35, 0.4, 0.92),
        score=premium * 100,
    )


def find_cluster_gap(data: NormalizedCategoryData) -> Optional[dict]:
    """(type, price bucket) cluster with the fewest brands among clusters holding 8%+ of revenue."""
    revenue: dict[tuple[str, str], float] = defaultdict(float)
    brands: dict[tuple[str, str], set[str]] = defaultdict(set)
    labels: dict[tuple[str, str], str] = {}
    for product in data.top_by_revenue:
        key = (normalize_key(product.type), price_bucket(product.price, data.bucket_bounds))
        revenue[key] += product.revenue
        brands[key].add(normalize_key(product.brand))
        labels.setdefault(key, f"{product.type or 'Unknown'} @ {key[1]}")

    ranked = []
    for key, total in revenue.items():
        share = total / data.market_revenue if data.market_revenue > 0 else 0.0
        if share >= CLUSTER_MIN_SHARE:
            ranked.append({"label": labels[key], "share": share, "revenue": total, "brand_count": len(brands[key])})
    ranked.sort(key=lambda entry: (entry["brand_count"], -entry["share"]))
    return ranked[0] if ranked else None


def competitive_cluster_gap(data: NormalizedCategoryData) -> Optional[SignalCandidate]:
    gap = find_cluster_gap(data)
    if gap is None:
        return None
    return SignalCandidate(
        id="cluster_gap",
        title="Competitive Cluster Gap",
        summary=(
            f"{gap['label']} contributes {_signed(gap['share'])} revenue with only "
            f"{gap['brand_count']} active brands in sampled listings."
        ),
        severity=Severity.WATCH if gap["share"] >= 0.12 else Severity.INFO,
        confidence=_clamp(gap["share"] / 0.2, 0.42, 0.85),
        score=gap["share"] * 100,
    )


def trend_reversal(data: NormalizedCategoryData, trend: Optional[TrendContext]) -> Optional[SignalCandidate]:
    if trend is None or trend.previous_revenue <= 0:
        return None
    delta = (data.market_revenue - trend.previous_revenue) / trend.previous_revenue
    if abs(delta) < TREND_MIN_DELTA:
        return None
    return SignalCandidate(
        id="trend_reversal",
        title="Trend Reversal Alert",
        summary=f"Revenue moved {_signed(delta)} vs prior snapshot ({format_currency(data.market_revenue)} current).",
        severity=Severity.RISK if abs(delta) >= TREND_RISK_DELTA else Severity.WATCH,
        confidence=_clamp(abs(delta) / 0.3, 0.5, 0.9),
        score=abs(delta) * 100,
    )


def price_quality_misalignment(data: NormalizedCategoryData) -> Optional[SignalCandidate]:
    price_avg = _average([product.price for product in data.top_by_revenue if product.price > 0])
    rating_avg = _average([product.rating for product in data.top_by_revenue if product.rating > 0])
    misaligned = next(
        (
            brand for brand in data.brands
            if brand.avg_price > price_avg * PRICE_PREMIUM_FACTOR and 0 < brand.avg_rating < rating_avg
        ),
        None,
    )
    if misaligned is None:
        return None
    return SignalCandidate(
        id="price_quality_misalignment",
        title="Brand Price-Quality Misalignment",
        summary=(
            f"{misaligned.brand} is priced above category average but trails rating average "
            f"({misaligned.avg_rating:.2f} vs {rating_avg:.2f})."
        ),
        severity=Severity.WATCH,
        confidence=0.74,
        score=54,
    )


def build_signals(data: NormalizedCategoryData, trend: Optional[TrendContext] = None) -> list[ProactiveSuggestion]:
    """
    Evaluate every category template and keep the three highest scoring.

    Args:
        data: Category view of the selected snapshot.
        trend: Previous-snapshot totals, when a previous snapshot exists.

    Returns:
        Up to three suggestions; ranking scores are not exposed.
    """
    candidates = [
        candidate
        for candidate in (
            price_volume_imbalance(data),
            leader_vulnerability(data),
            feature_premium(data),
            competitive_cluster_gap(data),
            trend_reversal(data, trend),
            price_quality_misalignment(data),
        )
        if candidate is not None
    ]
    candidates.sort(key=lambda candidate: candidate.score, reverse=True)
    logger.debug("Built proactive signals", candidates=[candidate.id for candidate in candidates])
    return [candidate.to_suggestion() for candidate in candidates[:MAX_SIGNALS]]


# =============================================================================
# Snapshot Cards
# =============================================================================

def build_snapshot_suggestions(index: ProductIndex) -> SynthesisSummary:
    """Own-brand performance, competitor movers, biggest risk and watchlist."""
    own_products = [product for product in index.products if index.is_own_brand(product.brand)]
    other_products = [product for product in index.products if not index.is_own_brand(product.brand)]
    summary = SynthesisSummary()

    if own_products:
        own_revenue = sum(product.revenue for product in own_products)
        concentration = own_products[0].revenue / max(1.0, own_revenue)
        summary.proactive.append(ProactiveSuggestion(
            id="monthly-performance",
            title="Monthly Performance Snapshot",
            summary=(
                f"Own brands generated {format_currency(own_revenue)} from {len(own_products)} tracked products. "
                f"Top-SKU concentration is {format_percent(concentration)}."
            ),
            severity=Severity.WATCH if concentration >= 0.55 else Severity.INFO,
            confidence=0.86,
        ))

    movers = sorted(
        (product for product in other_products if (product.revenue_mom or 0) >= 0.5),
        key=lambda product: product.revenue_mom or 0,
        reverse=True,
    )[:2]
    if movers:
        summary.proactive.append(ProactiveSuggestion(
            id="competitive-alert",
            title="Competitive Alert: Who Moved",
            summary="; ".join(
                f"{product.brand} {product.asin} grew {format_percent(product.revenue_mom or 0)} MoM"
                for product in movers
            ),
            severity=Severity.WATCH,
            confidence=0.82,
        ))

    risky = sorted(
        (product for product in own_products if 0 < product.rating < 4.1 and product.revenue > 100_000),
        key=lambda product: product.revenue,
        reverse=True,
    )
    if risky:
        product = risky[0]
        summary.proactive.append(ProactiveSuggestion(
            id="risk-of-month",
            title="Biggest Risk Right Now",
            summary=(
                f"{product.brand} {product.asin} has strong revenue ({format_currency(product.revenue)}) "
                f"but weak rating ({product.rating:.1f})."
            ),
            severity=Severity.RISK,
            confidence=0.78,
        ))

    rising = [
        product for product in index.products
        if (product.revenue_mom or 0) >= 0.25 and product.rank_revenue <= 20
    ][:3]
    summary.watchlist = [
        f"{product.brand} {product.asin} is rising (+{(product.revenue_mom or 0) * 100:.1f}% MoM, rank #{product.rank_revenue})."
        for product in rising
    ] or [NO_RISING_PRODUCTS]

    summary.proactive = summary.proactive[:MAX_SIGNALS]
    summary.watchlist = summary.watchlist[:MAX_WATCHLIST]
    return summary


__all__ = [
    "SignalCandidate",
    "SynthesisSummary",
    "build_signals",
    "build_snapshot_suggestions",
    "find_cluster_gap",
    "NO_RISING_PRODUCTS",
]
