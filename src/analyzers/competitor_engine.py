"""
Closest-competitor scoring for a single product.

Candidates come from a price-windowed pool of same-type products (or the full
catalog when the type is sparse), are scored on six weighted similarity terms
and may receive a rising-star boost before the final ranking.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from src.resolution.product_index import IndexedProduct, ProductIndex
from src.utils.formatters import normalize_key
from src.utils.logger import get_logger

logger = get_logger(__name__)

WEIGHTS: dict[str, float] = {
    "price": 25,
    "type": 25,
    "revenue": 20,
    "units": 10,
    "rating": 10,
    "momentum": 10,
}

MAX_CANDIDATES = 3
MIN_SAME_TYPE_POOL = 4
MIN_REVENUE_SHARE_OF_TARGET = 0.05
RISING_STAR_MIN_GROWTH = 0.2
RISING_STAR_MAX_BOOST = 8.0

DEFAULT_PRICE_WINDOW_PCT = 0.20
DEFAULT_PRICE_WINDOW_ABS = 120.0
DEFAULT_MIN_REVENUE = 10_000.0


@dataclass
class CompetitorCandidate:
    product: IndexedProduct
    score: float
    evidence: list[str] = field(default_factory=list)


@dataclass
class CompetitorResult:
    target: IndexedProduct
    candidates: list[CompetitorCandidate]
    assumptions: list[str]
    confidence: float
    pool_size: int = 0


# =============================================================================
# Similarity Terms
# =============================================================================

def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def similarity_ratio(a: float, b: float) -> float:
    """``1 - |a-b| / max(a,b)``; 0 when either side is not positive."""
    if a <= 0 or b <= 0:
        return 0.0
    return clamp(1 - abs(a - b) / max(a, b), 0.0, 1.0)


def type_similarity(target_type: str, candidate_type: str) -> float:
    left = normalize_key(target_type)
    right = normalize_key(candidate_type)
    if left == right:
        return 1.0
    if not left or not right:
        return 0.0
    if left in right or right in left:
        return 0.65
    return 0.2


def rating_score(target_rating: float, candidate_rating: float) -> float:
    if target_rating <= 0 or candidate_rating <= 0:
        return 0.5
    return clamp(0.6 + (candidate_rating - target_rating) / 2, 0.0, 1.0)


def momentum_score(target: Optional[float], candidate: Optional[float]) -> float:
    if target is None or candidate is None:
        return 0.5
    return clamp(1 - abs(target - candidate), 0.0, 1.0)


def format_signed(value: float) -> str:
    if not math.isfinite(value):
        return "0"
    rounded = int(round(value))
    return f"{'+' if rounded >= 0 else ''}{rounded:,}"


# =============================================================================
# Scoring
# =============================================================================

def score_candidate(target: IndexedProduct, candidate: IndexedProduct) -> CompetitorCandidate:
    score = (
        similarity_ratio(target.price, candidate.price) * WEIGHTS["price"]
        + type_similarity(target.type, candidate.type) * WEIGHTS["type"]
        + similarity_ratio(target.revenue, candidate.revenue) * WEIGHTS["revenue"]
        + similarity_ratio(target.units, candidate.units) * WEIGHTS["units"]
        + rating_score(target.rating, candidate.rating) * WEIGHTS["rating"]
        + momentum_score(target.revenue_mom, candidate.revenue_mom) * WEIGHTS["momentum"]
    )
    evidence = [
        f"Price: {format_signed(candidate.price - target.price)} vs target "
        f"({candidate.price:.0f} vs {target.price:.0f}).",
        f"Revenue: {format_signed(candidate.revenue - target.revenue)} monthly delta.",
        f"Units: {format_signed(candidate.units - target.units)} monthly delta.",
        f"Rating: {(candidate.rating or 0):.1f} vs {(target.rating or 0):.1f}.",
    ]
    return CompetitorCandidate(product=candidate, score=clamp(score, 0.0, 100.0), evidence=evidence)


def is_rank_improving(product: IndexedProduct) -> bool:
    if len(product.history) < 2:
        return False
    current, previous = product.history[-1], product.history[-2]
    if current.rank_revenue is None or previous.rank_revenue is None:
        return False
    return current.rank_revenue < previous.rank_revenue


def rising_star_boost(product: IndexedProduct) -> float:
    growth = product.revenue_mom or 0.0
    if growth < RISING_STAR_MIN_GROWTH or not is_rank_improving(product):
        return 0.0
    return clamp(growth * 20, 0.0, RISING_STAR_MAX_BOOST)


def compute_confidence(target: IndexedProduct, candidate_count: int, top_count: int) -> float:
    score = 0.45
    if target.type and normalize_key(target.type) != "unknown":
        score += 0.15
    if target.price > 0 and target.revenue > 0 and target.units > 0:
        score += 0.15
    if candidate_count >= 5:
        score += 0.15
    if top_count >= 3:
        score += 0.1
    return clamp(score, 0.0, 1.0)


def _within_price_window(target: IndexedProduct, item: IndexedProduct, window_pct: float, window_abs: float) -> bool:
    delta = abs(item.price - target.price)
    relative = delta / target.price if target.price > 0 else 1.0
    return relative <= window_pct or delta <= window_abs


def find_closest_competitors(
    index: ProductIndex,
    target: IndexedProduct,
    include_same_brand: bool = False,
    price_window_pct: float = DEFAULT_PRICE_WINDOW_PCT,
    price_window_abs: float = DEFAULT_PRICE_WINDOW_ABS,
    min_revenue: float = DEFAULT_MIN_REVENUE,
) -> CompetitorResult:
    """
    Rank the closest competitors of ``target``.

    Args:
        index: Product index of the selected snapshot.
        target: Product to find competitors for.
        include_same_brand: Keep products of the target's own brand.
        price_window_pct: Relative price window around the target.
        price_window_abs: Absolute price window around the target.
        min_revenue: Revenue floor; the effective floor is the larger of this
            and 5% of the target's revenue.

    Returns:
        CompetitorResult with at most three candidates sorted by final score.
    """
    target_type = normalize_key(target.type)
    same_type = [item for item in index.products if normalize_key(item.type) == target_type]
    pool = same_type if len(same_type) >= MIN_SAME_TYPE_POOL else index.products

    candidates = [
        item for item in pool
        if item.key != target.key
        and (include_same_brand or item.brand_key != target.brand_key)
        and item.revenue > 0
        and item.price > 0
        and _within_price_window(target, item, price_window_pct, price_window_abs)
    ]

    revenue_floor = max(min_revenue, target.revenue * MIN_REVENUE_SHARE_OF_TARGET)
    filtered = [item for item in candidates if item.revenue >= revenue_floor]

    scored = []
    for item in filtered:
        candidate = score_candidate(target, item)
        boost = rising_star_boost(item)
        if boost > 0:
            candidate.score = clamp(candidate.score + boost, 0.0, 100.0)
            candidate.evidence.append(
                f"Rising-star boost: +{boost:.1f} (strong MoM growth and improving rank)."
            )
        scored.append(candidate)
    scored.sort(key=lambda candidate: candidate.score, reverse=True)
    top = scored[:MAX_CANDIDATES]

    pct_label = f"{price_window_pct * 100:.0f}%"
    abs_label = f"${price_window_abs:.0f}"
    assumptions = [
        f"Candidates are restricted to nearby price range (±{pct_label} or ±{abs_label}).",
        "Type match is prioritized; when type coverage is sparse, fallback pool expands to all products.",
        "Scores combine similarity and momentum, not absolute market leadership.",
    ]

    logger.debug(
        "Scored competitors",
        target=target.asin,
        pool=len(pool),
        filtered=len(filtered),
        returned=len(top),
    )
    return CompetitorResult(
        target=target,
        candidates=top,
        assumptions=assumptions,
        confidence=compute_confidence(target, len(filtered), len(top)),
        pool_size=len(filtered),
    )


__all__ = [
    "WEIGHTS",
    "CompetitorCandidate",
    "CompetitorResult",
    "find_closest_competitors",
    "score_candidate",
    "rising_star_boost",
    "compute_confidence",
    "similarity_ratio",
    "type_similarity",
    "rating_score",
    "momentum_score",
]
