"""
Question parser producing an immutable QueryPlan.

Intent comes from an ordered list of forced-intent rules (most specific
phrasing first, first match wins) with the keyword classifier as fallback.
Side-channel hints (ranking metric, windows, type scope, explicit brands,
target level) are extracted independently; each fills its own plan field.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from src.models.schemas import (
    ChatIntent,
    GrowthWindow,
    HistoricalWindow,
    ProductTypeScope,
    QueryPlan,
    RankingMetric,
    RankingTarget,
    ScopeMode,
    TargetLevel,
)
from src.parsing.intents import detect_intent
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _has(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


def _all(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda text: all(predicate(text) for predicate in predicates)


def _without(predicate: Callable[[str], bool], excluded: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda text: predicate(text) and not excluded(text)


@dataclass(frozen=True)
class IntentRule:
    """One forced-intent rule: when ``matches`` holds, the intent wins."""
    name: str
    matches: Callable[[str], bool]
    intent: ChatIntent
    confidence: float


# =============================================================================
# Shared Phrase Predicates
# =============================================================================

PRICE_TIER = _has(r"\b(price tier|price tiers|pricing tier|pricing tiers)\b")
GROWTH_WORD = _has(r"\b(fastest|grow|growth|rising|increase)\b")
FASTEST_GROWTH = _has(
    r"\b(fastest growth|growing fastest|grew fastest|grew the most|highest mom|highest yoy"
    r"|fastest growing|growth leader)\b"
)
FASTEST_RANK_MOVER = _has(
    r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement|rank mover"
    r"|closing the gap fastest)\b"
)
GROWTH_DRIVER = _has(
    r"\b(due to price|due to units|driven by price|driven by units|price or units|unit driven|price driven)\b"
)
PRODUCT_REFERENCE = _has(r"\b(asin|sku|model|b0[a-z0-9]{8})\b")


# =============================================================================
# Forced Intent Rules (evaluated top to bottom)
# =============================================================================

FORCED_INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule("price_tier_growth", _all(PRICE_TIER, GROWTH_WORD), ChatIntent.PRICE_RANGE, 0.93),
    IntentRule(
        "segment_priority",
        _has(r"\b(product should we prioritize|prioritize in this segment|prioritise in this segment)\b"),
        ChatIntent.OPPORTUNITY_SIGNAL,
        0.88,
    ),
    IntentRule(
        "competitive_density",
        _has(r"\b(lower competitive density|competitive density|lower competition)\b"),
        ChatIntent.COMPETITIVE_GAPS,
        0.86,
    ),
    IntentRule(
        "segment_competitors",
        _all(
            _has(r"\b(strongest competitors|top competitors|main competitors)\b"),
            _has(r"\b(segment|type|tier)\b"),
        ),
        ChatIntent.BRAND_COMPARISON,
        0.88,
    ),
    IntentRule(
        "growth_drivers",
        _has(r"\b(driving most of this growth|drivers? of growth|what is driving growth|what drives growth)\b"),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        0.9,
    ),
    IntentRule(
        "momentum",
        _has(r"\b(rising stars?|rising fastest|strongest momentum|trend acceleration|trend reversal|rank shifts?)\b"),
        ChatIntent.TRENDS_MOMENTUM,
        0.86,
    ),
    IntentRule(
        "closest_competitor",
        _has(r"\b(biggest competitor|main competitor|closest competitor|compete against|alternative to)\b"),
        ChatIntent.PRODUCT_COMPETITOR,
        0.92,
    ),
    IntentRule(
        "top_product",
        _has(r"\b(top sku|top\s*(1|one)\s*(sku|product|asin|scanner)|top product|best seller)\b|#1 product\b"),
        ChatIntent.TOP_PRODUCTS,
        0.95,
    ),
    IntentRule(
        "brand_performance",
        _without(
            _has(r"\b(how did .* perform|how .* performed|performance of .* last month|how is .* performing)\b"),
            PRODUCT_REFERENCE,
        ),
        ChatIntent.BRAND_HEALTH,
        0.9,
    ),
    IntentRule(
        "fastest_mover",
        _has(r"\b(fastest mover|fast mover|moving fastest|biggest mover)\b"),
        ChatIntent.FASTEST_MOVER,
        0.9,
    ),
    IntentRule("fastest_growth", FASTEST_GROWTH, ChatIntent.FASTEST_MOVER, 0.9),
    IntentRule("fastest_rank_mover", FASTEST_RANK_MOVER, ChatIntent.MARKET_SHIFT, 0.9),
    IntentRule("growth_driver", GROWTH_DRIVER, ChatIntent.PRICE_VS_VOLUME_EXPLAINER, 0.92),
    IntentRule(
        "asin_history",
        _has(r"\b(top asins|asin history|past performance|historical performance|history of)\b"),
        ChatIntent.ASIN_HISTORY,
        0.88,
    ),
    IntentRule(
        "price_vs_volume",
        _has(r"\b(high price.*low units|low price.*high units|price led|volume led|price vs volume)\b"),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        0.9,
    ),
    IntentRule(
        "brand_archetype",
        _has(r"\b(why is .*performing|why .*performing well|how is .*performing)\b"),
        ChatIntent.BRAND_ARCHETYPE,
        0.83,
    ),
    IntentRule(
        "product_trend",
        _has(r"\b(product trend|trend for|how .*perform|performance of|grew|declined)\b"),
        ChatIntent.PRODUCT_TREND,
        0.84,
    ),
    IntentRule(
        "brand_health",
        _has(r"\b(brand health|how did (innova|blcktec) do|our brand)\b"),
        ChatIntent.BRAND_HEALTH,
        0.88,
    ),
    IntentRule(
        "market_shift",
        _has(r"\b(shift|moving|moved|who moved|market changed)\b"),
        ChatIntent.MARKET_SHIFT,
        0.8,
    ),
    IntentRule("risk", _has(r"\b(risk|worried|threat|alert)\b"), ChatIntent.RISK_SIGNAL, 0.82),
    IntentRule(
        "opportunity",
        _has(r"\b(opportunity|whitespace|where to grow|opening)\b"),
        ChatIntent.OPPORTUNITY_SIGNAL,
        0.82,
    ),
)

# Brand tokens recognized without an index: (brand key, pattern)
KNOWN_BRAND_PATTERNS: tuple[tuple[str, re.Pattern], ...] = tuple(
    (key, re.compile(pattern))
    for key, pattern in (
        ("innova", r"\binnova\b"),
        ("blcktec", r"\bblcktec\b|\bblck\s*tek\b|\bblacktec\b"),
        ("topdon", r"\btopdon\b"),
        ("xtool", r"\bxtool\b"),
        ("otofix", r"\botofix\b"),
        ("autel", r"\bautel\b"),
        ("ancel", r"\bancel\b"),
        ("foxwell", r"\bfoxwell\b"),
        ("icarsoft", r"\bicarsoft\b"),
        ("obdlink", r"\bobdlink\b"),
        ("bluedriver", r"\bbluedriver\b|\bblue driver\b"),
    )
)

OWN_BRAND_PRONOUNS = re.compile(r"\b(our|ours|we|us)\b")
ALL_BRANDS_PHRASES = re.compile(r"\b(all brands|overall market|across brands|entire market)\b")
# Product codes always carry at least one digit; plain words of the same length do not count
ASIN_LIKE_TOKEN = re.compile(r"\b(?=[a-z0-9]*\d)[a-z0-9]{8,10}\b")


def match_forced_intent(normalized: str) -> Optional[IntentRule]:
    """First forced-intent rule whose phrasing matches, if any."""
    for rule in FORCED_INTENT_RULES:
        if rule.matches(normalized):
            return rule
    return None


# =============================================================================
# Side-channel Hints
# =============================================================================

def infer_ranking_metric(normalized: str) -> RankingMetric:
    if re.search(r"\b(unit|units|volume)\b", normalized):
        return RankingMetric.UNITS
    return RankingMetric.REVENUE


def infer_ranking_target(normalized: str, metric: RankingMetric) -> RankingTarget:
    if re.search(r"\b(units rank|rank by units|unit rank)\b", normalized):
        return RankingTarget.UNITS_RANK
    if re.search(r"\b(revenue rank|rank by revenue|sales rank)\b", normalized):
        return RankingTarget.REVENUE_RANK
    if re.search(r"\b(overall rank|overall ranking)\b", normalized):
        return RankingTarget.OVERALL_RANK
    return RankingTarget.UNITS_RANK if metric == RankingMetric.UNITS else RankingTarget.REVENUE_RANK


def infer_growth_window(normalized: str) -> GrowthWindow:
    if re.search(r"\b(mom.*yoy|yoy.*mom|month over month.*year over year|both)\b", normalized):
        return GrowthWindow.BOTH
    if re.search(r"\b(yoy|year over year|same month last year)\b", normalized):
        return GrowthWindow.YOY
    return GrowthWindow.MOM


def infer_historical_window(normalized: str) -> HistoricalWindow:
    if re.search(r"\b(all time|full history|entire history)\b", normalized):
        return HistoricalWindow.ALL
    if re.search(r"\b12\s*(m|mo|month)|12-month|12 month|1 year|one year|yoy\b", normalized):
        return HistoricalWindow.TWELVE_MONTHS
    if re.search(r"\b6\s*(m|mo|month)|6-month|6 month\b", normalized):
        return HistoricalWindow.SIX_MONTHS
    if re.search(r"\b3\s*(m|mo|month)|3-month|3 month|quarter\b", normalized):
        return HistoricalWindow.THREE_MONTHS
    if re.search(r"\b(last month|mom|month over month|vs last)\b", normalized):
        return HistoricalWindow.ONE_MONTH
    return HistoricalWindow.TWELVE_MONTHS


def infer_type_scope(normalized: str) -> Optional[ProductTypeScope]:
    if re.search(r"\btablets?\b", normalized):
        return ProductTypeScope.TABLET
    if re.search(r"\bhandhelds?\b", normalized):
        return ProductTypeScope.HANDHELD
    if re.search(r"\bdongles?\b", normalized):
        return ProductTypeScope.DONGLE
    if re.search(r"\bother tools?\b", normalized):
        return ProductTypeScope.OTHER_TOOLS
    return None


def infer_explicit_brands(normalized: str) -> tuple[str, ...]:
    return tuple(key for key, pattern in KNOWN_BRAND_PATTERNS if pattern.search(normalized))


def infer_target_level(
    normalized: str,
    scope_brands: tuple[str, ...],
    type_scope: Optional[ProductTypeScope],
) -> TargetLevel:
    """Type beats market beats ASIN beats brand."""
    if type_scope:
        return TargetLevel.TYPE
    if re.search(r"\bmarket|overall|across all brands|entire market\b", normalized):
        return TargetLevel.MARKET
    if ASIN_LIKE_TOKEN.search(normalized) or re.search(r"\b(asin|sku|model|product)\b", normalized):
        return TargetLevel.ASIN
    return TargetLevel.BRAND


# =============================================================================
# Parser
# =============================================================================

def parse_query(message: str, category_id: Optional[str] = None) -> QueryPlan:
    """
    Parse a question into a QueryPlan. Never raises.

    Args:
        message: Raw question text.
        category_id: Category used for keyword boosts in the fallback classifier.

    Returns:
        Plan with intent, confidence and every hint populated.
    """
    normalized = (message or "").lower().strip()
    forced = match_forced_intent(normalized)
    if forced is not None:
        intent, confidence = forced.intent, forced.confidence
    else:
        detected = detect_intent(normalized, category_id)
        intent, confidence = detected.intent, detected.confidence

    metric = infer_ranking_metric(normalized)
    type_scope = infer_type_scope(normalized)
    scope_brands = infer_explicit_brands(normalized)

    plan = QueryPlan(
        raw=message or "",
        normalized=normalized,
        intent=intent,
        confidence=confidence,
        scope_mode=ScopeMode.EXPLICIT_BRAND if scope_brands else None,
        scope_brands=scope_brands,
        include_own_brands=OWN_BRAND_PRONOUNS.search(normalized) is not None,
        mentions_all_brands=ALL_BRANDS_PHRASES.search(normalized) is not None,
        ranking_metric=metric,
        ranking_target=infer_ranking_target(normalized, metric),
        historical_window=infer_historical_window(normalized),
        growth_window=infer_growth_window(normalized),
        target_level=infer_target_level(normalized, scope_brands, type_scope),
        type_scope=type_scope,
        compare_to_last_month=re.search(r"\b(last month|mom|month over month|vs last)\b", normalized) is not None,
        compare_to_market=re.search(r"\b(vs market|market average|market share|market)\b", normalized) is not None,
        requires_type_scope=bool(type_scope) or re.search(r"\b(type|segment)\b", normalized) is not None,
        requires_price_scope=re.search(r"\b(price|tier|budget|premium)\b|\$", normalized) is not None,
    )

    logger.debug(
        "Parsed question",
        intent=plan.intent,
        confidence=round(plan.confidence, 3),
        forced_rule=forced.name if forced else None,
        target_level=plan.target_level,
    )
    return plan


__all__ = [
    "IntentRule",
    "FORCED_INTENT_RULES",
    "KNOWN_BRAND_PATTERNS",
    "match_forced_intent",
    "infer_ranking_metric",
    "infer_ranking_target",
    "infer_growth_window",
    "infer_historical_window",
    "infer_type_scope",
    "infer_explicit_brands",
    "infer_target_level",
    "parse_query",
]
