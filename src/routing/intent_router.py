"""
Intent router: plan + resolution -> analyzer id or clarification.

Routing is an explicit ordered rule list evaluated top to bottom with early
return. Resolver ambiguity is checked first so a product-specific analyzer is
never invoked for an unclear reference; analyzers that need a product fail
closed with a clarification when nothing matched.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from src.models.schemas import AnalyzerId, ChatIntent, QueryPlan, TargetLevel
from src.parsing.query_parser import FASTEST_GROWTH, FASTEST_RANK_MOVER, GROWTH_DRIVER, GROWTH_WORD, PRICE_TIER
from src.resolution.entity_resolver import EntityResolution
from src.utils.logger import get_logger

logger = get_logger(__name__)

PRODUCT_CLARIFICATION = (
    "Which product should I compare? You can provide ASIN, for example: 'Compare B08XYZ1234 competitors'."
)

# Analyzers that cannot run without a resolved product
PRODUCT_REQUIRED: frozenset[str] = frozenset({AnalyzerId.PRODUCT_COMPETITOR.value})


@dataclass(frozen=True)
class RouteDecision:
    analyzer: AnalyzerId
    clarification_question: Optional[str] = None
    rule: str = ""

    @property
    def needs_clarification(self) -> bool:
        return self.clarification_question is not None


RouteFn = Callable[[QueryPlan, EntityResolution], Optional[RouteDecision]]


def _has(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


RANK_MOVER_OR_SHIFT = _has(
    r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement|rank mover"
    r"|closing the gap fastest|rank shifts?)\b"
)


# =============================================================================
# Forced Analyzer Ladder
# =============================================================================

# (name, predicate over (intent, normalized text), analyzer)
FORCED_ANALYZER_LADDER: tuple[tuple[str, Callable[[str, str], bool], AnalyzerId], ...] = (
    ("price_tier_growth", lambda intent, text: PRICE_TIER(text) and GROWTH_WORD(text), AnalyzerId.PRICE_RANGE),
    (
        "segment_priority",
        lambda intent, text: _has(r"\b(product should we prioritize|prioritize in this segment|prioritise in this segment)\b")(text),
        AnalyzerId.OPPORTUNITY_SIGNAL,
    ),
    (
        "competitive_density",
        lambda intent, text: _has(r"\b(lower competitive density|competitive density|lower competition)\b")(text),
        AnalyzerId.COMPETITIVE_GAPS,
    ),
    (
        "segment_competitors",
        lambda intent, text: _has(r"\b(strongest competitors|top competitors|main competitors)\b")(text)
        and _has(r"\b(segment|type|tier)\b")(text),
        AnalyzerId.BRAND_COMPARISON,
    ),
    (
        "momentum",
        lambda intent, text: _has(
            r"\b(rising stars?|rising fastest|strongest momentum|trend acceleration|trend reversal|rank shifts?)\b"
        )(text),
        AnalyzerId.TRENDS_MOMENTUM,
    ),
    (
        "growth_drivers",
        lambda intent, text: _has(r"\b(driving most of this growth|drivers? of growth|what drives growth)\b")(text),
        AnalyzerId.GROWTH_DRIVER,
    ),
    ("fastest_growth", lambda intent, text: FASTEST_GROWTH(text) or _has(r"\bwho grew\b")(text), AnalyzerId.FASTEST_GROWTH),
    ("fastest_rank_mover", lambda intent, text: FASTEST_RANK_MOVER(text), AnalyzerId.FASTEST_RANK_MOVER),
    ("growth_driver", lambda intent, text: GROWTH_DRIVER(text), AnalyzerId.GROWTH_DRIVER),
    (
        "top_products",
        lambda intent, text: intent == ChatIntent.TOP_PRODUCTS
        or _has(r"\b(top sku|top\s*(1|one)\s*(sku|product|asin|scanner)|top product|best seller)\b")(text),
        AnalyzerId.TOP_PRODUCTS,
    ),
    (
        "fastest_mover",
        lambda intent, text: intent == ChatIntent.FASTEST_MOVER
        or _has(r"\b(fastest mover|moving fastest|biggest mover)\b")(text),
        AnalyzerId.FASTEST_GROWTH,
    ),
    (
        "asin_history",
        lambda intent, text: intent == ChatIntent.ASIN_HISTORY
        or _has(r"\b(top asins|past performance|asin history|history)\b")(text),
        AnalyzerId.ASIN_HISTORY,
    ),
    (
        "price_vs_volume",
        lambda intent, text: intent == ChatIntent.PRICE_VS_VOLUME_EXPLAINER
        or _has(r"\b(high price.*low units|low price.*high units|price led|volume led|price vs volume)\b")(text),
        AnalyzerId.PRICE_VS_VOLUME_EXPLAINER,
    ),
    (
        "brand_archetype",
        lambda intent, text: intent == ChatIntent.BRAND_ARCHETYPE
        or _has(r"\b(why is .*performing|brand archetype)\b")(text),
        AnalyzerId.BRAND_ARCHETYPE,
    ),
    (
        "product_competitor",
        lambda intent, text: intent == ChatIntent.PRODUCT_COMPETITOR
        or _has(r"\b(biggest competitor|closest competitor|competes with)\b")(text),
        AnalyzerId.PRODUCT_COMPETITOR,
    ),
    (
        "product_trend",
        lambda intent, text: intent == ChatIntent.PRODUCT_TREND
        or _has(r"\b(product trend|trend for|performance of)\b")(text),
        AnalyzerId.PRODUCT_TREND,
    ),
)

# Intents whose analyzer carries the same name in the ladder's tail
DIRECT_INTENTS: tuple[ChatIntent, ...] = (
    ChatIntent.BRAND_HEALTH,
    ChatIntent.MARKET_SHIFT,
    ChatIntent.RISK_SIGNAL,
    ChatIntent.OPPORTUNITY_SIGNAL,
    ChatIntent.TRENDS_MOMENTUM,
    ChatIntent.RATING_REVIEWS,
    ChatIntent.BRAND_COMPARISON,
    ChatIntent.FEATURE_ANALYSIS,
    ChatIntent.DATA_CLARIFICATION,
    ChatIntent.PRICE_RANGE,
)

# Legacy stakeholder intents mapped onto analyzers
INTENT_ANALYZER_MAP: dict[str, AnalyzerId] = {
    ChatIntent.FASTEST_MOVER.value: AnalyzerId.FASTEST_GROWTH,
    ChatIntent.SELF_ASSESSMENT.value: AnalyzerId.BRAND_HEALTH,
    ChatIntent.COMPETITIVE_BENCHMARKING.value: AnalyzerId.MARKET_SHIFT,
    ChatIntent.RISK_THREAT.value: AnalyzerId.RISK_SIGNAL,
    ChatIntent.GROWTH_OPPORTUNITY.value: AnalyzerId.OPPORTUNITY_SIGNAL,
}


def force_analyzer(intent: str, normalized: str) -> Optional[tuple[str, AnalyzerId]]:
    """First ladder step matching the intent or phrasing."""
    for name, matches, analyzer in FORCED_ANALYZER_LADDER:
        if matches(intent, normalized):
            return name, analyzer
    for direct in DIRECT_INTENTS:
        if intent == direct:
            return f"intent:{direct.value}", AnalyzerId(direct.value)
    return None


def map_intent_to_analyzer(intent: str) -> AnalyzerId:
    """Generic intent -> analyzer map used when no specific rule fired."""
    if intent in INTENT_ANALYZER_MAP:
        return INTENT_ANALYZER_MAP[intent]
    try:
        return AnalyzerId(intent)
    except ValueError:
        return AnalyzerId.UNKNOWN


def is_type_scoped(plan: QueryPlan) -> bool:
    return plan.target_level == TargetLevel.TYPE or plan.type_scope is not None


# =============================================================================
# Route Rules (evaluated top to bottom)
# =============================================================================

def _ambiguity(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    if resolution.ambiguous and resolution.clarification_question:
        return RouteDecision(AnalyzerId.UNKNOWN, resolution.clarification_question)
    return None


def _top_products(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    if plan.intent == ChatIntent.TOP_PRODUCTS:
        return RouteDecision(AnalyzerId.TOP_PRODUCTS)
    return None


def _price_tier_growth(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    if PRICE_TIER(plan.normalized) and GROWTH_WORD(plan.normalized):
        return RouteDecision(AnalyzerId.PRICE_RANGE)
    return None


def _growth_driver(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    if GROWTH_DRIVER(plan.normalized):
        return RouteDecision(AnalyzerId.GROWTH_DRIVER)
    return None


def _fastest_rank_mover(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    if RANK_MOVER_OR_SHIFT(plan.normalized):
        return RouteDecision(AnalyzerId.FASTEST_RANK_MOVER)
    return None


def _fastest_growth(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    if FASTEST_GROWTH(plan.normalized) or re.search(r"\bwho grew\b", plan.normalized):
        if is_type_scoped(plan):
            return RouteDecision(AnalyzerId.TYPE_GROWTH)
        return RouteDecision(AnalyzerId.FASTEST_GROWTH)
    return None


def _forced_ladder(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    forced = force_analyzer(plan.intent, plan.normalized)
    if forced is None:
        return None
    name, analyzer = forced
    if analyzer.value in PRODUCT_REQUIRED and not resolution.matched_products:
        return RouteDecision(AnalyzerId.UNKNOWN, PRODUCT_CLARIFICATION, rule=name)
    return RouteDecision(analyzer, rule=name)


def _generic_map(plan: QueryPlan, resolution: EntityResolution) -> Optional[RouteDecision]:
    return RouteDecision(map_intent_to_analyzer(plan.intent))


ROUTE_RULES: tuple[tuple[str, RouteFn], ...] = (
    ("ambiguity", _ambiguity),
    ("top_products", _top_products),
    ("price_tier_growth", _price_tier_growth),
    ("growth_driver", _growth_driver),
    ("fastest_rank_mover", _fastest_rank_mover),
    ("fastest_growth", _fastest_growth),
    ("forced_ladder", _forced_ladder),
    ("generic_map", _generic_map),
)


def route_intent(plan: QueryPlan, resolution: EntityResolution) -> RouteDecision:
    """
    Select one analyzer for the request.

    Args:
        plan: Parsed question.
        resolution: Resolver output for the same question.

    Returns:
        RouteDecision; when ``clarification_question`` is set the caller
        must not run the analyzer.
    """
    for name, rule in ROUTE_RULES:
        decision = rule(plan, resolution)
        if decision is None:
            continue
        if not decision.rule:
            decision = RouteDecision(decision.analyzer, decision.clarification_question, rule=name)
        logger.debug(
            "Routed request",
            analyzer=decision.analyzer.value,
            intent=plan.intent,
            rule=decision.rule,
            clarification=decision.needs_clarification,
        )
        return decision
    return RouteDecision(AnalyzerId.UNKNOWN, rule="none")


__all__ = [
    "RouteDecision",
    "ROUTE_RULES",
    "FORCED_ANALYZER_LADDER",
    "PRODUCT_CLARIFICATION",
    "route_intent",
    "force_analyzer",
    "map_intent_to_analyzer",
]
