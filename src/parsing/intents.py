"""
Keyword intent classifier and per-intent follow-up questions.

Scoring is additive: every keyword found in the question adds 2 points when
it is longer than five characters and 1 point otherwise; category boosts and
phrase heuristics then add fixed bonuses. Rules are evaluated in declaration
order and ties keep that order.
"""

import re
from typing import Optional

from src.models.schemas import ChatIntent, IntentDetection

# =============================================================================
# Keyword Rules
# =============================================================================

INTENT_RULES: tuple[tuple[ChatIntent, tuple[str, ...]], ...] = (
    (ChatIntent.FASTEST_MOVER, (
        "fastest mover", "fast mover", "moving fastest", "biggest mover", "fastest growth",
        "grew the most", "highest mom", "highest yoy", "growth leader",
    )),
    (ChatIntent.ASIN_HISTORY, (
        "asin history", "top asins", "past performance", "historical performance", "history",
    )),
    (ChatIntent.BRAND_ARCHETYPE, (
        "why is", "performing well", "high price low units", "low price high units", "archetype",
    )),
    (ChatIntent.PRICE_VS_VOLUME_EXPLAINER, (
        "price vs volume", "price-led", "volume-led", "high price", "low price", "units sold",
    )),
    (ChatIntent.MARKET_SIZE, (
        "market size", "total market", "how big", "total revenue", "total units", "tam",
    )),
    (ChatIntent.MARKET_LEADER, (
        "leader", "leading brand", "who is first", "top brand", "rank 1",
    )),
    (ChatIntent.PRICE_RANGE, (
        "price range", "average price", "median price", "asp range", "pricing band",
    )),
    (ChatIntent.TOP_PRODUCTS, (
        "top asin", "top asins", "top 1", "top one", "top product", "top products", "best seller",
        "top 50", "top by revenue", "top by units",
    )),
    (ChatIntent.PRODUCT_TYPE_MIX, (
        "type mix", "product type", "segment mix", "tablet vs handheld", "dongle", "articulation",
    )),
    (ChatIntent.PRICE_VOLUME_TRADEOFF, (
        "price volume", "tradeoff", "value segment", "volume share", "revenue share",
    )),
    (ChatIntent.BRAND_COMPARISON, (
        "compare brand", "brand comparison", "vs", "versus", "benchmark",
    )),
    (ChatIntent.FEATURE_ANALYSIS, (
        "feature", "premium", "with vs without", "laser", "wifi", "visual camera", "true rms",
        "auto-ranging", "magnification", "articulation",
    )),
    (ChatIntent.COMPETITIVE_GAPS, (
        "gap", "whitespace", "opportunity cluster", "under served", "low competition", "opening",
    )),
    (ChatIntent.TRENDS_MOMENTUM, (
        "trend", "momentum", "mom", "yoy", "month over month", "moving",
    )),
    (ChatIntent.RATING_REVIEWS, (
        "rating", "reviews", "star", "review velocity", "quality",
    )),
    (ChatIntent.MARKET_CONCENTRATION, (
        "concentration", "fragmented", "top 3 share", "top 5 share", "dominance",
    )),
    (ChatIntent.SELF_ASSESSMENT, (
        "how did we do", "how are we doing", "innova", "blcktec", "our performance", "trend",
        "asp", "1p", "3p", "top sku",
    )),
    (ChatIntent.COMPETITIVE_BENCHMARKING, (
        "compare", "competitor", "competitors", "what are competitors doing", "competitors doing",
        "competition", "rank", "who gained", "who lost", "autel", "topdon", "ancel", "price move",
        "benchmark", "fastest rank mover", "rank moved most", "biggest rank jump",
    )),
    (ChatIntent.RISK_THREAT, (
        "risk", "worry", "worried", "concern", "concerned", "what should i be worried about",
        "unusual", "alert", "threat", "losing share", "declining", "erosion", "slowing",
        "new entrant",
    )),
    (ChatIntent.GROWTH_OPPORTUNITY, (
        "opportunity", "grow", "growth", "launch", "price tier", "addressable market",
        "move up one rank", "opening", "strategy",
    )),
    (ChatIntent.DATA_CLARIFICATION, (
        "why", "what's included", "what is included", "difference", "how is revenue estimated",
        "actual or estimate", "adjusted report", "explain this number", "definition",
    )),
)

CATEGORY_KEYWORD_BOOSTS: dict[str, tuple[tuple[ChatIntent, tuple[str, ...]], ...]] = {
    "dmm": (
        (ChatIntent.FEATURE_ANALYSIS, ("true rms", "auto ranging", "automotive targeted")),
        (ChatIntent.PRODUCT_TYPE_MIX, ("multimeter", "analyzer")),
    ),
    "borescope": (
        (ChatIntent.FEATURE_ANALYSIS, ("2-way", "4-way", "lens", "display", "cable length")),
        (ChatIntent.PRODUCT_TYPE_MIX, ("articulation", "usb", "handheld")),
    ),
    "thermal_imager": (
        (ChatIntent.FEATURE_ANALYSIS, ("resolution", "super resolution", "laser", "wi-fi", "visual camera")),
        (ChatIntent.PRODUCT_TYPE_MIX, ("dongle", "handheld")),
    ),
    "night_vision": (
        (ChatIntent.FEATURE_ANALYSIS, ("magnification", "night vision", "thermal monocular")),
        (ChatIntent.PRICE_RANGE, ("price point", "budget")),
    ),
}

CATEGORY_BOOST_POINTS = 2

# Stakeholder phrasing that plain keyword matching under-scores: (predicate, intent, bonus)
HEURISTIC_BOOSTS = (
    (
        lambda text: bool(re.search(r"\btop\b(?:\s*\d+)?\b", text))
        and bool(re.search(r"\b(product|products|asin|asins|sku|scanner)\b", text)),
        ChatIntent.TOP_PRODUCTS,
        4,
    ),
    (
        lambda text: bool(re.search(r"\bwhat\s+are\s+competitors?\s+doing\b", text)),
        ChatIntent.COMPETITIVE_BENCHMARKING,
        4,
    ),
    (
        lambda text: bool(re.search(r"\b(what\s+should\s+i\s+be\s+worried\s+about|worried|concerned)\b", text)),
        ChatIntent.RISK_THREAT,
        4,
    ),
    (
        lambda text: bool(re.search(r"\b(fastest mover|moving fastest|biggest mover)\b", text)),
        ChatIntent.FASTEST_MOVER,
        5,
    ),
    (
        lambda text: bool(re.search(r"\b(fastest growth|grew the most|highest mom|highest yoy|growth leader)\b", text)),
        ChatIntent.FASTEST_MOVER,
        5,
    ),
    (
        lambda text: bool(re.search(r"\b(fastest rank mover|rank moved most|biggest rank jump|rank improvement)\b", text)),
        ChatIntent.COMPETITIVE_BENCHMARKING,
        4,
    ),
    (
        lambda text: bool(re.search(
            r"\b(due to price|due to units|driven by price|driven by units|price or units|unit driven|price driven)\b",
            text,
        )),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        5,
    ),
    (
        lambda text: bool(re.search(r"\b(top asins|asin history|past performance|historical performance)\b", text)),
        ChatIntent.ASIN_HISTORY,
        5,
    ),
    (
        lambda text: bool(re.search(r"\b(high price.*low units|low price.*high units|price.?led|volume.?led|price vs volume)\b", text)),
        ChatIntent.PRICE_VS_VOLUME_EXPLAINER,
        5,
    ),
    (
        lambda text: bool(re.search(r"\b(why is .*performing|performing well)\b", text)),
        ChatIntent.BRAND_ARCHETYPE,
        4,
    ),
)


# =============================================================================
# Suggested Follow-ups
# =============================================================================

SUGGESTED_QUESTIONS: dict[ChatIntent, tuple[str, ...]] = {
    ChatIntent.FASTEST_MOVER: (
        "Who is the fastest growth brand this month (MoM)?",
        "Who is the fastest growth brand this month (YoY)?",
        "Who is the fastest rank mover this month?",
    ),
    ChatIntent.ASIN_HISTORY: (
        "Show OTOFIX top ASINs and past performance.",
        "Give me ASIN history for Innova 5610.",
    ),
    ChatIntent.BRAND_ARCHETYPE: (
        "Why is OTOFIX performing well?",
        "Is BLCKTEC more price-led or volume-led this month?",
    ),
    ChatIntent.PRICE_VS_VOLUME_EXPLAINER: (
        "Which brands win from high price but low units?",
        "Which brands win from low price but high units?",
        "Is XTOOL growth driven by more units or higher ASP?",
    ),
    ChatIntent.PRODUCT_COMPETITOR: (
        "What is Innova 5610's biggest competitor this month?",
        "Which products are closest to BLCKTEC's top SKU?",
    ),
    ChatIntent.PRODUCT_TREND: (
        "How did Innova 5610 perform vs last month?",
        "Show trend for a specific ASIN.",
    ),
    ChatIntent.BRAND_HEALTH: (
        "How did Innova do this month?",
        "How did BLCKTEC do this month?",
    ),
    ChatIntent.MARKET_SHIFT: (
        "Which competitors moved share the most this month?",
        "What changed in market ranking this month?",
    ),
    ChatIntent.RISK_SIGNAL: (
        "What is our biggest risk right now?",
        "Which product is most at risk this month?",
    ),
    ChatIntent.OPPORTUNITY_SIGNAL: (
        "Where is the highest-growth opportunity right now?",
        "Which segment has low own share but high market weight?",
    ),
    ChatIntent.MARKET_SIZE: (
        "How big is the market this month in revenue and units?",
        "What is the annualized run rate from this snapshot?",
    ),
    ChatIntent.MARKET_LEADER: (
        "Who is the market leader this month?",
        "What share does the #1 brand hold?",
    ),
    ChatIntent.PRICE_RANGE: (
        "What is the market price range and median price?",
        "Which price tiers contribute most revenue?",
    ),
    ChatIntent.TOP_PRODUCTS: (
        "Show the top products by revenue.",
        "Show the top products by units.",
    ),
    ChatIntent.PRODUCT_TYPE_MIX: (
        "How is revenue split by product type?",
        "Which type leads in units vs revenue?",
    ),
    ChatIntent.PRICE_VOLUME_TRADEOFF: (
        "Where is volume high but revenue share low?",
        "Which types have premium pricing but low unit share?",
    ),
    ChatIntent.BRAND_COMPARISON: (
        "Compare the top two brands on share, units, and pricing.",
        "Which brand is closing the gap fastest?",
    ),
    ChatIntent.FEATURE_ANALYSIS: (
        "What feature premium is visible this month?",
        "Do feature-rich products outperform in revenue share?",
    ),
    ChatIntent.COMPETITIVE_GAPS: (
        "Which clusters are high-revenue with lower competition?",
        "Where is the best whitespace opportunity?",
    ),
    ChatIntent.TRENDS_MOMENTUM: (
        "What changed most versus last month?",
        "Are we seeing trend acceleration or reversal?",
    ),
    ChatIntent.RATING_REVIEWS: (
        "Which products have strong ratings and strong revenue?",
        "Any price-quality mismatch by brand?",
    ),
    ChatIntent.MARKET_CONCENTRATION: (
        "How concentrated is this market right now?",
        "What is top-3 and top-5 share?",
    ),
    ChatIntent.SELF_ASSESSMENT: (
        "How did Innova and BLCKTEC perform this month vs last month?",
        "What percentage of our revenue comes from the top 3 SKUs?",
        "How does our ASP compare with the market average?",
    ),
    ChatIntent.COMPETITIVE_BENCHMARKING: (
        "Who gained the most market share this month?",
        "Where do we rank in revenue and units this month?",
        "Did any competitor make aggressive price moves in our core segments?",
    ),
    ChatIntent.RISK_THREAT: (
        "What is our biggest risk right now?",
        "Are we losing share in any category for 3+ consecutive months?",
        "Did any competitor show breakout growth this month?",
    ),
    ChatIntent.GROWTH_OPPORTUNITY: (
        "Which category is growing fastest where we have low share?",
        "Which price tiers are growing fastest right now?",
        "What would it take to move up one market rank?",
    ),
    ChatIntent.DATA_CLARIFICATION: (
        "How is revenue estimated in this dashboard?",
        "Why did market share move while revenue stayed flat?",
        "What's included in the Other category?",
    ),
    ChatIntent.UNKNOWN: (
        "How did we do this month?",
        "What are competitors doing?",
        "What should I be worried about?",
        "Ask your own question",
    ),
}

DEFAULT_QUESTIONS: tuple[str, ...] = SUGGESTED_QUESTIONS[ChatIntent.UNKNOWN][:3]


# =============================================================================
# Classifier
# =============================================================================

def detect_intent(message: str, category_id: Optional[str] = None) -> IntentDetection:
    """
    Score every intent against the question and pick the best one.

    Args:
        message: Raw question text.
        category_id: Optional category enabling category keyword boosts.

    Returns:
        Top intent with ``confidence = top / max(1, top + second)``, or
        ``unknown`` with zero confidence when nothing scored.
    """
    normalized = message.lower().strip()
    if not normalized:
        return IntentDetection(intent=ChatIntent.UNKNOWN, confidence=0.0)

    scores: dict[ChatIntent, int] = {}
    for intent, keywords in INTENT_RULES:
        scores[intent] = sum(
            2 if len(keyword) > 5 else 1
            for keyword in keywords
            if keyword in normalized
        )

    for intent, terms in CATEGORY_KEYWORD_BOOSTS.get(category_id or "", ()):
        extra = sum(CATEGORY_BOOST_POINTS for term in terms if term in normalized)
        if extra:
            scores[intent] = scores.get(intent, 0) + extra

    for predicate, intent, bonus in HEURISTIC_BOOSTS:
        if predicate(normalized):
            scores[intent] = scores.get(intent, 0) + bonus

    # sorted() is stable, so equal scores keep declaration order
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    top_intent, top_score = ranked[0] if ranked else (ChatIntent.UNKNOWN, 0)
    second_score = ranked[1][1] if len(ranked) > 1 else 0

    if top_score <= 0:
        return IntentDetection(intent=ChatIntent.UNKNOWN, confidence=0.0)

    confidence = min(1.0, top_score / max(1, top_score + second_score))
    return IntentDetection(intent=top_intent, confidence=confidence)


def suggested_questions_for_intent(intent: str) -> list[str]:
    """Fixed follow-up questions for an intent, falling back to the generic set."""
    try:
        key = ChatIntent(intent)
    except ValueError:
        key = ChatIntent.UNKNOWN
    return list(SUGGESTED_QUESTIONS.get(key, SUGGESTED_QUESTIONS[ChatIntent.UNKNOWN]))


__all__ = [
    "INTENT_RULES",
    "CATEGORY_KEYWORD_BOOSTS",
    "SUGGESTED_QUESTIONS",
    "DEFAULT_QUESTIONS",
    "detect_intent",
    "suggested_questions_for_intent",
]
