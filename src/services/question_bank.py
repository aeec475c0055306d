"""
Category question bank.

Suggested questions are grouped per category and per intent. The chat core
uses the bank for starter questions and for the model tool
``get_starter_questions``.
"""

from typing import Optional, Sequence

from src.models.schemas import ChatIntent

DEFAULT_CATEGORY = "code_reader_scanner"

DEFAULT_QUESTIONS: list[str] = [
    "How big is this market this month and who is leading?",
    "Which products drive the most revenue right now?",
    "What is the biggest competitive risk this month?",
]

# Intents the starter bank is allowed to draw from, in display order.
STARTER_CAPABILITIES: list[str] = [
    ChatIntent.MARKET_SIZE.value,
    ChatIntent.MARKET_LEADER.value,
    ChatIntent.PRICE_RANGE.value,
    ChatIntent.TOP_PRODUCTS.value,
    ChatIntent.PRODUCT_TYPE_MIX.value,
    ChatIntent.PRICE_VOLUME_TRADEOFF.value,
    ChatIntent.BRAND_COMPARISON.value,
    ChatIntent.FEATURE_ANALYSIS.value,
    ChatIntent.COMPETITIVE_GAPS.value,
    ChatIntent.TRENDS_MOMENTUM.value,
    ChatIntent.RATING_REVIEWS.value,
    ChatIntent.MARKET_CONCENTRATION.value,
    ChatIntent.SELF_ASSESSMENT.value,
    ChatIntent.COMPETITIVE_BENCHMARKING.value,
    ChatIntent.RISK_THREAT.value,
    ChatIntent.GROWTH_OPPORTUNITY.value,
    ChatIntent.DATA_CLARIFICATION.value,
]

MAX_SUGGESTED = 6
MAX_STARTER = 8


# =============================================================================
# Category Banks
# =============================================================================

CATEGORY_BANK: dict[str, dict[str, list[str]]] = {
    "dmm": {
        "market_size": ["What is the total DMM market size this month (revenue + units)?"],
        "market_leader": ["Which DMM brand leads in revenue share this month?"],
        "top_products": ["Which DMM SKUs are top by revenue and top by units?"],
        "feature_analysis": [
            "What premium is associated with true-RMS or automotive-targeted DMM features?",
            "Do rechargeable DMM products command higher prices?",
        ],
        "brand_comparison": ["Compare Innova vs Fluke performance this month."],
        "rating_reviews": ["Which DMM brands have strong ratings but weak price realization?"],
    },
    "borescope": {
        "market_size": ["How large is the borescope market this month?"],
        "price_range": ["What is the borescope price range and median price?"],
        "product_type_mix": ["How is borescope demand split across articulation vs USB vs handheld types?"],
        "feature_analysis": [
            "Is there a measurable premium for 2-way/4-way articulation and larger display sizes?",
        ],
        "competitive_gaps": ["Where are the high-revenue borescope clusters with lower competition?"],
    },
    "thermal_imager": {
        "market_size": ["How large is the thermal imager market this month?"],
        "product_type_mix": ["How is revenue split across dongle vs handheld thermal tools?"],
        "feature_analysis": [
            "What premium do features like laser, Wi-Fi, or visual camera add in thermal imagers?",
            "How does super-resolution availability affect price and revenue share?",
        ],
        "brand_comparison": ["Compare TOPDON vs FLIR on share, price, and ratings."],
    },
    "night_vision": {
        "market_size": ["What is the night vision market size and who leads this month?"],
        "top_products": ["Which night vision ASINs lead by revenue vs units?"],
        "market_concentration": ["How concentrated is the night vision market (top-3 share)?"],
        "price_volume_tradeoff": ["Are lower-price products dominating volume in night vision?"],
    },
    "code_reader_scanner": {
        "self_assessment": [
            "How did Innova/BLCKTEC perform this month vs last month?",
            "What is our revenue, units, and share trend over the last 6-12 months?",
            "Which of our products grew the most and which declined?",
        ],
        "competitive_benchmarking": [
            "Where do we rank in overall revenue and units this month?",
            "Who gained the most market share this month and who lost the most?",
            "Who is the fastest rank mover this month by revenue and by units?",
            "Which competitor is closest to Innova 5610 in price positioning and performance?",
        ],
        "risk_threat": [
            "What should we worry about this month?",
            "Did any competitor show unusual breakout growth?",
            "Are we losing share in any category for 3+ consecutive months?",
        ],
        "growth_opportunity": [
            "Which price tiers are growing fastest and do we have products there?",
            "Who is the fastest growth brand by revenue and by units?",
            "Which handheld/tablet/dongle segment is growing fastest MoM and YoY?",
            "Which category has growth where our share is still low?",
            "What would it take to move up one market rank?",
        ],
        "data_clarification": [
            "Why did our market share jump/drop this month?",
            "What is included in Other brand category?",
            "How is revenue estimated in this report?",
        ],
    },
}


# =============================================================================
# Lookups
# =============================================================================

def _intent_key(intent) -> str:
    return str(getattr(intent, "value", intent))


def category_suggested_questions(
    category_id: str,
    capabilities: Sequence[str],
    intent: Optional[str] = None,
) -> list[str]:
    """
    Collect suggested questions for a category.

    Questions for ``intent`` come first, followed by those of every
    capability in order. Duplicates are dropped. Categories without a bank,
    or without any matching question, get the default questions.
    """
    bank = CATEGORY_BANK.get(category_id, {})
    allowed = [_intent_key(capability) for capability in capabilities]
    selected: list[str] = []

    def push(key: str) -> None:
        if key not in allowed:
            return
        for question in bank.get(key, []):
            if question not in selected:
                selected.append(question)

    if intent and _intent_key(intent) != ChatIntent.UNKNOWN.value:
        push(_intent_key(intent))
    for key in allowed:
        push(key)

    if not selected:
        return list(DEFAULT_QUESTIONS)
    return selected[:MAX_SUGGESTED]


def starter_questions(category_id: str) -> list[str]:
    """Starter questions shown before the first message of a session."""
    return category_suggested_questions(category_id, STARTER_CAPABILITIES)[:MAX_STARTER]


__all__ = [
    "DEFAULT_CATEGORY",
    "DEFAULT_QUESTIONS",
    "STARTER_CAPABILITIES",
    "CATEGORY_BANK",
    "category_suggested_questions",
    "starter_questions",
]
