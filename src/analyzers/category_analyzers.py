"""Category-wide analyzers: pricing, momentum, ratings, features and data definitions."""

from src.analyzers.base import AnalyzerContext, AnalyzerOutput, base_evidence, citation, evidence
from src.analyzers.clarifications import get_clarification
from src.models.schemas import EvidenceItem
from src.utils.formatters import (
    format_currency,
    format_number,
    format_percent,
    format_price,
    format_share,
    ratio_change,
    truncate,
)

DEFAULT_CLARIFICATION = (
    "I can clarify how each metric is computed and why month-to-month changes can "
    "diverge from absolute revenue movement."
)
DEFAULT_CLARIFICATION_BULLETS = [
    "Market share can move up when the total market shrinks faster than your brand.",
    "Different source workbooks can include different listing coverage and segmentation.",
]


def category_evidence(ctx: AnalyzerContext) -> list[EvidenceItem]:
    data = ctx.category_data
    return [
        *base_evidence(ctx.snapshot),
        evidence("Category", data.category_label),
        evidence("Source", data.source_file),
    ]


def _median(values: list[float]) -> float:
    middle = len(values) // 2
    if len(values) % 2 == 0:
        return (values[middle - 1] + values[middle]) / 2
    return values[middle]


def analyze_price_range(ctx: AnalyzerContext) -> AnalyzerOutput:
    data = ctx.category_data
    prices = sorted(product.price for product in data.top_by_revenue if product.price > 0)
    if not prices:
        return AnalyzerOutput(
            answer="Price range is unavailable because no priced listings exist in this snapshot.",
            evidence=category_evidence(ctx),
            confidence=0.45,
            assumptions=["Price statistics use listing prices of the selected snapshot."],
            citations=[citation("Listing prices", "products_monthly", ctx.snapshot.date)],
        )

    average = sum(prices) / len(prices)
    return AnalyzerOutput(
        answer=(
            f"Observed price range is {format_price(prices[0])} to {format_price(prices[-1])} "
            f"with median {format_price(_median(prices))} and average {format_price(average)}."
        ),
        bullets=[
            f"{tier.label}: {format_share(tier.revenue_share)} revenue share ({format_currency(tier.revenue)})."
            for tier in data.price_tiers[:4]
        ],
        evidence=category_evidence(ctx),
        confidence=0.84,
        assumptions=["Price statistics use listing prices of the selected snapshot; tiers use fixed bucket bounds."],
        citations=[citation("Price tiers", "products_monthly grouped by price bucket", ctx.snapshot.date)],
        suggested_questions=[
            "Which price tier is growing fastest?",
            "Who leads the premium tier?",
            "Is the market price-led or volume-led?",
        ],
    )


def _trend_line(label: str, value) -> str:
    return f"{label}: {format_percent(value) if value is not None else 'n/a'}"


def analyze_trends_momentum(ctx: AnalyzerContext) -> AnalyzerOutput:
    snapshot = ctx.snapshot
    previous, last_year = ctx.index.previous, ctx.index.yoy
    revenue_mom = ratio_change(snapshot.market_revenue, previous.market_revenue if previous else None)
    units_mom = ratio_change(snapshot.market_units, previous.market_units if previous else None)
    revenue_yoy = ratio_change(snapshot.market_revenue, last_year.market_revenue if last_year else None)

    return AnalyzerOutput(
        answer=(
            f"Momentum snapshot: revenue {format_percent(revenue_mom)} vs prior month, "
            f"units {format_percent(units_mom)} vs prior month."
        ),
        bullets=[
            _trend_line("MoM revenue change", revenue_mom),
            _trend_line("MoM unit change", units_mom),
            _trend_line("YoY revenue change", revenue_yoy),
        ],
        evidence=category_evidence(ctx),
        confidence=0.82 if previous else 0.6,
        assumptions=["Momentum compares market totals with the previous and same-month-last-year snapshots."],
        citations=[citation("Market momentum", "market_monthly", snapshot.date)],
        suggested_questions=[
            "Who is the fastest growing brand this month?",
            "Is market growth driven by units or price?",
            "Which product type is growing fastest?",
        ],
        window_used="MoM + YoY",
    )


def analyze_rating_reviews(ctx: AnalyzerContext) -> AnalyzerOutput:
    rated = sorted(
        (product for product in ctx.category_data.top_by_revenue if product.rating > 0),
        key=lambda product: product.rating,
        reverse=True,
    )[:5]
    return AnalyzerOutput(
        answer=(
            "Rating/review quality snapshot highlights products and brands combining strong "
            "ratings with meaningful revenue."
        ),
        bullets=[
            f"{product.brand} {truncate(product.title, 64)}: {product.rating:.1f}★, "
            f"{format_number(product.reviews)} reviews, {format_currency(product.revenue)} revenue."
            for product in rated
        ],
        evidence=category_evidence(ctx),
        confidence=0.8 if rated else 0.5,
        assumptions=["Only listings with a positive rating are ranked."],
        citations=[citation("Ratings and reviews", "products_monthly", ctx.snapshot.date)],
        suggested_questions=[
            "Which high-revenue products have weak ratings?",
            "What should I be worried about?",
            "Who is the market leader this month?",
        ],
    )


def analyze_feature_analysis(ctx: AnalyzerContext) -> AnalyzerOutput:
    premiums = ctx.category_data.feature_premiums
    top = premiums[0] if premiums else None
    return AnalyzerOutput(
        answer=(
            f"{top.feature} has a {format_percent(top.premium_pct)} price premium in this dataset."
            if top else "Feature premium analysis is unavailable for this snapshot."
        ),
        bullets=[
            f"{item.feature}: with-feature avg {format_price(item.with_feature_avg_price)} vs without-feature avg "
            f"{format_price(item.without_feature_avg_price)} ({format_percent(item.premium_pct)})."
            for item in premiums[:5]
        ],
        evidence=category_evidence(ctx),
        confidence=0.78 if top else 0.45,
        assumptions=["Listings without a feature flag are counted as lacking the feature."],
        citations=[citation("Feature premiums", "code_reader_workbook_rows", ctx.snapshot.date)],
        suggested_questions=[
            "Which price tier carries the most revenue?",
            "Where are the competitive gaps?",
            "Who is the closest competitor to our top product?",
        ],
    )


def analyze_data_clarification(ctx: AnalyzerContext) -> AnalyzerOutput:
    clarification = get_clarification(ctx.message)
    return AnalyzerOutput(
        answer=clarification.answer if clarification else DEFAULT_CLARIFICATION,
        bullets=list(clarification.bullets) if clarification else list(DEFAULT_CLARIFICATION_BULLETS),
        evidence=category_evidence(ctx),
        confidence=0.9 if clarification else 0.7,
        assumptions=["Definitions describe how dashboard metrics are sourced and compared."],
        citations=[citation("Metric definitions", "data dictionary", ctx.snapshot.date)],
        suggested_questions=[
            "How did we do this month?",
            "Why did our share change?",
            "What is included in Other brands?",
        ],
    )


__all__ = [
    "analyze_price_range",
    "analyze_trends_momentum",
    "analyze_rating_reviews",
    "analyze_feature_analysis",
    "analyze_data_clarification",
    "category_evidence",
]
