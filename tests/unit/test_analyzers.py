"""Tests for the brand, product and category analyzers."""

import pytest

from src.analyzers import brand_analyzers, category_analyzers
from src.analyzers.base import (
    compute_brand_archetypes,
    driver_breakdown,
    growth_for_window,
    scope_label,
)
from src.models.schemas import AnalyzerId, ResolvedScope, SalesArchetype, ScopeMode


# =============================================================================
# Growth and Rank Movement
# =============================================================================

def test_fastest_growth_brand_mom(make_context):
    output = brand_analyzers.analyze_fastest_growth(make_context("Who is the fastest growth brand this month?"))

    assert output.answer == "Fastest revenue growth brand (MoM): BLCKTEC."
    assert output.bullets[0] == "#1 BLCKTEC: +100.0% (MoM), $300K revenue, 3.8K units."
    assert output.confidence == 0.88
    assert output.window_used == "MoM"
    assert [item.asin for item in output.top_contributors] == ["B09BLK4300"]


def test_fastest_growth_brand_yoy(make_context):
    output = brand_analyzers.analyze_fastest_growth(make_context("Who is the fastest growth brand YoY?"))

    assert output.answer == "Fastest revenue growth brand (YoY): Innova."
    assert output.bullets[0].startswith("#1 Innova: +150.0% (YoY)")


def test_fastest_growth_asin(make_context):
    output = brand_analyzers.analyze_fastest_growth(make_context("Which product had the fastest growth this month?"))

    assert output.answer == "Fastest revenue growth ASIN (MoM): BLCKTEC B09BLK4300."
    assert output.confidence == 0.86
    assert output.bullets[1].startswith("#2 Autel B0AUTAL319: +66.7% (MoM)")


def test_type_scoped_growth(make_context):
    output = brand_analyzers.analyze_fastest_growth(make_context("Which tablets grew the most?"))

    assert output.answer == "Fastest Tablet growth brand (MoM, revenue): Autel."
    assert output.confidence == 0.84
    assert len(output.bullets) == 2


def test_fastest_brand_rank_mover(make_context):
    output = brand_analyzers.analyze_fastest_rank_mover(make_context("Who is the fastest rank mover this month?"))

    assert output.answer == "Fastest brand rank mover (revenue rank): BLCKTEC (+1 vs 2025-05)."
    assert output.bullets[0].startswith("#1 BLCKTEC: #4 -> #3 (+1)")
    assert output.confidence == 0.87


def test_growth_driver_for_brand(make_context):
    output = brand_analyzers.analyze_growth_driver(make_context("Is Autel growth driven by price or units?"))

    assert output.answer == "Autel performance is mainly units-driven this month."
    assert output.confidence == 0.9
    assert output.bullets[1] == "Autel rank: #1 by revenue, #1 by units."


def test_growth_driver_for_market(make_context):
    output = brand_analyzers.analyze_growth_driver(make_context("Is growth driven by price or units?"))

    assert output.answer == "Market growth is currently units-driven."
    assert output.confidence == 0.8


def test_driver_breakdown():
    driver = driver_breakdown(650000, 5979, 560000, 3979)

    assert driver.primary_driver == "units"
    assert driver.unit_effect == pytest.approx(2000 * 560000 / 3979)
    assert driver.price_effect < 0


@pytest.mark.parametrize("window,expected", [
    ("mom", 0.1),
    ("yoy", 0.3),
    ("both", 0.2),
])
def test_growth_for_window(window, expected):
    assert growth_for_window(window, 0.1, 0.3) == pytest.approx(expected)


def test_growth_for_both_windows_with_one_side_missing():
    assert growth_for_window("both", None, 0.3) == 0.3
    assert growth_for_window("both", None, None) is None


# =============================================================================
# History, Archetypes and Products
# =============================================================================

def test_asin_history(make_context):
    output = brand_analyzers.analyze_asin_history(make_context("Show ASIN history for B07Z481NJM"))

    assert output.answer == "ASIN History: Innova B07Z481NJM is up over the recent period."
    assert output.bullets[1] == "3M: $750K revenue, 3.4K units, growth +50.0%."
    assert output.confidence == 0.86


def test_brand_top_asin_history(make_context):
    output = brand_analyzers.analyze_asin_history(make_context("Show blck tek top ASINs and past performance"))

    assert output.answer == "BLCKTEC top ASINs are B09BLK4300 with historical trend support."
    assert output.confidence == 0.83


def test_history_without_brand_or_product(make_context):
    output = brand_analyzers.analyze_asin_history(make_context("Show top ASINs and past performance"))

    assert output.answer.startswith("Tell me which brand or ASIN you want history for")
    assert output.confidence == 0.5


def test_brand_archetypes(index):
    archetypes = compute_brand_archetypes(index.snapshot)

    assert archetypes == {
        "autel": SalesArchetype.BALANCED,
        "innova": SalesArchetype.PRICE_LED,
        "blcktec": SalesArchetype.VOLUME_LED,
        "topdon": SalesArchetype.BALANCED,
    }


def test_single_brand_archetype(make_context):
    output = brand_analyzers.analyze_brand_archetype(make_context("Why is Innova performing well?"))

    assert output.answer == "Innova is price-led this month."
    assert output.sales_archetype == SalesArchetype.PRICE_LED


def test_archetype_overview(make_context):
    output = brand_analyzers.analyze_brand_archetype(
        make_context("Which brands win from high price but low units?"),
        AnalyzerId.PRICE_VS_VOLUME_EXPLAINER,
    )

    assert output.answer == "Price-led winners: INNOVA | Volume-led winners: BLCKTEC."


def test_product_competitor(make_context):
    output = brand_analyzers.analyze_product_competitor(
        make_context("Who is the closest competitor to B08INN3160?")
    )

    assert output.answer == "Closest Competitor: Autel B0AUTAL319"
    assert output.confidence == pytest.approx(0.75)
    assert output.bullets[-1] == "Alternative #2: BLCKTEC B09BLK4300 (54.8/100)."


def test_product_competitor_without_nearby_prices(make_context):
    output = brand_analyzers.analyze_product_competitor(
        make_context("Who is the closest competitor to B07Z481NJM?")
    )

    assert output.answer == (
        "I couldn't find comparable competitors for Innova B07Z481NJM in the current snapshot."
    )


def test_product_trend(make_context):
    output = brand_analyzers.analyze_product_trend(make_context("Show me the product trend for B07Z481NJM"))

    assert output.answer == (
        "Innova B07Z481NJM is growing in revenue (+20.0%) and growing in units (+20.1%) vs last month."
    )
    assert output.bullets[2] == "Previous snapshot (2025-05-01) revenue: $250K, units: 1.1K."


# =============================================================================
# Brand and Market
# =============================================================================

def test_brand_health_for_own_brands(make_context):
    output = brand_analyzers.analyze_brand_health(make_context("How did we do this month?"))

    assert output.answer == "OWN BRANDS delivered $800K monthly revenue and 6.7K units (+31.1% revenue MoM)."
    assert output.bullets[0] == "Current scope includes 2 brands in this snapshot."
    assert output.confidence == 0.88
    assert output.proactive[0].id == "monthly-performance"


def test_brand_health_for_target_brand(make_context):
    output = brand_analyzers.analyze_brand_health(make_context("How are sales?", target_brand="Topdon"))

    assert output.answer == "TOPDON delivered $200K monthly revenue and 500 units (-4.8% revenue MoM)."
    assert output.bullets[0] == "Topdon rank is #4 by revenue and #4 by units."


def test_market_shift(make_context):
    output = brand_analyzers.analyze_market_shift(make_context("Who moved this month?"))

    assert output.answer == "BLCKTEC shows the largest share movement this month (+7.3pt)."
    assert len(output.bullets) == 4
    assert output.confidence == 0.84


def test_risk_signal(make_context):
    output = brand_analyzers.analyze_risk_signal(make_context("What is our biggest risk?"))

    assert output.answer == "Quality risk: B08INN3160 has high revenue ($200K) but lower rating (4.0)."
    assert output.bullets[0] == "Own revenue concentration (Top 1): +37.5%."
    assert output.bullets[2].startswith("BLCKTEC B09BLK4300 is rising")


def test_opportunity_signal(make_context):
    output = brand_analyzers.analyze_opportunity_signal(make_context("Where is the biggest opportunity?"))

    assert output.answer == "Best opportunity: Tablet has +39.4% market revenue share while own share is +0.0%."
    assert output.bullets[0] == "Handheld: $700K revenue, +42.4% share."


def test_top_products_by_units(make_context):
    output = brand_analyzers.analyze_top_products(make_context("What is the top product by units?"))

    assert output.answer == "Top MARKET SKU: Autel B0AUTAL319 (5K units)."
    assert output.confidence == 0.9


def test_top_products_for_explicit_brand(make_context):
    output = brand_analyzers.analyze_top_products(make_context("What is the top Topdon product?"))

    assert output.answer == "Top TOPDON SKU: Topdon B0TOPDONA1 ($200K revenue)."


def test_scope_label():
    assert scope_label(ResolvedScope(mode=ScopeMode.EXPLICIT_BRAND, brands=["innova", "autel"])) == "INNOVA + AUTEL"
    assert scope_label(ResolvedScope(mode=ScopeMode.OWN_BRANDS, brands=[])) == "OWN BRANDS"
    assert scope_label(ResolvedScope(mode=ScopeMode.ALL_BRANDS)) == "MARKET"


# =============================================================================
# Category Analyzers
# =============================================================================

def test_price_range(make_context):
    output = category_analyzers.analyze_price_range(make_context("What is the price range?"))

    assert output.answer == (
        "Observed price range is $39.99 to $459.99 with median $174.99 and average $221.66."
    )
    assert output.bullets[0] == "<$75: 12.1% revenue share ($200K)."
    assert output.evidence[3].value == "Code Reader Scanner"


def test_trends_momentum(make_context):
    output = category_analyzers.analyze_trends_momentum(make_context("Show market momentum"))

    assert output.answer == "Momentum snapshot: revenue +19.6% vs prior month, units +43.8% vs prior month."
    assert output.bullets[2] == "YoY revenue change: +175.0%"


def test_rating_reviews(make_context):
    output = category_analyzers.analyze_rating_reviews(make_context("Which products have the best ratings?"))

    assert output.bullets[0] == "BLCKTEC BLCKTEC 430 Wireless Dongle: 4.6★, 9K reviews, $300K revenue."
    assert len(output.bullets) == 5


def test_feature_analysis_without_flags(make_context):
    output = category_analyzers.analyze_feature_analysis(make_context("Which features carry a premium?"))

    assert output.answer == "Feature premium analysis is unavailable for this snapshot."
    assert output.confidence == 0.45


def test_data_clarification(make_context):
    known = category_analyzers.analyze_data_clarification(make_context("How is revenue estimated?"))
    generic = category_analyzers.analyze_data_clarification(make_context("Give me a definition"))

    assert known.answer.startswith("Revenue in this dashboard is estimate-driven")
    assert known.confidence == 0.9
    assert generic.answer == category_analyzers.DEFAULT_CLARIFICATION
    assert generic.confidence == 0.7
