"""Tests for proactive signals and snapshot cards."""

import pytest

from src.analyzers.category_data import (
    BrandRow,
    MixRow,
    NormalizedCategoryData,
    TrendContext,
    trend_context,
)
from src.analyzers.proactive import (
    NO_RISING_PRODUCTS,
    build_signals,
    build_snapshot_suggestions,
    find_cluster_gap,
)
from src.models.schemas import Severity
from src.resolution.product_index import build_product_index


def _data(type_mix=(), brands=(), market_revenue=1000.0):
    return NormalizedCategoryData(
        category_id="code_reader_scanner",
        category_label="Code Reader Scanner",
        snapshot_date="2025-06-01",
        source_file="code_reader_2025_06.xlsx",
        top_by_revenue=[],
        top_by_units=[],
        brands=list(brands),
        market_revenue=market_revenue,
        market_units=100.0,
        type_mix=list(type_mix),
        price_tiers=[],
    )


def _mix(label, revenue_share, unit_share):
    return MixRow(label, 0.0, 0.0, revenue_share, unit_share, 0.0)


def _brand(name, share):
    return BrandRow(name, 100.0, 10.0, share, 10.0, 4.5, 1)


def test_price_volume_mismatch():
    signals = build_signals(_data(type_mix=[_mix("Dongle", 0.20, 0.40)]))

    assert len(signals) == 1
    assert signals[0].title == "Price-Volume Arbitrage Mismatch"
    assert signals[0].severity == Severity.RISK
    assert signals[0].confidence == pytest.approx(0.8)
    assert signals[0].summary == "Dongle has +40.0% unit share vs +20.0% revenue share."


def test_small_gap_is_ignored():
    assert build_signals(_data(type_mix=[_mix("Dongle", 0.20, 0.25)])) == []


def test_fragmented_leaders():
    signals = build_signals(_data(brands=[_brand("A", 0.1), _brand("B", 0.1), _brand("C", 0.1)]))

    assert signals[0].id == "leader_vulnerability"
    assert signals[0].severity == Severity.WATCH
    assert signals[0].confidence == pytest.approx(0.82)


def test_trend_reversal():
    trend = TrendContext(previous_date="2025-05-01", previous_revenue=1000.0, previous_units=100.0)

    signals = build_signals(_data(market_revenue=1300.0), trend)

    assert signals[0].id == "trend_reversal"
    assert signals[0].severity == Severity.RISK
    assert signals[0].confidence == pytest.approx(0.9)
    assert signals[0].summary.startswith("Revenue moved +30.0% vs prior snapshot")


def test_signals_for_fixture_snapshot(category_data, index):
    signals = build_signals(category_data, trend_context(index))

    assert [signal.id for signal in signals] == [
        "price_quality_misalignment",
        "leader_vulnerability",
        "price_volume_arbitrage",
    ]
    assert signals[0].summary == (
        "Topdon is priced above category average but trails rating average (4.20 vs 4.33)."
    )
    assert signals[2].summary == "Tablet has +11.3% unit share vs +39.4% revenue share."
    assert signals[2].severity == Severity.RISK


def test_cluster_gap(category_data):
    gap = find_cluster_gap(category_data)

    assert gap["label"] == "Tablet @ $400+"
    assert gap["brand_count"] == 1
    assert gap["share"] == pytest.approx(450000 / 1650000)


def test_snapshot_suggestions(index):
    summary = build_snapshot_suggestions(index)

    ids = [card.id for card in summary.proactive]
    assert ids == ["monthly-performance", "competitive-alert", "risk-of-month"]
    assert summary.proactive[0].summary == (
        "Own brands generated $800K from 3 tracked products. Top-SKU concentration is +37.5%."
    )
    assert summary.proactive[0].severity == Severity.INFO
    assert summary.proactive[1].summary == "Autel B0AUTAL319 grew +66.7% MoM"
    assert "Innova B08INN3160" in summary.proactive[2].summary
    assert summary.watchlist == [
        "BLCKTEC B09BLK4300 is rising (+100.0% MoM, rank #3).",
        "Autel B0AUTAL319 is rising (+66.7% MoM, rank #5).",
    ]


def test_snapshot_without_rising_products(tables):
    # a single snapshot has no MoM at all
    index = build_product_index(tables, "code_reader_scanner", "2024-06-01")

    summary = build_snapshot_suggestions(index)

    assert summary.watchlist == [NO_RISING_PRODUCTS]
