"""Tests for closest-competitor scoring."""

from types import SimpleNamespace

import pytest

from src.analyzers.competitor_engine import (
    compute_confidence,
    find_closest_competitors,
    rating_score,
    rising_star_boost,
    similarity_ratio,
    type_similarity,
)
from src.resolution.product_index import HistoryPoint, IndexedProduct


def _item(asin, brand, type_, price, revenue, units=100, rating=4.0, **kwargs):
    return IndexedProduct(
        asin=asin,
        title=f"{brand} {asin}",
        brand=brand,
        type=type_,
        price=price,
        revenue=revenue,
        units=units,
        rating=rating,
        reviews=100,
        **kwargs,
    )


@pytest.fixture
def dongle_index():
    target = _item("B0TARGET01", "Innova", "Dongle", 100, 50000, units=500, rating=4.5)
    products = [
        target,
        _item("B0CANDA001", "Autel", "Dongle", 105, 48000, units=460, rating=4.4),
        _item("B0CANDB001", "Topdon", "Handheld", 400, 60000),
        _item("B0CANDC001", "Innova", "Dongle", 95, 40000),
        _item("B0CANDD001", "Ancel", "Dongle", 90, 5000),
    ]
    return SimpleNamespace(products=products), target


def test_filters_brand_type_and_revenue_floor(dongle_index):
    index, target = dongle_index

    result = find_closest_competitors(index, target)

    assert [candidate.product.asin for candidate in result.candidates] == ["B0CANDA001"]
    assert result.pool_size == 1
    assert result.confidence == pytest.approx(0.75)
    top = result.candidates[0]
    assert top.score == pytest.approx(87.71, abs=0.01)
    assert top.evidence[0] == "Price: +5 vs target (105 vs 100)."
    assert top.evidence[1] == "Revenue: -2,000 monthly delta."


def test_include_same_brand(dongle_index):
    index, target = dongle_index

    result = find_closest_competitors(index, target, include_same_brand=True)

    assert {candidate.product.asin for candidate in result.candidates} == {"B0CANDA001", "B0CANDC001"}
    assert result.candidates[0].score >= result.candidates[1].score


def test_assumptions_name_the_price_window(dongle_index):
    index, target = dongle_index

    result = find_closest_competitors(index, target, price_window_pct=0.1, price_window_abs=50)

    assert result.assumptions[0] == "Candidates are restricted to nearby price range (±10% or ±$50)."


def test_rising_star_boost():
    history = [
        HistoryPoint(date="2025-05-01", revenue=100, units=10, price=10, rank_revenue=5),
        HistoryPoint(date="2025-06-01", revenue=130, units=13, price=10, rank_revenue=3),
    ]
    rising = _item("B0RISING01", "Ancel", "Dongle", 10, 130, revenue_mom=0.3, history=history)
    slow = _item("B0SLOWER01", "Ancel", "Dongle", 10, 110, revenue_mom=0.1, history=history)
    flat_rank = _item("B0FLATRK01", "Ancel", "Dongle", 10, 130, revenue_mom=0.3, history=history[:1])

    assert rising_star_boost(rising) == pytest.approx(6.0)
    assert rising_star_boost(slow) == 0.0
    assert rising_star_boost(flat_rank) == 0.0


def test_similarity_terms():
    assert similarity_ratio(100, 50) == pytest.approx(0.5)
    assert similarity_ratio(0, 50) == 0.0
    assert type_similarity("Dongle", "dongle") == 1.0
    assert type_similarity("Tablet", "Tablet Pro") == 0.65
    assert type_similarity("Tablet", "Dongle") == 0.2
    assert type_similarity("", "Dongle") == 0.0
    assert type_similarity("", "  ") == 1.0
    assert rating_score(0, 4.5) == 0.5
    assert rating_score(4.0, 4.4) == pytest.approx(0.8)


RISING_HISTORY = [
    HistoryPoint(date="2025-05-01", revenue=100, units=10, price=10, rank_revenue=5),
    HistoryPoint(date="2025-06-01", revenue=130, units=13, price=10, rank_revenue=3),
]


def test_rising_star_overtakes_before_ranking():
    target = _item("B0TARGET01", "Innova", "Dongle", 100, 50000, units=500)
    steady = _item("B0STEADY01", "Autel", "Dongle", 100, 50000, units=500)
    rising = _item(
        "B0RISING01", "Topdon", "Dongle", 100, 45000, units=500,
        revenue_mom=0.3, history=RISING_HISTORY,
    )
    index = SimpleNamespace(products=[target, steady, rising])

    result = find_closest_competitors(index, target)

    # 91 base vs 89 base + 6 boost
    assert [candidate.product.asin for candidate in result.candidates] == ["B0RISING01", "B0STEADY01"]
    assert result.candidates[0].score == pytest.approx(95.0)
    assert result.candidates[1].score == pytest.approx(91.0)
    assert result.candidates[0].evidence[-1].startswith("Rising-star boost: +6.0")


def test_boosted_score_is_clamped():
    target = _item("B0TARGET01", "Innova", "Dongle", 100, 50000, units=500, revenue_mom=0.5)
    twin = _item(
        "B0TWIN0001", "Autel", "Dongle", 100, 50000, units=500, rating=5.0,
        revenue_mom=0.5, history=RISING_HISTORY,
    )

    result = find_closest_competitors(SimpleNamespace(products=[target, twin]), target)

    assert result.candidates[0].score == 100.0


def test_compute_confidence_bounds_and_monotonic():
    full = _item("B0TARGET01", "Innova", "Dongle", 100, 50000, units=500)
    sparse = _item("B0SPARSE01", "Innova", "", 0, 0, units=0)

    assert compute_confidence(sparse, 0, 0) == pytest.approx(0.45)
    assert compute_confidence(full, 10, 3) == pytest.approx(1.0)

    for target in (full, sparse):
        previous = 0.0
        for count, top in [(0, 0), (1, 1), (3, 2), (5, 2), (5, 3), (20, 3)]:
            value = compute_confidence(target, count, top)
            assert 0.0 <= value <= 1.0
            assert value >= previous
            previous = value
    assert compute_confidence(full, 5, 3) >= compute_confidence(sparse, 5, 3)
