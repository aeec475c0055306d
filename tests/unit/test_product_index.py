import pytest

from src.query.catalog import empty_tables
from src.resolution.product_index import (
    HistoryPoint,
    build_product_index,
    build_windows,
    fastest_growth_score,
    ratio_delta,
    summarize_window,
    trend_from_growth,
    yoy_date,
)

CATEGORY = "code_reader_scanner"
SNAPSHOT = "2025-06-01"
PREVIOUS = "2025-05-01"
YEAR_AGO = "2024-06-01"


def test_frames_and_growth_references(index):
    assert index.snapshot_date == SNAPSHOT
    assert index.previous.date == PREVIOUS
    assert index.yoy.date == YEAR_AGO
    assert [frame.date for frame in index.snapshots] == [YEAR_AGO, PREVIOUS, SNAPSHOT]
    assert index.category_label == "Code Reader Scanner"
    assert index.snapshot.source_files == ["code_reader_2025_06.xlsx"]


def test_products_ranked_by_revenue(index):
    assert [product.asin for product in index.products][:3] == ["B0AUTEL808", "B07Z481NJM", "B09BLK4300"]
    assert [product.rank_revenue for product in index.products] == [1, 2, 3, 4, 5, 6]
    assert index.product("b0autal319").rank_units == 1


def test_product_deltas_and_history(index):
    product = index.product("B07Z481NJM")

    assert product.revenue_mom == pytest.approx(0.2)
    assert product.price_mom == pytest.approx(0.0)
    assert product.rating_mom == pytest.approx(0.0)
    assert [point.date for point in product.history] == [YEAR_AGO, PREVIOUS, SNAPSHOT]
    assert product.previous_point().revenue == 250000
    assert product.point_at(YEAR_AGO).revenue == 200000
    assert product.point_at(None) is None


def test_product_without_previous_row_has_no_mom(tables):
    tables["products_monthly"].append({
        "category_id": CATEGORY, "snapshot_date": SNAPSHOT, "asin": "B0NEWITEM1", "title": "New Scanner",
        "brand": "Ancel", "type": "Handheld", "price": 59.99, "revenue": 5000, "units": 83, "rating": 4.1,
    })

    index = build_product_index(tables, CATEGORY, SNAPSHOT)
    product = index.product("B0NEWITEM1")

    assert product.revenue_mom is None
    assert product.units_mom is None
    assert product.rating_mom == pytest.approx(4.1)


def test_brand_totals_share_from_market(index):
    autel = index.snapshot.brand_total("AUTEL")

    assert autel.revenue == 650000
    assert autel.share == pytest.approx(650000 / 1650000)
    assert index.snapshot.brand_rank("blcktec") == 3
    assert index.previous.brand_rank("blcktec") == 4
    assert index.snapshot.brand_rank("nobody") is None


def test_type_metrics_growth(index):
    metrics = {row.scope_key: row for row in index.snapshot.type_metrics}

    assert metrics["handheld"].revenue_mom == pytest.approx(120000 / 580000)
    assert metrics["handheld"].revenue_yoy == pytest.approx(2.5)
    assert metrics["dongle"].revenue_yoy is None
    assert {row.scope_key for row in index.price_scope_metrics} == {"handheld", "tablet", "dongle"}


def test_history_summaries(index):
    summary = index.asin_history["b07z481njm"]

    assert summary.windows["1m"].revenue_growth_mom == pytest.approx(0.2)
    assert summary.windows["3m"].revenue_growth_window == pytest.approx(0.5)
    assert summary.windows["3m"].trend == "up"
    assert summary.fastest_growth_score == pytest.approx(39.5)

    brand = index.brand_history["blcktec"]
    assert brand.current_revenue_rank == 3
    assert brand.current_share == pytest.approx(300000 / 1650000)
    assert len(index.brand_series["blcktec"]) == 2


def test_lookups(index):
    assert index.brand_lookup["blacktec"] == "blcktec"
    assert index.brand_lookup["autel"] == "autel"
    assert index.brand_display("autel") == "Autel"
    assert index.brand_display("mystery") == "MYSTERY"
    assert index.product_alias_to_asins["innova5610"] == ["B07Z481NJM"]
    assert index.product_alias_to_asins["blcktec430"] == ["B09BLK4300"]
    assert index.is_own_brand("BLCKTEC")
    assert not index.is_own_brand("Autel")


def test_unknown_snapshot_or_category(tables):
    assert build_product_index(tables, CATEGORY, "2030-01-01") is None
    assert build_product_index(tables, "dmm", SNAPSHOT) is None


def test_earlier_snapshot_ignores_later_data(tables):
    index = build_product_index(tables, CATEGORY, PREVIOUS)

    assert index.previous.date == YEAR_AGO
    assert index.yoy is None
    assert index.product("B07Z481NJM").revenue == 250000
    assert len(index.product("B07Z481NJM").history) == 2


def test_brand_totals_aggregated_when_brand_table_empty(tables):
    tables["brands_monthly"] = []
    tables["market_monthly"] = []

    index = build_product_index(tables, CATEGORY, SNAPSHOT)
    autel = index.snapshot.brand_total("autel")

    assert autel.revenue == 650000
    assert index.snapshot.market_revenue == 1650000
    assert autel.share == pytest.approx(650000 / 1650000)


def test_quality_warnings_for_empty_snapshot():
    tables = empty_tables()
    tables["snapshots"] = [{"category_id": "dmm", "snapshot_date": SNAPSHOT}]

    index = build_product_index(tables, "dmm", SNAPSHOT)

    assert index.products == []
    assert index.quality_warnings == [
        f"No product rows for dmm on {SNAPSHOT}.",
        f"No brand totals for dmm on {SNAPSHOT}.",
    ]


def test_window_math():
    points = [HistoryPoint(date=f"2025-0{month}-01", revenue=100 * month, units=10, price=10) for month in range(1, 5)]

    windows = build_windows(points)

    assert windows["3m"].months == 3
    assert windows["3m"].revenue == 900
    assert windows["all"].revenue_growth_window == pytest.approx(3.0)
    assert windows["1m"].revenue_growth_mom == pytest.approx(400 / 300 - 1)
    assert summarize_window([], 3).trend == "flat"
    assert -100 <= fastest_growth_score(windows) <= 200


@pytest.mark.parametrize("value,trend", [(0.1, "up"), (-0.1, "down"), (0.05, "flat"), (None, "flat")])
def test_trend_from_growth(value, trend):
    assert trend_from_growth(value) == trend


def test_date_and_ratio_helpers():
    assert yoy_date("2025-06-01") == "2024-06-01"
    assert yoy_date("June") is None
    assert ratio_delta(120, 100) == pytest.approx(0.2)
    assert ratio_delta(120, 0) is None
