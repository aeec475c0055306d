import copy
from unittest.mock import patch

import pytest

from src.analyzers.base import AnalyzerContext
from src.analyzers.category_data import normalize_category_data
from src.config.settings import Settings
from src.parsing.query_parser import parse_query
from src.query.catalog import empty_tables
from src.resolution.entity_resolver import resolve_entities
from src.resolution.product_index import build_product_index

CATEGORY = "code_reader_scanner"
SNAPSHOT = "2025-06-01"
PREVIOUS = "2025-05-01"
YEAR_AGO = "2024-06-01"


def _product(date, asin, brand, title, type_, price, revenue, units, rating, reviews):
    return {
        "category_id": CATEGORY,
        "snapshot_date": date,
        "asin": asin,
        "title": title,
        "brand": brand,
        "type": type_,
        "price": price,
        "revenue": revenue,
        "units": units,
        "review_count": reviews,
        "rating": rating,
        "source_type": "workbook",
        "source_file": f"code_reader_{date[:7].replace('-', '_')}.xlsx",
    }


def _brand(date, brand, revenue, units):
    return {
        "category_id": CATEGORY,
        "snapshot_date": date,
        "brand": brand,
        "revenue": revenue,
        "units": units,
        "share": 0,
    }


def _market(date, revenue, units):
    return {
        "category_id": CATEGORY,
        "snapshot_date": date,
        "revenue": revenue,
        "units": units,
    }


def _type_row(date, scope_key, revenue, units):
    return {
        "category_id": CATEGORY,
        "snapshot_date": date,
        "scope_key": scope_key,
        "scope_label": scope_key.title(),
        "metric_set": "allAsins",
        "revenue": revenue,
        "units": units,
        "revenue_share": 0,
        "units_share": 0,
        "avg_price": revenue / units,
    }


def _snapshot(date):
    return {
        "category_id": CATEGORY,
        "snapshot_date": date,
        "snapshot_label": date[:7],
        "source_type": "workbook",
        "source_file": f"code_reader_{date[:7].replace('-', '_')}.xlsx",
    }


def build_tables():
    """Three snapshots of a small code reader market."""
    tables = empty_tables()
    tables["categories"] = [{"category_id": CATEGORY, "label": "Code Reader Scanner"}]
    tables["snapshots"] = [_snapshot(YEAR_AGO), _snapshot(PREVIOUS), _snapshot(SNAPSHOT)]

    tables["products_monthly"] = [
        # current
        _product(SNAPSHOT, "B07Z481NJM", "Innova", "Innova 5610 Bidirectional Scan Tool", "Handheld", 219.99, 300000, 1364, 4.4, 5200),
        _product(SNAPSHOT, "B08INN3160", "Innova", "Innova 3160RS Code Reader", "Handheld", 129.99, 200000, 1539, 4.0, 3100),
        _product(SNAPSHOT, "B09BLK4300", "BLCKTEC", "BLCKTEC 430 Wireless Dongle", "Dongle", 79.99, 300000, 3750, 4.6, 9000),
        _product(SNAPSHOT, "B0AUTEL808", "Autel", "Autel MaxiCOM MK808 Tablet", "Tablet", 459.99, 450000, 978, 4.5, 2000),
        _product(SNAPSHOT, "B0AUTAL319", "Autel", "Autel AL319 Code Reader", "Handheld", 39.99, 200000, 5001, 4.3, 15000),
        _product(SNAPSHOT, "B0TOPDONA1", "Topdon", "Topdon ArtiDiag Pro Tablet", "Tablet", 399.99, 200000, 500, 4.2, 800),
        # previous month
        _product(PREVIOUS, "B07Z481NJM", "Innova", "Innova 5610 Bidirectional Scan Tool", "Handheld", 219.99, 250000, 1136, 4.4, 5000),
        _product(PREVIOUS, "B08INN3160", "Innova", "Innova 3160RS Code Reader", "Handheld", 129.99, 210000, 1615, 4.1, 3000),
        _product(PREVIOUS, "B09BLK4300", "BLCKTEC", "BLCKTEC 430 Wireless Dongle", "Dongle", 79.99, 150000, 1875, 4.6, 8500),
        _product(PREVIOUS, "B0AUTEL808", "Autel", "Autel MaxiCOM MK808 Tablet", "Tablet", 449.99, 440000, 978, 4.5, 1900),
        _product(PREVIOUS, "B0AUTAL319", "Autel", "Autel AL319 Code Reader", "Handheld", 39.99, 120000, 3001, 4.3, 14500),
        _product(PREVIOUS, "B0TOPDONA1", "Topdon", "Topdon ArtiDiag Pro Tablet", "Tablet", 399.99, 210000, 525, 4.2, 750),
        # a year earlier
        _product(YEAR_AGO, "B07Z481NJM", "Innova", "Innova 5610 Bidirectional Scan Tool", "Handheld", 229.99, 200000, 870, 4.3, 3500),
        _product(YEAR_AGO, "B0AUTEL808", "Autel", "Autel MaxiCOM MK808 Tablet", "Tablet", 479.99, 400000, 833, 4.4, 1200),
    ]

    tables["brands_monthly"] = [
        _brand(SNAPSHOT, "Autel", 650000, 5979),
        _brand(SNAPSHOT, "Innova", 500000, 2903),
        _brand(SNAPSHOT, "BLCKTEC", 300000, 3750),
        _brand(SNAPSHOT, "Topdon", 200000, 500),
        _brand(PREVIOUS, "Autel", 560000, 3979),
        _brand(PREVIOUS, "Innova", 460000, 2751),
        _brand(PREVIOUS, "Topdon", 210000, 525),
        _brand(PREVIOUS, "BLCKTEC", 150000, 1875),
        _brand(YEAR_AGO, "Autel", 400000, 833),
        _brand(YEAR_AGO, "Innova", 200000, 870),
    ]

    tables["market_monthly"] = [
        _market(SNAPSHOT, 1650000, 13132),
        _market(PREVIOUS, 1380000, 9130),
        _market(YEAR_AGO, 600000, 1703),
    ]

    tables["type_breakdowns"] = [
        _type_row(SNAPSHOT, "handheld", 700000, 7904),
        _type_row(SNAPSHOT, "tablet", 650000, 1478),
        _type_row(SNAPSHOT, "dongle", 300000, 3750),
        _type_row(PREVIOUS, "handheld", 580000, 5752),
        _type_row(PREVIOUS, "tablet", 650000, 1503),
        _type_row(PREVIOUS, "dongle", 150000, 1875),
        _type_row(YEAR_AGO, "handheld", 200000, 870),
        _type_row(YEAR_AGO, "tablet", 400000, 833),
    ]
    return tables


@pytest.fixture(autouse=True)
def clear_api_key(monkeypatch):
    """Keep a developer's real key out of every test."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("DATA_FILE", raising=False)
    monkeypatch.delenv("LLM_ONLY_MODE", raising=False)


@pytest.fixture
def settings():
    """Real settings without an API key or data file."""
    return Settings(_env_file=None)


@pytest.fixture
def llm_settings():
    return Settings(_env_file=None, ANTHROPIC_API_KEY="sk-ant-test-key")


@pytest.fixture(autouse=True)
def patch_get_settings(settings):
    """Globally patch get_settings to return the test settings."""
    with patch("src.config.settings.get_settings", return_value=settings):
        with patch("src.pipeline.orchestrator.get_settings", return_value=settings):
            with patch("src.services.llm_service.get_settings", return_value=settings):
                with patch("src.services.tool_loop.get_settings", return_value=settings):
                    with patch("src.main.get_settings", return_value=settings):
                        yield settings


@pytest.fixture
def tables():
    return copy.deepcopy(build_tables())


@pytest.fixture
def index(tables):
    return build_product_index(tables, CATEGORY, SNAPSHOT)


@pytest.fixture
def category_data(index, tables):
    return normalize_category_data(index, tables)


@pytest.fixture
def make_context(index, category_data):
    """Build an AnalyzerContext the way the orchestrator does."""
    def _make(message, target_brand=None):
        plan = parse_query(message, CATEGORY)
        resolution = resolve_entities(message, index, target_brand=target_brand, plan=plan)
        return AnalyzerContext(
            index=index,
            plan=plan,
            resolution=resolution,
            message=message,
            category_data=category_data,
            target_brand=target_brand,
        )

    return _make
