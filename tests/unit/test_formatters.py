import pytest

from src.utils.formatters import (
    format_currency,
    format_number,
    format_percent,
    format_price,
    format_rank,
    format_share,
    normalize_key,
    ratio_change,
    safe_number,
    signed_points,
    signed_rank_delta,
    truncate,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (650, "650"),
        (1500, "1.5K"),
        (1_250_000, "1.3M"),
        (999_999, "1M"),
        (2_000_000_000, "2B"),
        (-2500, "-2.5K"),
        (0, "0"),
    ],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_format_currency():
    assert format_currency(650000) == "$650K"
    assert format_currency(-1_250_000) == "-$1.3M"
    assert format_currency(None) == "$0"


def test_format_price_keeps_cents():
    assert format_price(1249.99) == "$1,249.99"
    assert format_price(-5) == "-$5.00"


def test_format_percent():
    assert format_percent(0.12) == "+12.0%"
    assert format_percent(-0.05) == "-5.0%"
    assert format_percent(None) == "n/a"


def test_share_points_and_ranks():
    assert format_share(0.5) == "50%"
    assert format_share(None) == "n/a"
    assert signed_points(0.01) == "+1.0pt"
    assert signed_points(-0.02) == "-2.0pt"
    assert format_rank(3) == "#3"
    assert format_rank(None) == "n/a"
    assert signed_rank_delta(0) == "0"
    assert signed_rank_delta(2) == "+2"
    assert signed_rank_delta(-1) == "-1"
    assert signed_rank_delta(None) == "n/a"


def test_truncate():
    assert truncate("abcdef", 10) == "abcdef"
    assert truncate("abcdef", 4) == "abc…"


def test_ratio_change():
    assert ratio_change(120, 100) == pytest.approx(0.2)
    assert ratio_change(120, 0) is None
    assert ratio_change(120, None) is None


def test_normalize_key():
    assert normalize_key("BLCK-TEC Inc.") == "blcktecinc"
    assert normalize_key(None) == ""


@pytest.mark.parametrize("value", [None, True, "abc", float("nan"), float("inf"), object()])
def test_safe_number_rejects_non_numbers(value):
    assert safe_number(value) == 0.0


def test_safe_number_parses_strings():
    assert safe_number("12.5") == 12.5
    assert safe_number(3) == 3.0
