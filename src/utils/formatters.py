"""
Answer formatting utilities.

Compact currency/number rendering, signed percentages and the key
normalization shared by the index, the resolver and the analyzers.
"""

import math
import re
from typing import Optional, Union

Number = Union[int, float]

_NON_ALNUM = re.compile(r"[^a-z0-9]")

_COMPACT_STEPS = (
    (1_000_000_000_000, "T"),
    (1_000_000_000, "B"),
    (1_000_000, "M"),
    (1_000, "K"),
)


def normalize_key(value: Optional[str]) -> str:
    """Lower-case a label and strip everything except ASCII letters and digits."""
    return _NON_ALNUM.sub("", (value or "").lower())


def safe_number(value: object) -> float:
    """Coerce a cell to a finite float, treating anything else as zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _round1(value: float) -> float:
    """Round half up to one decimal."""
    return math.floor(value * 10 + 0.5) / 10


def _trim(text: str) -> str:
    return text[:-2] if text.endswith(".0") else text


def format_number(value: Number) -> str:
    """
    Compact notation with at most one decimal.

    Example:
        >>> format_number(1_250_000)
        '1.3M'
        >>> format_number(650)
        '650'
    """
    number = safe_number(value)
    sign = "-" if number < 0 else ""
    magnitude = abs(number)
    for position, (step, suffix) in enumerate(_COMPACT_STEPS):
        if magnitude >= step:
            scaled = _round1(magnitude / step)
            # 999_950 rounds up to 1000.0K; promote it to the next unit
            if scaled >= 1000 and position > 0:
                step, suffix = _COMPACT_STEPS[position - 1]
                scaled = _round1(magnitude / step)
            return f"{sign}{_trim(f'{scaled:.1f}')}{suffix}"
    return f"{sign}{_trim(f'{_round1(magnitude):.1f}')}"


def format_currency(value: Number) -> str:
    """Compact US-dollar notation, e.g. ``$650K``."""
    number = safe_number(value)
    text = format_number(abs(number))
    return f"-${text}" if number < 0 else f"${text}"


def format_price(value: Number) -> str:
    """Full US-dollar notation with cents, e.g. ``$1,249.99``."""
    number = safe_number(value)
    text = f"{abs(number):,.2f}"
    return f"-${text}" if number < 0 else f"${text}"


def format_percent(value: Optional[float]) -> str:
    """Signed percentage with one decimal; ``n/a`` when unknown."""
    if value is None or value != value:
        return "n/a"
    return f"{'+' if value >= 0 else ''}{value * 100:.1f}%"


def format_share(value: Optional[float]) -> str:
    """Unsigned share percentage, e.g. ``34.5%``."""
    if value is None or value != value:
        return "n/a"
    return f"{_trim(f'{value * 100:.1f}')}%"


def signed_points(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value * 100:.1f}pt"


def format_rank(value: Optional[int]) -> str:
    return "n/a" if value is None else f"#{value}"


def signed_rank_delta(value: Optional[int]) -> str:
    if value is None:
        return "n/a"
    if value == 0:
        return "0"
    return f"{'+' if value > 0 else ''}{round(value)}"


def truncate(value: str, length: int) -> str:
    if len(value) <= length:
        return value
    return f"{value[:max(0, length - 1)]}…"


def ratio_change(current: float, previous: Optional[float]) -> Optional[float]:
    """Relative change, or None when there is no usable base."""
    if not previous:
        return None
    return (current - previous) / previous


__all__ = [
    "normalize_key",
    "safe_number",
    "format_number",
    "format_currency",
    "format_price",
    "format_percent",
    "format_share",
    "signed_points",
    "format_rank",
    "signed_rank_delta",
    "truncate",
    "ratio_change",
]
