"""Display rounding and trend statistics for chart readings."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from models.records import DisplayValue

Number = Union[int, float]

_TWO_PLACES = Decimal("0.01")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def round_display(value: Optional[Number]) -> Optional[DisplayValue]:
    """Round a reading for display.

    Whole numbers come back as ``int`` so 15 renders as "15" rather than
    "15.00"; anything else becomes a string with two decimals. Non-finite
    floats are returned untouched so callers can detect them.
    """
    if value is None:
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return value
        if value.is_integer():
            return int(value)
        return str(Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))
    return int(value)


def variation(first: Optional[Number], last: Optional[Number]) -> Optional[Number]:
    """Percentage change from ``first`` to ``last``.

    A zero starting point yields 0 when nothing moved and signed infinity
    otherwise.
    """
    if first is None or last is None:
        return None
    if first == 0 and last == 0:
        return 0
    if first == 0 and last > first:
        return math.inf
    if first == 0 and last < first:
        return -math.inf
    return _round_half_up(((last - first) / abs(first)) * 100)


def average(values: Iterable[Number]) -> float:
    items = list(values)
    if not items:
        return math.nan
    return sum(items) / len(items)
