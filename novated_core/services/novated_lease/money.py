"""Currency helpers shared by the novated lease calculators."""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Union

Number = Union[int, float, Decimal]


def is_finite_number(value: Any) -> bool:
    """True for real numbers that are not NaN or infinite (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    return math.isfinite(value)


def to_decimal(value: Number) -> Decimal:
    """Convert using the shortest repr so 1400.555 stays 1400.555."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def sum_currency(*values: Number) -> Decimal:
    return sum((to_decimal(v) for v in values), Decimal("0"))


def round_currency(amount: Number, dp: int = 2) -> float:
    """Round half-up to dp places and return a float for the result models."""
    quantum = Decimal(1).scaleb(-dp)
    rounded = to_decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    # Avoid -0.0 leaking into snapshots
    return float(rounded) + 0.0


def round_rate(value: Number, dp: int = 6) -> float:
    return round_currency(value, dp)
