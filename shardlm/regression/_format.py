"""Number rounding for the text report."""

from decimal import Decimal, ROUND_HALF_UP
import math


def sig_digits(value: float, digits: int) -> float:
    """Round to `digits` significant digits. NaN and Inf pass through."""
    value = float(value)
    if not math.isfinite(value) or value == 0.0:
        return value
    return float(f"{value:.{digits}g}")


def round_digits(value: float, digits: int) -> float:
    """Round half up to `digits` decimal places. NaN and Inf pass through."""
    value = float(value)
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
