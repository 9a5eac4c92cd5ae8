"""Decimal helpers shared by indicators and scorers."""

from decimal import Decimal, ROUND_HALF_UP, getcontext

# Precision for all indicator arithmetic
getcontext().prec = 28


def D(x) -> Decimal:
    """
    Convert an int, float, str or Decimal to Decimal.

    Floats go through ``str`` first so 0.1 becomes Decimal('0.1') rather than
    its binary expansion. Booleans are rejected even though they are ints.

    Raises:
        TypeError: If type is not supported
    """
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        raise TypeError(f"Unsupported numeric type: {type(x)}")
    if isinstance(x, int):
        return Decimal(x)
    if isinstance(x, str):
        return Decimal(x.strip())
    if isinstance(x, float):
        return Decimal(str(x))
    raise TypeError(f"Unsupported numeric type: {type(x)}")


def round_half_up(x) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(D(x).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def clamp(x: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    return max(lower, min(upper, x))
