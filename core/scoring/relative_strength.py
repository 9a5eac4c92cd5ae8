"""Relative strength of a stock against the benchmark index."""

from decimal import Decimal

from ..models.stage import Direction
from ..utils.numeric import D
from .piecewise import clamp_score

BASE_SCORE = Decimal(50)
SPREAD_MULTIPLIER = Decimal(2)
FLAT_INDEX_THRESHOLD = Decimal("0.001")


def percent_return(current: Decimal, previous: Decimal) -> Decimal:
    """Simple return in percent; 0 for a non-positive previous price."""
    if previous <= 0:
        return Decimal(0)
    return (current - previous) / previous * Decimal(100)


def relative_strength_score(stock_return, index_return, direction: Direction = Direction.SHORT) -> int:
    """
    Score a stock's one-day return against the index return.

    Short: 50 - 2 * (stock - index), so underperformers score high.
    Long: 50 + 2 * (stock - index).

    Args:
        stock_return: Stock return, percent
        index_return: Index return, percent
        direction: Side to score for

    Returns:
        Score in [1, 100]
    """
    spread = D(stock_return) - D(index_return)
    if direction is Direction.SHORT:
        spread = -spread
    return clamp_score(BASE_SCORE + spread * SPREAD_MULTIPLIER)


def relative_strength_ratio(stock_return, index_return) -> Decimal:
    """
    Growth ratio of stock to index, (1 + s/100) / (1 + i/100).

    When the index is flat, returns 1 for a flat stock, 2 for a rising one
    and 0.5 for a falling one.
    """
    stock_return, index_return = D(stock_return), D(index_return)
    if abs(index_return) < FLAT_INDEX_THRESHOLD:
        if stock_return == 0:
            return Decimal(1)
        return Decimal(2) if stock_return > 0 else Decimal("0.5")
    stock_multiplier = 1 + stock_return / Decimal(100)
    index_multiplier = 1 + index_return / Decimal(100)
    if index_multiplier == 0:
        return Decimal(0)
    return stock_multiplier / index_multiplier
