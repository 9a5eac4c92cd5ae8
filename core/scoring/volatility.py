"""
Volatility score from ATR ratio and Bollinger Band width/position.

Weighted 40% ATR ratio, 30% band width, 30% band position (0-1 fraction).
"""

from decimal import Decimal
from typing import Dict, Sequence

from ..models.stage import Direction
from ..utils.numeric import D
from .piecewise import PiecewiseTable, band, clamp_score

ATR_WEIGHT = Decimal("0.4")
WIDTH_WEIGHT = Decimal("0.3")
POSITION_WEIGHT = Decimal("0.3")

ATR_RATIO_TABLES: Dict[Direction, PiecewiseTable] = {
    Direction.SHORT: PiecewiseTable("short_atr_ratio", [
        band(None, 1, 100, include_upper=False),
        band(1, 2, 80, 60, include_upper=False),
        band(2, 5, 60),
        band(5, 10, 60, 90, include_lower=False),
        band(10, None, 100, include_lower=False),
    ]),
    Direction.LONG: PiecewiseTable("long_atr_ratio", [
        band(None, 1, 20, include_upper=False),
        band(1, 2, 50, 80, include_upper=False),
        band(2, 5, 80),
        band(5, 10, 80, 30, include_lower=False),
        band(10, None, 10, include_lower=False),
    ]),
}

BB_WIDTH_TABLES: Dict[Direction, PiecewiseTable] = {
    Direction.SHORT: PiecewiseTable("short_bb_width", [
        band(None, 2, 100, include_upper=False),
        band(2, 3, 90, 70, include_upper=False),
        band(3, 6, 50),
        band(6, 12, 50, 20, include_lower=False),
        band(12, None, 10, include_lower=False),
    ]),
    Direction.LONG: PiecewiseTable("long_bb_width", [
        band(None, 2, 30, include_upper=False),
        band(2, 3, 40, 70, include_upper=False),
        band(3, 6, 70),
        band(6, 12, 70, 30, include_lower=False),
        band(12, None, 35, include_lower=False),
    ]),
}

BB_POSITION_TABLES: Dict[Direction, PiecewiseTable] = {
    Direction.SHORT: PiecewiseTable("short_bb_position", [
        band(None, "0.3", 20, include_upper=False),
        band("0.3", "0.4", 30, include_upper=False),
        band("0.4", "0.6", 50, include_upper=False),
        band("0.6", "0.7", 75, include_upper=False),
        band("0.7", "0.8", 90),
        band("0.8", None, 85, include_lower=False),
    ]),
    Direction.LONG: PiecewiseTable("long_bb_position", [
        band(None, "0.2", 85, include_upper=False),
        band("0.2", "0.3", 90),
        band("0.3", "0.4", 75, include_lower=False, include_upper=False),
        band("0.4", "0.6", 50),
        band("0.6", "0.7", 30, include_lower=False),
        band("0.7", None, 20, include_lower=False),
    ]),
}

# Fallback when there is not enough history for ATR/Bollinger:
# one-day move magnitude (percent) -> score
FALLBACK_TABLES: Dict[Direction, PiecewiseTable] = {
    Direction.SHORT: PiecewiseTable("short_fallback_volatility", [
        band(None, 1, 70, include_upper=False),
        band(1, 3, 30),
        band(3, 6, 50, include_lower=False),
        band(6, None, 70, include_lower=False),
    ]),
    Direction.LONG: PiecewiseTable("long_fallback_volatility", [
        band(None, 1, 30, include_upper=False),
        band(1, 3, 70),
        band(3, 6, 50, include_lower=False),
        band(6, None, 30, include_lower=False),
    ]),
}


def volatility_score(atr_ratio, bb_width, bb_position, direction: Direction = Direction.SHORT) -> int:
    """
    Weighted volatility score.

    Args:
        atr_ratio: ATR as percent of price
        bb_width: Bollinger Band width, percent of the middle band
        bb_position: Close position within the bands, 0-1 fraction
        direction: Side to score for

    Returns:
        Score in [1, 100]
    """
    atr_sub = ATR_RATIO_TABLES[direction].evaluate(atr_ratio)
    width_sub = BB_WIDTH_TABLES[direction].evaluate(bb_width)
    position_sub = BB_POSITION_TABLES[direction].evaluate(bb_position)
    return clamp_score(atr_sub * ATR_WEIGHT + width_sub * WIDTH_WEIGHT + position_sub * POSITION_WEIGHT)


def one_day_move(closes: Sequence[Decimal]) -> Decimal:
    """Magnitude of the last close-to-close move in percent (0 without a previous close)."""
    if len(closes) < 2 or closes[-2] <= 0:
        return Decimal(0)
    return abs((closes[-1] - closes[-2]) / closes[-2] * Decimal(100))


def fallback_volatility_score(closes: Sequence[Decimal], direction: Direction = Direction.SHORT) -> int:
    """Coarse volatility score from the last one-day move, for short histories."""
    move = one_day_move([D(c) for c in closes])
    return clamp_score(FALLBACK_TABLES[direction].evaluate(move))
