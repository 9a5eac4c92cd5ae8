"""
Trend score from the ADX value.

Short favors weak or absent trends (easier to reverse); long favors strong ones.
"""

from typing import Dict, Tuple

from ..models.stage import Direction, TrendStrength
from .piecewise import PiecewiseTable, band, clamp_score


def _trend_table(name: str, scores) -> PiecewiseTable:
    no_trend, weak, strong, very_strong, extreme = scores
    return PiecewiseTable(name, [
        band(None, 20, no_trend, include_upper=False, label=TrendStrength.NO_TREND),
        band(20, 25, weak, include_upper=False, label=TrendStrength.WEAK_TREND),
        band(25, 50, strong, label=TrendStrength.STRONG_TREND),
        band(50, 75, very_strong, include_lower=False, label=TrendStrength.VERY_STRONG),
        band(75, None, extreme, include_lower=False, label=TrendStrength.EXTREME),
    ])


TREND_TABLES: Dict[Direction, PiecewiseTable] = {
    Direction.SHORT: _trend_table("short_trend", (85, 75, 25, 15, 35)),
    Direction.LONG: _trend_table("long_trend", (25, 45, 85, 95, 75)),
}


def trend_strength_score(adx_value, direction: Direction = Direction.SHORT) -> Tuple[int, TrendStrength]:
    """
    Map an ADX value to a score and a trend strength label.

    Returns:
        (score in [1, 100], TrendStrength)
    """
    matched = TREND_TABLES[direction].lookup(adx_value)
    return clamp_score(matched.start_score), matched.label
