"""
Momentum score from the SMA crossover and the latest MACD histogram value.

The short table rewards bearish crossovers and negative histograms. The long
table is its mirror: the crossover is swapped and the histogram negated.
"""

from decimal import Decimal
from typing import Dict, Tuple

from ..models.stage import CrossoverType, Direction
from ..utils.numeric import D
from .piecewise import clamp_score

# |histogram| below this is treated as flat when a crossover happened
NEAR_ZERO_HISTOGRAM = Decimal("0.01")
# Without a crossover, the histogram must clear this to count
NO_CROSS_THRESHOLD = Decimal("0.02")

# crossover -> (histogram agrees, histogram near zero, histogram disagrees)
SHORT_CROSSOVER_SCORES: Dict[CrossoverType, Tuple[int, int, int]] = {
    CrossoverType.BEARISH: (95, 75, 55),
    CrossoverType.BULLISH: (15, 25, 40),
}

# No crossover: (histogram < -threshold, histogram > threshold, otherwise)
SHORT_NO_CROSS_SCORES = (70, 30, 50)

# short score + long score for the same readings, per branch
MIRROR_SUMS = {
    "agrees": 110,
    "near_zero": 100,
    "disagrees": 95,
    "no_cross": 100,
}


def _short_momentum_score(crossover: CrossoverType, histogram: Decimal) -> int:
    if crossover is CrossoverType.NONE:
        below, above, flat = SHORT_NO_CROSS_SCORES
        if histogram < -NO_CROSS_THRESHOLD:
            return below
        if histogram > NO_CROSS_THRESHOLD:
            return above
        return flat

    agrees, near_zero, disagrees = SHORT_CROSSOVER_SCORES[crossover]
    bearish = crossover is CrossoverType.BEARISH
    # A bearish cross is confirmed by a negative histogram, a bullish one by a positive
    if (histogram < 0) if bearish else (histogram > 0):
        return agrees
    if abs(histogram) < NEAR_ZERO_HISTOGRAM:
        return near_zero
    return disagrees


def momentum_score(crossover: CrossoverType, macd_histogram, direction: Direction = Direction.SHORT) -> int:
    """
    Score momentum for one symbol.

    Args:
        crossover: SMA crossover on the latest bar
        macd_histogram: Latest MACD histogram value
        direction: Side to score for

    Returns:
        Score in [1, 100]
    """
    histogram = D(macd_histogram)
    if direction is Direction.LONG:
        return clamp_score(_short_momentum_score(crossover.mirror, -histogram))
    return clamp_score(_short_momentum_score(crossover, histogram))
