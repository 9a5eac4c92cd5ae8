"""
Average Directional Index (ADX).

Two variants:
- simplified: a single DX over the most recent window, clamped to [15, 85]
- wilder: classic Wilder-smoothed ADX
"""

from decimal import Decimal
from typing import List, Sequence, Tuple

from ..models.ohlcv import Bar
from ..utils.numeric import clamp
from .atr import true_ranges

ADX_FLOOR = Decimal(15)
ADX_CEILING = Decimal(85)
ADX_DEFAULT = Decimal(25)


def directional_movement(bars: Sequence[Bar]) -> Tuple[List[Decimal], List[Decimal]]:
    """+DM and -DM for every bar after the first."""
    plus_dm, minus_dm = [], []
    for i in range(1, len(bars)):
        up_move = bars[i].high - bars[i - 1].high
        down_move = bars[i - 1].low - bars[i].low
        plus_dm.append(up_move if up_move > down_move and up_move > 0 else Decimal(0))
        minus_dm.append(down_move if down_move > up_move and down_move > 0 else Decimal(0))
    return plus_dm, minus_dm


def _dx(plus_di: Decimal, minus_di: Decimal) -> Decimal:
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return Decimal(0)
    return abs(plus_di - minus_di) / di_sum * Decimal(100)


def compute_simplified_adx(bars: Sequence[Bar], period: int = 14) -> Decimal:
    """
    Simplified ADX over the most recent ``period + 1`` bars.

    Averages true range, +DM and -DM over the window, derives +DI/-DI and a
    single DX, and clamps it to [15, 85].

    Returns:
        ADX value; 25 if fewer than ``period`` bars
    """
    if period <= 0:
        raise ValueError("ADX period must be positive")
    if len(bars) < period:
        return ADX_DEFAULT

    window = list(bars[-(period + 1):])
    ranges = true_ranges(window)
    plus_dm, minus_dm = directional_movement(window)
    count = Decimal(len(ranges))

    atr = sum(ranges, Decimal(0)) / count
    if atr == 0:
        return ADX_FLOOR

    plus_di = (sum(plus_dm, Decimal(0)) / count) / atr * Decimal(100)
    minus_di = (sum(minus_dm, Decimal(0)) / count) / atr * Decimal(100)
    return clamp(_dx(plus_di, minus_di), ADX_FLOOR, ADX_CEILING)


def wilder_smooth(values: Sequence[Decimal], period: int) -> List[Decimal]:
    """Wilder running sum: seed with the sum of the first ``period`` values."""
    if len(values) < period:
        return []
    smoothed = [sum(values[:period], Decimal(0))]
    for value in values[period:]:
        prev = smoothed[-1]
        smoothed.append(prev - prev / Decimal(period) + value)
    return smoothed


def compute_wilder_adx(bars: Sequence[Bar], period: int = 14) -> Decimal:
    """
    Classic ADX with Wilder smoothing of TR, +DM, -DM and DX.

    Returns:
        Latest ADX value; 0 if fewer than ``2 * period`` bars
    """
    if period <= 0:
        raise ValueError("ADX period must be positive")
    if len(bars) < 2 * period:
        return Decimal(0)

    ranges = true_ranges(bars)
    plus_dm, minus_dm = directional_movement(bars)

    smoothed_tr = wilder_smooth(ranges, period)
    smoothed_plus = wilder_smooth(plus_dm, period)
    smoothed_minus = wilder_smooth(minus_dm, period)

    dx = []
    for tr, plus, minus in zip(smoothed_tr, smoothed_plus, smoothed_minus):
        if tr == 0:
            dx.append(Decimal(0))
            continue
        dx.append(_dx(plus / tr * Decimal(100), minus / tr * Decimal(100)))

    # Wilder average, not running sum, for the final ADX line
    if len(dx) < period:
        return Decimal(0)
    adx = sum(dx[:period], Decimal(0)) / Decimal(period)
    for value in dx[period:]:
        adx = (adx * Decimal(period - 1) + value) / Decimal(period)
    return adx
