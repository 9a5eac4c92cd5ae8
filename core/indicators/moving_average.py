"""
Simple and exponential moving averages, and SMA crossover detection.
"""

from decimal import Decimal
from typing import Iterator, List, Sequence

from ..models.ohlcv import Bar
from ..models.stage import CrossoverType


def compute_sma(bars: Sequence[Bar], period: int) -> Iterator[Decimal]:
    """
    Lazily yield the SMA of closes for every full window, sliding by one bar.

    Yields nothing if fewer than ``period`` bars are available.
    """
    if period <= 0:
        raise ValueError("SMA period must be positive")
    if len(bars) < period:
        return
    window_sum = sum((b.close for b in bars[:period]), Decimal(0))
    yield window_sum / Decimal(period)
    for i in range(period, len(bars)):
        window_sum += bars[i].close - bars[i - period].close
        yield window_sum / Decimal(period)


def compute_ema(values: Sequence[Decimal], period: int) -> List[Decimal]:
    """
    Exponential moving average.

    The first value is the SMA of the first ``period`` inputs; each following
    value moves toward the input by the multiplier 2 / (period + 1).

    Returns:
        One value per input from index ``period - 1`` on; empty if fewer
        than ``period`` inputs
    """
    if period <= 0:
        raise ValueError("EMA period must be positive")
    if len(values) < period:
        return []

    multiplier = Decimal(2) / Decimal(period + 1)
    ema = sum(values[:period], Decimal(0)) / Decimal(period)
    out = [ema]
    for value in values[period:]:
        ema = ema + (value - ema) * multiplier
        out.append(ema)
    return out


def detect_crossover(short_previous: Decimal, short_current: Decimal,
                     long_previous: Decimal, long_current: Decimal) -> CrossoverType:
    """Classify the short/long SMA relationship between the previous and current bar."""
    if short_previous <= long_previous and short_current > long_current:
        return CrossoverType.BULLISH
    if short_previous >= long_previous and short_current < long_current:
        return CrossoverType.BEARISH
    return CrossoverType.NONE
