"""
Average True Range (ATR) indicator.
"""

from decimal import Decimal
from typing import List, Sequence
from ..models.ohlcv import Bar


def true_ranges(bars: Sequence[Bar]) -> List[Decimal]:
    """
    True range of every bar after the first.

    TR = max(high - low, |high - prev close|, |low - prev close|)
    """
    ranges = []
    for i in range(1, len(bars)):
        prev_close = bars[i - 1].close
        bar = bars[i]
        ranges.append(max(bar.price_range, abs(bar.high - prev_close), abs(bar.low - prev_close)))
    return ranges


def compute_atr(bars: Sequence[Bar], period: int = 14) -> Decimal:
    """
    Compute ATR as the simple average of the last ``period`` true ranges.

    Args:
        bars: Bars sorted by date, ascending
        period: ATR period (default 14)

    Returns:
        ATR value, or Decimal(0) if fewer than ``period + 1`` bars
    """
    if period <= 0:
        raise ValueError("ATR period must be positive")
    if len(bars) < period + 1:
        return Decimal(0)

    ranges = true_ranges(bars)
    atr_sum = sum(ranges[-period:], Decimal(0))
    return atr_sum / Decimal(period)


def compute_atr_ratio(atr: Decimal, price: Decimal) -> Decimal:
    """ATR as a percentage of price (0 for a non-positive price)."""
    if price <= 0:
        return Decimal(0)
    return atr / price * Decimal(100)
