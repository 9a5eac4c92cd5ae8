"""
Moving Average Convergence Divergence (MACD).
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Sequence, Tuple

from ..models.ohlcv import Bar
from ..models.config import MACDPeriods
from .moving_average import compute_ema


@dataclass(frozen=True)
class MACD:
    """MACD line, signal line and histogram; each series ends on the latest bar."""
    macd: Tuple[Decimal, ...] = ()
    signal: Tuple[Decimal, ...] = ()
    histogram: Tuple[Decimal, ...] = ()

    @property
    def latest_histogram(self) -> Decimal:
        return self.histogram[-1] if self.histogram else Decimal(0)


def compute_macd(bars: Sequence[Bar], fast: int = 12, slow: int = 26, signal: int = 9) -> MACD:
    """
    Compute MACD from closes.

    The fast EMA starts ``slow - fast`` bars earlier than the slow EMA, so it
    is offset before subtracting; the signal EMA is aligned the same way
    before computing the histogram.

    Returns:
        MACD with empty series if fewer than ``slow`` bars
    """
    if not 0 < fast < slow:
        raise ValueError("MACD fast period must be positive and below the slow period")
    if len(bars) < slow:
        return MACD()

    closes = [b.close for b in bars]
    fast_ema = compute_ema(closes, fast)
    slow_ema = compute_ema(closes, slow)

    offset = slow - fast
    macd_line = [f - s for f, s in zip(fast_ema[offset:], slow_ema)]

    signal_line = compute_ema(macd_line, signal)
    histogram = [m - s for m, s in zip(macd_line[signal - 1:], signal_line)]

    return MACD(macd=tuple(macd_line), signal=tuple(signal_line), histogram=tuple(histogram))


def select_macd_periods(bar_count: int, schedule: Sequence[MACDPeriods]) -> MACDPeriods:
    """
    Pick the MACD periods for the available history.

    Args:
        bar_count: Number of bars available
        schedule: Entries ordered by ``min_bars`` descending

    Returns:
        First entry whose ``min_bars`` is met, else the last (shortest) entry
    """
    for periods in schedule:
        if bar_count >= periods.min_bars:
            return periods
    return schedule[-1]
