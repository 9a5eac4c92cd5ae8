"""
Bollinger Bands: width and %b position of the latest close.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Sequence

from ..models.ohlcv import Bar
from ..utils.numeric import D


@dataclass(frozen=True)
class BollingerBands:
    """Band readings for the most recent bar."""
    width: Decimal  # (upper - lower) / middle, percent
    position: Decimal  # (close - lower) / (upper - lower), 0-1 fraction
    middle: Decimal = Decimal(0)
    upper: Decimal = Decimal(0)
    lower: Decimal = Decimal(0)


EMPTY_BANDS = BollingerBands(width=Decimal(0), position=Decimal(0))


def compute_bollinger_bands(bars: Sequence[Bar], period: int = 20, std_dev_multiplier=2) -> BollingerBands:
    """
    Compute Bollinger Bands over the closes of the last ``period`` bars.

    Uses the population standard deviation. Position is returned as a
    0-1 fraction (it can leave that range when the close is outside the
    bands). A flat window has zero width and sits mid-band (0.5).

    Args:
        bars: Bars sorted by date, ascending
        period: Window length (default 20)
        std_dev_multiplier: Band distance in standard deviations (default 2)

    Returns:
        BollingerBands; width 0 and position 0 if fewer than ``period`` bars
    """
    if period <= 0:
        raise ValueError("Bollinger period must be positive")
    if len(bars) < period:
        return EMPTY_BANDS

    k = D(std_dev_multiplier)
    closes = [b.close for b in bars[-period:]]
    sma = sum(closes, Decimal(0)) / Decimal(period)
    variance = sum(((c - sma) ** 2 for c in closes), Decimal(0)) / Decimal(period)
    sd = variance.sqrt()

    upper = sma + sd * k
    lower = sma - sd * k
    last_close = closes[-1]

    if upper == lower:
        return BollingerBands(width=Decimal(0), position=Decimal("0.5"), middle=sma, upper=upper, lower=lower)

    width = (upper - lower) / sma * Decimal(100) if sma != 0 else Decimal(0)
    position = (last_close - lower) / (upper - lower)
    return BollingerBands(width=width, position=position, middle=sma, upper=upper, lower=lower)
