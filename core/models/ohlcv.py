"""
Daily OHLCV price bar model.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass


@dataclass(frozen=True)
class Bar:
    """Single daily OHLCV bar (immutable).

    The usual ordering ``high >= max(open, close) >= min(open, close) >= low``
    is assumed by the indicators but not enforced here; loaders check
    ``is_well_formed`` and report offending rows.
    """
    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Decimal(0)

    @property
    def is_well_formed(self) -> bool:
        return (
            self.high >= max(self.open, self.close)
            and min(self.open, self.close) >= self.low
            and self.volume >= 0
        )

    @property
    def price_range(self) -> Decimal:
        """High-low range of the bar."""
        return self.high - self.low
