"""
Base indicator classes.
"""

from decimal import Decimal
from dataclasses import dataclass, asdict
from typing import Optional, Dict


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator readings for one (symbol, date). Computed fresh, never persisted."""
    atr: Optional[Decimal] = None
    atr_ratio: Optional[Decimal] = None
    bb_width: Optional[Decimal] = None
    bb_position: Optional[Decimal] = None  # 0-1 fraction of the band
    sma_short: Optional[Decimal] = None
    sma_long: Optional[Decimal] = None
    macd_histogram: Optional[Decimal] = None
    adx_value: Optional[Decimal] = None

    def as_floats(self) -> Dict[str, Optional[float]]:
        """Readings as floats, for structured logs."""
        return {k: (float(v) if v is not None else None) for k, v in asdict(self).items()}
