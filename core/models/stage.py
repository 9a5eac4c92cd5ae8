"""Per-stage scoring results (Relative strength, Volatility, Momentum, Trend)."""

from decimal import Decimal
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Direction(Enum):
    """Side the scores are computed for."""
    LONG = "long"
    SHORT = "short"


class StageName(Enum):
    """Scoring stages, in execution order."""
    RELATIVE_STRENGTH = "relative_strength"
    VOLATILITY = "volatility"
    MOMENTUM = "momentum"
    TREND = "trend"


class CrossoverType(Enum):
    """Short/long SMA crossover on the latest bar."""
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NONE = "None"

    @property
    def mirror(self) -> "CrossoverType":
        if self is CrossoverType.BULLISH:
            return CrossoverType.BEARISH
        if self is CrossoverType.BEARISH:
            return CrossoverType.BULLISH
        return CrossoverType.NONE


class TrendStrength(Enum):
    """ADX trend strength buckets."""
    NO_TREND = "No Trend"
    WEAK_TREND = "Weak Trend"
    STRONG_TREND = "Strong Trend"
    VERY_STRONG = "Very Strong"
    EXTREME = "Extreme"


@dataclass(frozen=True)
class StageResult:
    """Fields shared by every stage result (immutable)."""
    symbol: str
    name: str
    current_price: Optional[Decimal]
    score: int
    defaulted: bool = False

    def __post_init__(self):
        if not 1 <= self.score <= 100:
            raise ValueError(f"Stage score out of range: {self.score}")


@dataclass(frozen=True)
class RelativeStrengthResult(StageResult):
    """Stock return versus benchmark index return over one trading day."""
    previous_price: Optional[Decimal] = None
    stock_return: Optional[Decimal] = None  # percent
    index_return: Optional[Decimal] = None  # percent
    relative_strength: Optional[Decimal] = None  # ratio, 1 = in line with index


@dataclass(frozen=True)
class VolatilityResult(StageResult):
    """ATR and Bollinger Band readings."""
    atr: Decimal = Decimal(0)
    atr_ratio: Decimal = Decimal(0)  # percent of price
    bb_width: Decimal = Decimal(0)  # percent of middle band
    bb_position: Decimal = Decimal("0.5")  # 0-1 fraction of band
    method: str = "bands"  # bands | fallback | default


@dataclass(frozen=True)
class MomentumResult(StageResult):
    """SMA crossover and MACD histogram readings."""
    sma_short_current: Optional[Decimal] = None
    sma_short_previous: Optional[Decimal] = None
    sma_long_current: Optional[Decimal] = None
    sma_long_previous: Optional[Decimal] = None
    crossover: CrossoverType = CrossoverType.NONE
    macd_histogram: Decimal = Decimal(0)


@dataclass(frozen=True)
class TrendResult(StageResult):
    """ADX reading."""
    adx_value: Decimal = Decimal(0)
    trend_strength: TrendStrength = TrendStrength.NO_TREND
