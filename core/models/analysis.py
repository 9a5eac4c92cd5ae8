"""Aggregated analysis results and run progress models."""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..utils.numeric import round_half_up
from .stage import (
    Direction,
    StageName,
    RelativeStrengthResult,
    VolatilityResult,
    MomentumResult,
    TrendResult,
)


class RunState(Enum):
    """States of one analysis run."""
    INIT = "init"
    STAGE_RELATIVE_STRENGTH = "stage_relative_strength"
    STAGE_VOLATILITY = "stage_volatility"
    STAGE_MOMENTUM = "stage_momentum"
    STAGE_TREND = "stage_trend"
    AGGREGATE = "aggregate"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.DONE, RunState.FAILED)


STAGE_STATES = {
    StageName.RELATIVE_STRENGTH: RunState.STAGE_RELATIVE_STRENGTH,
    StageName.VOLATILITY: RunState.STAGE_VOLATILITY,
    StageName.MOMENTUM: RunState.STAGE_MOMENTUM,
    StageName.TREND: RunState.STAGE_TREND,
}


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class AnalysisResult:
    """Final per-symbol result for one analysis date (immutable)."""
    symbol: str
    name: str
    current_price: Optional[Decimal]
    relative_strength_score: int
    volatility_score: int
    momentum_score: int
    trend_score: int
    final_score: int
    signal: str
    direction: Direction
    analysis_date: date
    calculation_date: date
    relative_strength: Optional[RelativeStrengthResult] = None
    volatility: Optional[VolatilityResult] = None
    momentum: Optional[MomentumResult] = None
    trend: Optional[TrendResult] = None
    defaulted_stages: Tuple[StageName, ...] = ()

    def __post_init__(self):
        if not 1 <= self.final_score <= 100:
            raise ValueError(f"Final score out of range: {self.final_score}")

    @property
    def stage_scores(self) -> Dict[StageName, int]:
        return {
            StageName.RELATIVE_STRENGTH: self.relative_strength_score,
            StageName.VOLATILITY: self.volatility_score,
            StageName.MOMENTUM: self.momentum_score,
            StageName.TREND: self.trend_score,
        }

    @property
    def is_complete(self) -> bool:
        """True if every stage produced a real (non-defaulted) result."""
        return not self.defaulted_stages

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON-friendly record, one per symbol, for result sinks."""
        rs, vol, mom, trend = self.relative_strength, self.volatility, self.momentum, self.trend
        return {
            "symbol": self.symbol,
            "name": self.name,
            "currentPrice": _num(self.current_price),
            "direction": self.direction.value,
            # Relative strength
            "previousPrice": _num(rs.previous_price) if rs else None,
            "stockReturn": _num(rs.stock_return) if rs else None,
            "indexReturn": _num(rs.index_return) if rs else None,
            "relativeStrength": _num(rs.relative_strength) if rs else None,
            "relativeStrengthScore": self.relative_strength_score,
            # Volatility
            "atrValue": _num(vol.atr) if vol else None,
            "atrRatio": _num(vol.atr_ratio) if vol else None,
            "bbWidth": _num(vol.bb_width) if vol else None,
            "bbPosition": _num(vol.bb_position) if vol else None,
            "volatilityScore": self.volatility_score,
            # Momentum
            "smaShortCurrent": _num(mom.sma_short_current) if mom else None,
            "smaShortPrevious": _num(mom.sma_short_previous) if mom else None,
            "smaLongCurrent": _num(mom.sma_long_current) if mom else None,
            "smaLongPrevious": _num(mom.sma_long_previous) if mom else None,
            "crossoverType": mom.crossover.value if mom else None,
            "macdHistogram": _num(mom.macd_histogram) if mom else None,
            "momentumScore": self.momentum_score,
            # Trend
            "adxValue": _num(trend.adx_value) if trend else None,
            "trendStrength": trend.trend_strength.value if trend else None,
            "trendScore": self.trend_score,
            # Final
            "finalScore": self.final_score,
            "signal": self.signal,
            "defaultedStages": [s.value for s in self.defaulted_stages],
            "analysisDate": self.analysis_date.isoformat(),
            "calculationDate": self.calculation_date.isoformat(),
        }


@dataclass(frozen=True)
class AnalysisRun:
    """Result set of one run: one analysis date, one candidate universe."""
    date: date
    direction: Direction
    stocks: Tuple[AnalysisResult, ...]
    total_stocks: int
    analysis_time_ms: int
    calculation_date: date
    config_hash: str = ""
    saved: bool = False

    @property
    def processed_stocks(self) -> int:
        return len(self.stocks)

    @property
    def defaulted_stocks(self) -> int:
        return sum(1 for s in self.stocks if not s.is_complete)

    @property
    def average_score(self) -> int:
        """Mean final score across the result set (0 when empty)."""
        if not self.stocks:
            return 0
        total = sum(s.final_score for s in self.stocks)
        return round_half_up(Decimal(total) / Decimal(len(self.stocks)))

    def ranked(self):
        """Results ordered best candidate first."""
        return sorted(self.stocks, key=lambda s: (-s.final_score, s.symbol))


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification emitted after each symbol and at stage boundaries."""
    state: RunState
    percent: float
    message: str
    symbol: Optional[str] = None
    index: Optional[int] = None
    total: Optional[int] = None
    run: Optional[AnalysisRun] = field(default=None, repr=False)
