"""
Scoring stages.

Each stage walks the carried candidate list in order, fetches the bars it
needs from the historical data provider, computes indicators, scores them
and yields one StageTick per symbol. Recoverable data gaps produce a neutral,
defaulted result; unexpected failures leave the symbol without a result for
that stage (it is still carried to the next stage).
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from ..errors import (
    AnalysisError,
    ComputationError,
    InsufficientDataError,
    LookupMissError,
)
from ..indicators.adx import compute_simplified_adx, compute_wilder_adx
from ..indicators.atr import compute_atr, compute_atr_ratio
from ..indicators.base import IndicatorSnapshot
from ..indicators.bollinger import compute_bollinger_bands
from ..indicators.macd import compute_macd, select_macd_periods
from ..indicators.moving_average import compute_sma, detect_crossover
from ..models.candidate import Candidate
from ..models.config import AnalysisConfig
from ..models.ohlcv import Bar
from ..models.stage import (
    StageName,
    StageResult,
    RelativeStrengthResult,
    VolatilityResult,
    MomentumResult,
    TrendResult,
)
from ..scoring.momentum import momentum_score
from ..scoring.relative_strength import (
    percent_return,
    relative_strength_ratio,
    relative_strength_score,
)
from ..scoring.trend import trend_strength_score
from ..scoring.volatility import fallback_volatility_score, one_day_move, volatility_score
from .trading_calendar import previous_trading_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisContext:
    """Everything a stage needs for one run; built once at INIT."""
    config: AnalysisConfig
    provider: Any  # get_bars(symbol, as_of, count) -> List[Bar]
    candidates: Tuple[Candidate, ...]
    target_date: date
    benchmark_bars: Tuple[Bar, ...]

    @property
    def index_return(self) -> Decimal:
        current, previous = self.benchmark_bars[-1].close, self.benchmark_bars[-2].close
        return percent_return(current, previous)

    def fetch(self, symbol: str, stage: StageName) -> List[Bar]:
        return list(self.provider.get_bars(symbol, self.target_date, self.config.lookback[stage]))


@dataclass(frozen=True)
class StageTick:
    """Outcome for one symbol within a stage. ``result`` is None when skipped."""
    stage: StageName
    index: int
    total: int
    candidate: Candidate
    result: Optional[StageResult]

    @property
    def symbol(self) -> str:
        return self.candidate.symbol


def _require_bars(bars: Sequence[Bar], candidate: Candidate, stage: StageName, required: int) -> None:
    if not bars:
        raise LookupMissError(
            f"{candidate.symbol}: no bars on or before the analysis date",
            symbol=candidate.symbol,
            stage=stage.value,
        )
    if len(bars) < required:
        raise InsufficientDataError(candidate.symbol, stage.value, len(bars), required)


def _default_result(stage: StageName, candidate: Candidate, price: Optional[Decimal], score: int) -> StageResult:
    common = dict(symbol=candidate.symbol, name=candidate.name, current_price=price, score=score, defaulted=True)
    if stage is StageName.RELATIVE_STRENGTH:
        return RelativeStrengthResult(**common)
    if stage is StageName.VOLATILITY:
        return VolatilityResult(method="default", **common)
    if stage is StageName.MOMENTUM:
        return MomentumResult(**common)
    return TrendResult(**common)


def _run_stage(context: AnalysisContext, candidates: Sequence[Candidate], stage: StageName,
               compute: Callable[[AnalysisContext, Candidate, List[Bar]], StageResult]) -> Iterator[StageTick]:
    total = len(candidates)
    for index, candidate in enumerate(candidates):
        bars: List[Bar] = []
        try:
            bars = context.fetch(candidate.symbol, stage)
            result = compute(context, candidate, bars)
        except (InsufficientDataError, LookupMissError) as e:
            logger.warning("stage_defaulted", extra=e.to_dict())
            price = bars[-1].close if bars else None
            result = _default_result(stage, candidate, price, context.config.neutral_score)
        except AnalysisError as e:
            if not e.recoverable:
                raise
            logger.exception("stage_symbol_failed", extra=e.to_dict())
            result = None
        except Exception as e:
            error = ComputationError(str(e), symbol=candidate.symbol, stage=stage.value)
            logger.exception("stage_symbol_failed", extra=error.to_dict())
            result = None
        yield StageTick(stage=stage, index=index, total=total, candidate=candidate, result=result)


def _log_price_gap(candidate: Candidate, bars: Sequence[Bar]) -> None:
    current, previous = bars[-1], bars[-2]
    expected = previous_trading_day(current.date)
    if previous.date < expected:
        logger.warning("price_gap_detected", extra={
            "symbol": candidate.symbol,
            "current_date": current.date.isoformat(),
            "previous_date": previous.date.isoformat(),
            "expected_previous_date": expected.isoformat(),
        })


def compute_relative_strength(context: AnalysisContext, candidate: Candidate,
                              bars: List[Bar]) -> RelativeStrengthResult:
    stage = StageName.RELATIVE_STRENGTH
    _require_bars(bars, candidate, stage, context.config.minimum_bars[stage])
    _log_price_gap(candidate, bars)

    current, previous = bars[-1].close, bars[-2].close
    stock_return = percent_return(current, previous)
    index_return = context.index_return
    score = relative_strength_score(stock_return, index_return, context.config.direction)

    logger.debug("relative_strength_scored", extra={
        "symbol": candidate.symbol,
        "stock_return": float(stock_return),
        "index_return": float(index_return),
        "score": score,
    })
    return RelativeStrengthResult(
        symbol=candidate.symbol,
        name=candidate.name,
        current_price=current,
        score=score,
        previous_price=previous,
        stock_return=stock_return,
        index_return=index_return,
        relative_strength=relative_strength_ratio(stock_return, index_return),
    )


def compute_volatility(context: AnalysisContext, candidate: Candidate, bars: List[Bar]) -> VolatilityResult:
    """ATR + Bollinger score; coarse one-day-move fallback for short histories."""
    stage = StageName.VOLATILITY
    config = context.config
    _require_bars(bars, candidate, stage, 1)
    current = bars[-1].close

    if len(bars) < config.minimum_bars[stage]:
        closes = [b.close for b in bars]
        score = fallback_volatility_score(closes, config.direction)
        logger.info("volatility_fallback_used", extra={
            "symbol": candidate.symbol,
            "available": len(bars),
            "required": config.minimum_bars[stage],
            "one_day_move": float(one_day_move(closes)),
            "score": score,
        })
        return VolatilityResult(
            symbol=candidate.symbol, name=candidate.name, current_price=current,
            score=score, method="fallback",
        )

    atr = compute_atr(bars, config.atr_period)
    atr_ratio = compute_atr_ratio(atr, current)
    bands = compute_bollinger_bands(bars, config.bb_period, config.bb_std_dev)
    score = volatility_score(atr_ratio, bands.width, bands.position, config.direction)

    snapshot = IndicatorSnapshot(atr=atr, atr_ratio=atr_ratio, bb_width=bands.width, bb_position=bands.position)
    logger.debug("volatility_scored", extra={"symbol": candidate.symbol, "score": score, **snapshot.as_floats()})
    return VolatilityResult(
        symbol=candidate.symbol,
        name=candidate.name,
        current_price=current,
        score=score,
        atr=atr,
        atr_ratio=atr_ratio,
        bb_width=bands.width,
        bb_position=bands.position,
        method="bands",
    )


def compute_momentum(context: AnalysisContext, candidate: Candidate, bars: List[Bar]) -> MomentumResult:
    stage = StageName.MOMENTUM
    config = context.config
    _require_bars(bars, candidate, stage, config.minimum_bars[stage])

    sma_short = list(compute_sma(bars, config.sma_short_period))
    sma_long = list(compute_sma(bars, config.sma_long_period))
    if len(sma_long) < 2:
        raise InsufficientDataError(candidate.symbol, stage.value, len(bars), config.sma_long_period + 1)
    crossover = detect_crossover(sma_short[-2], sma_short[-1], sma_long[-2], sma_long[-1])

    periods = select_macd_periods(len(bars), config.macd_schedule)
    histogram = compute_macd(bars, periods.fast, periods.slow, periods.signal).latest_histogram
    score = momentum_score(crossover, histogram, config.direction)

    logger.debug("momentum_scored", extra={
        "symbol": candidate.symbol,
        "crossover": crossover.value,
        "macd_histogram": float(histogram),
        "macd_periods": [periods.fast, periods.slow, periods.signal],
        "score": score,
    })
    return MomentumResult(
        symbol=candidate.symbol,
        name=candidate.name,
        current_price=bars[-1].close,
        score=score,
        sma_short_current=sma_short[-1],
        sma_short_previous=sma_short[-2],
        sma_long_current=sma_long[-1],
        sma_long_previous=sma_long[-2],
        crossover=crossover,
        macd_histogram=histogram,
    )


def compute_trend(context: AnalysisContext, candidate: Candidate, bars: List[Bar]) -> TrendResult:
    stage = StageName.TREND
    config = context.config
    _require_bars(bars, candidate, stage, config.minimum_bars[stage])

    if config.adx_method == "wilder":
        # Wilder smoothing needs two full periods before the first ADX value
        if len(bars) < 2 * config.adx_period:
            raise InsufficientDataError(candidate.symbol, stage.value, len(bars), 2 * config.adx_period)
        adx_value = compute_wilder_adx(bars, config.adx_period)
    else:
        adx_value = compute_simplified_adx(bars, config.adx_period)
    score, strength = trend_strength_score(adx_value, config.direction)

    logger.debug("trend_scored", extra={
        "symbol": candidate.symbol,
        "adx_value": float(adx_value),
        "trend_strength": strength.value,
        "score": score,
    })
    return TrendResult(
        symbol=candidate.symbol,
        name=candidate.name,
        current_price=bars[-1].close,
        score=score,
        adx_value=adx_value,
        trend_strength=strength,
    )


def run_relative_strength_stage(context: AnalysisContext, candidates: Sequence[Candidate]) -> Iterator[StageTick]:
    return _run_stage(context, candidates, StageName.RELATIVE_STRENGTH, compute_relative_strength)


def run_volatility_stage(context: AnalysisContext, candidates: Sequence[Candidate]) -> Iterator[StageTick]:
    return _run_stage(context, candidates, StageName.VOLATILITY, compute_volatility)


def run_momentum_stage(context: AnalysisContext, candidates: Sequence[Candidate]) -> Iterator[StageTick]:
    return _run_stage(context, candidates, StageName.MOMENTUM, compute_momentum)


def run_trend_stage(context: AnalysisContext, candidates: Sequence[Candidate]) -> Iterator[StageTick]:
    return _run_stage(context, candidates, StageName.TREND, compute_trend)


STAGE_RUNNERS = (
    (StageName.RELATIVE_STRENGTH, run_relative_strength_stage),
    (StageName.VOLATILITY, run_volatility_stage),
    (StageName.MOMENTUM, run_momentum_stage),
    (StageName.TREND, run_trend_stage),
)
