"""Analysis run orchestration: stages, aggregation and persistence."""

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from ..errors import BenchmarkUnavailableError, ProviderUnavailableError
from ..models.analysis import (
    AnalysisResult,
    AnalysisRun,
    ProgressEvent,
    RunState,
    STAGE_STATES,
)
from ..models.config import AnalysisConfig
from ..models.stage import StageName, StageResult
from ..scoring.signals import final_score, final_signal
from .stages import STAGE_RUNNERS, AnalysisContext

logger = logging.getLogger(__name__)

# Progress percent range covered by each state
PERCENT_BANDS = {
    RunState.STAGE_RELATIVE_STRENGTH: (0.0, 25.0),
    RunState.STAGE_VOLATILITY: (25.0, 50.0),
    RunState.STAGE_MOMENTUM: (50.0, 75.0),
    RunState.STAGE_TREND: (75.0, 95.0),
    RunState.AGGREGATE: (95.0, 100.0),
}

StageResults = Dict[StageName, Dict[str, StageResult]]


class AnalysisOrchestrator:
    """
    Runs the four scoring stages for one analysis date.

    Usage:
        orchestrator = AnalysisOrchestrator(config, index, candidates, sink)
        run = orchestrator.run(date(2024, 3, 15))

    ``iter_run`` exposes the same run as a generator of ProgressEvents; the
    terminal DONE event carries the AnalysisRun.
    """

    def __init__(self, config: AnalysisConfig, provider: Any, candidate_source: Any,
                 sink: Any = None, today: Callable[[], date] = date.today):
        """
        Args:
            config: Analysis configuration
            provider: Historical data provider, ``get_bars(symbol, as_of, count)``
            candidate_source: Symbol universe, ``list() -> List[Candidate]``
            sink: Optional result sink, ``save(date, results) -> bool``
            today: Calculation date supplier
        """
        self.config = config
        self.provider = provider
        self.candidate_source = candidate_source
        self.sink = sink
        self.today = today

    def run(self, target_date: date,
            on_progress: Optional[Callable[[ProgressEvent], None]] = None) -> AnalysisRun:
        """
        Run the analysis to completion.

        Args:
            target_date: Analysis date
            on_progress: Called with every ProgressEvent (after each symbol
                and at every state boundary)

        Returns:
            AnalysisRun

        Raises:
            ProviderUnavailableError: Historical data or benchmark unavailable
        """
        completed = None
        for event in self.iter_run(target_date):
            if on_progress is not None:
                on_progress(event)
            if event.state.is_terminal:
                completed = event.run
        return completed

    def iter_run(self, target_date: date) -> Iterator[ProgressEvent]:
        started = time.perf_counter()
        logger.info("analysis_started", extra={
            "date": target_date.isoformat(),
            "direction": self.config.direction.value,
            "config_hash": self.config.config_hash.hash_value,
        })
        yield ProgressEvent(RunState.INIT, 0.0, "analysis_started")

        try:
            context = self._build_context(target_date)
            stage_results: StageResults = {}
            for stage, runner in STAGE_RUNNERS:
                state = STAGE_STATES[stage]
                low, high = PERCENT_BANDS[state]
                total = len(context.candidates)
                logger.info("stage_started", extra={"stage": stage.value, "symbols": total})
                yield ProgressEvent(state, low, f"{stage.value}_started", total=total)

                results: Dict[str, StageResult] = {}
                for tick in runner(context, context.candidates):
                    if tick.result is not None:
                        results[tick.symbol] = tick.result
                    yield ProgressEvent(
                        state,
                        round(low + (high - low) * (tick.index + 1) / tick.total, 2),
                        f"{stage.value}_symbol_processed",
                        symbol=tick.symbol,
                        index=tick.index,
                        total=tick.total,
                    )
                stage_results[stage] = results
                logger.info("stage_completed", extra={
                    "stage": stage.value,
                    "processed": len(results),
                    "defaulted": sum(1 for r in results.values() if r.defaulted),
                    "skipped": total - len(results),
                })
        except ProviderUnavailableError as e:
            logger.error("analysis_failed", extra=e.to_dict())
            yield ProgressEvent(RunState.FAILED, 0.0, str(e))
            raise

        yield ProgressEvent(RunState.AGGREGATE, PERCENT_BANDS[RunState.AGGREGATE][0], "aggregating")
        calculation_date = self.today()
        stocks = aggregate(context, stage_results, calculation_date)
        saved = self._save(target_date, stocks)

        analysis_run = AnalysisRun(
            date=target_date,
            direction=self.config.direction,
            stocks=stocks,
            total_stocks=len(context.candidates),
            analysis_time_ms=int((time.perf_counter() - started) * 1000),
            calculation_date=calculation_date,
            config_hash=self.config.config_hash.hash_value,
            saved=saved,
        )
        logger.info("analysis_completed", extra={
            "date": target_date.isoformat(),
            "total_stocks": analysis_run.total_stocks,
            "processed_stocks": analysis_run.processed_stocks,
            "defaulted_stocks": analysis_run.defaulted_stocks,
            "average_score": analysis_run.average_score,
            "analysis_time_ms": analysis_run.analysis_time_ms,
            "saved": saved,
        })
        yield ProgressEvent(RunState.DONE, 100.0, "analysis_completed", total=analysis_run.total_stocks,
                            run=analysis_run)

    def _build_context(self, target_date: date) -> AnalysisContext:
        if not getattr(self.provider, "is_loaded", True):
            raise ProviderUnavailableError("Historical data index is not loaded")

        benchmark = self.config.benchmark_symbol
        count = self.config.lookback[StageName.RELATIVE_STRENGTH]
        benchmark_bars = tuple(self.provider.get_bars(benchmark, target_date, count))
        if len(benchmark_bars) < 2:
            raise BenchmarkUnavailableError(
                f"{benchmark}: {len(benchmark_bars)} bars on or before {target_date.isoformat()}, need 2",
                symbol=benchmark,
                stage=StageName.RELATIVE_STRENGTH.value,
            )
        if benchmark_bars[-1].date != target_date:
            logger.warning("benchmark_stale", extra={
                "symbol": benchmark,
                "target_date": target_date.isoformat(),
                "latest_date": benchmark_bars[-1].date.isoformat(),
            })

        candidates = tuple(self.candidate_source.list())
        logger.info("candidates_loaded", extra={"count": len(candidates)})
        return AnalysisContext(
            config=self.config,
            provider=self.provider,
            candidates=candidates,
            target_date=target_date,
            benchmark_bars=benchmark_bars,
        )

    def _save(self, target_date: date, stocks: Tuple[AnalysisResult, ...]) -> bool:
        if self.sink is None:
            return False
        try:
            saved = bool(self.sink.save(target_date, stocks))
        except Exception as e:
            logger.exception("results_save_failed", extra={"date": target_date.isoformat(), "error": str(e)})
            return False
        if not saved:
            logger.warning("results_not_saved", extra={"date": target_date.isoformat()})
        return saved


def aggregate(context: AnalysisContext, stage_results: StageResults,
              calculation_date: date) -> Tuple[AnalysisResult, ...]:
    """
    Join stage results by symbol into final AnalysisResults.

    A missing stage score is replaced by the neutral score before the
    weighted mean. Candidates keep their input order.
    """
    config = context.config
    stocks = []
    for candidate in context.candidates:
        per_stage = {stage: stage_results.get(stage, {}).get(candidate.symbol) for stage in StageName}
        scores = {
            stage: (result.score if result is not None else config.neutral_score)
            for stage, result in per_stage.items()
        }
        defaulted = tuple(
            stage for stage, result in per_stage.items() if result is None or result.defaulted
        )
        price = next(
            (r.current_price for r in per_stage.values() if r is not None and r.current_price is not None),
            None,
        )
        score = final_score(scores, config.weights)
        stocks.append(AnalysisResult(
            symbol=candidate.symbol,
            name=candidate.name,
            current_price=price,
            relative_strength_score=scores[StageName.RELATIVE_STRENGTH],
            volatility_score=scores[StageName.VOLATILITY],
            momentum_score=scores[StageName.MOMENTUM],
            trend_score=scores[StageName.TREND],
            final_score=score,
            signal=final_signal(score, config.direction),
            direction=config.direction,
            analysis_date=context.target_date,
            calculation_date=calculation_date,
            relative_strength=per_stage[StageName.RELATIVE_STRENGTH],
            volatility=per_stage[StageName.VOLATILITY],
            momentum=per_stage[StageName.MOMENTUM],
            trend=per_stage[StageName.TREND],
            defaulted_stages=defaulted,
        ))
    return tuple(stocks)
