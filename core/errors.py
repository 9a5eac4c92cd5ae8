"""
Error taxonomy for the scoring engine.

Recoverable errors are raised inside a single symbol's stage computation and
handled by the stage loop; fatal errors abort the run and reach the caller.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for scoring engine errors."""

    recoverable = False

    def __init__(self, message: str, symbol: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.symbol = symbol
        self.stage = stage

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "detail": str(self),
            "symbol": self.symbol,
            "stage": self.stage,
            "recoverable": self.recoverable,
        }


class InsufficientDataError(AnalysisError):
    """Fewer bars than a stage's minimum window. Neutral default applies."""

    recoverable = True

    def __init__(self, symbol: str, stage: str, available: int, required: int):
        super().__init__(
            f"{symbol}: {available} bars available, {stage} needs {required}",
            symbol=symbol,
            stage=stage,
        )
        self.available = available
        self.required = required

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"available": self.available, "required": self.required})
        return data


class LookupMissError(AnalysisError):
    """Symbol has no history on or before the analysis date. Neutral default applies."""

    recoverable = True


class ComputationError(AnalysisError):
    """Unexpected failure while computing a stage. The symbol is skipped for that stage."""

    recoverable = True


class ProviderUnavailableError(AnalysisError):
    """Historical data could not be loaded. Aborts the run."""


class BenchmarkUnavailableError(ProviderUnavailableError):
    """Benchmark index has no usable history for the analysis date. Aborts the run."""


class ConfigError(AnalysisError):
    """Invalid analysis configuration."""
