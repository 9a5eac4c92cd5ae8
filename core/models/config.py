"""
Configuration models.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Dict, Any, Optional, Tuple
from hashlib import sha256
from datetime import datetime, timezone
import json

from .stage import Direction, StageName
from ..errors import ConfigError


@dataclass(frozen=True)
class ConfigHash:
    """Configuration hash for reproducibility."""
    hash_value: str
    timestamp: str

    @staticmethod
    def compute(config_dict: Dict[str, Any]) -> str:
        """Compute SHA256 hash of config."""
        json_str = json.dumps(config_dict, sort_keys=True, default=str)
        return sha256(json_str.encode()).hexdigest()


@dataclass(frozen=True)
class MACDPeriods:
    """MACD periods used once at least ``min_bars`` bars are available."""
    min_bars: int
    fast: int
    slow: int
    signal: int

    def __post_init__(self):
        if not 0 < self.fast < self.slow:
            raise ConfigError(f"MACD fast period must be below slow: {self.fast}/{self.slow}")
        if self.signal <= 0:
            raise ConfigError("MACD signal period must be positive")


DEFAULT_MACD_SCHEDULE = (
    MACDPeriods(min_bars=25, fast=8, slow=16, signal=6),
    MACDPeriods(min_bars=20, fast=6, slow=12, signal=4),
    MACDPeriods(min_bars=0, fast=5, slow=10, signal=3),
)

DEFAULT_LOOKBACK = {
    StageName.RELATIVE_STRENGTH: 2,
    StageName.VOLATILITY: 30,
    StageName.MOMENTUM: 30,
    StageName.TREND: 35,
}

DEFAULT_MINIMUM_BARS = {
    StageName.RELATIVE_STRENGTH: 2,
    StageName.VOLATILITY: 20,
    StageName.MOMENTUM: 26,
    StageName.TREND: 20,
}

DEFAULT_WEIGHTS = {stage: Decimal("0.25") for stage in StageName}


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable per-run analysis configuration."""
    direction: Direction = Direction.SHORT
    benchmark_symbol: str = "SPY"
    lookback: Dict[StageName, int] = field(default_factory=lambda: dict(DEFAULT_LOOKBACK))
    minimum_bars: Dict[StageName, int] = field(default_factory=lambda: dict(DEFAULT_MINIMUM_BARS))
    weights: Dict[StageName, Decimal] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    atr_period: int = 14
    bb_period: int = 20
    bb_std_dev: Decimal = Decimal(2)
    sma_short_period: int = 3
    sma_long_period: int = 12
    macd_schedule: Tuple[MACDPeriods, ...] = DEFAULT_MACD_SCHEDULE
    adx_period: int = 14
    adx_method: str = "simplified"
    neutral_score: int = 50
    config_hash: Optional[ConfigHash] = None

    def __post_init__(self):
        if self.adx_method not in ("simplified", "wilder"):
            raise ConfigError(f"Unknown ADX method: {self.adx_method}")
        if not 1 <= self.neutral_score <= 100:
            raise ConfigError(f"Neutral score out of range: {self.neutral_score}")
        if self.sma_short_period >= self.sma_long_period:
            raise ConfigError("Short SMA period must be below long SMA period")
        if sum(self.weights.values(), Decimal(0)) <= 0:
            raise ConfigError("Stage weights must sum to a positive value")
        if not self.macd_schedule:
            raise ConfigError("MACD schedule must not be empty")
        for stage in StageName:
            if self.lookback.get(stage, 0) < self.minimum_bars.get(stage, 0):
                raise ConfigError(f"Lookback for {stage.value} is shorter than its minimum bars")
        # Below this the bands and ATR come back as zero sentinels
        volatility_floor = max(self.bb_period, self.atr_period + 1)
        if self.minimum_bars.get(StageName.VOLATILITY, 0) < volatility_floor:
            raise ConfigError(f"Volatility minimum bars must be at least {volatility_floor}")
        if self.config_hash is None:
            object.__setattr__(self, 'config_hash', ConfigHash(
                hash_value=ConfigHash.compute(self.to_dict()),
                timestamp=datetime.now(timezone.utc).isoformat()
            ))

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-friendly view, in the shape of configs/analysis.json."""
        return {
            "direction": self.direction.value,
            "benchmark_symbol": self.benchmark_symbol,
            "lookback": {s.value: n for s, n in self.lookback.items()},
            "minimum_bars": {s.value: n for s, n in self.minimum_bars.items()},
            "weights": {s.value: str(w) for s, w in self.weights.items()},
            "indicators": {
                "atr_period": self.atr_period,
                "bb_period": self.bb_period,
                "bb_std_dev": str(self.bb_std_dev),
                "sma_short_period": self.sma_short_period,
                "sma_long_period": self.sma_long_period,
                "macd_schedule": [asdict(p) for p in self.macd_schedule],
                "adx_period": self.adx_period,
                "adx_method": self.adx_method,
            },
            "neutral_score": self.neutral_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], direction: Optional[str] = None) -> "AnalysisConfig":
        """
        Build a config from a (schema-validated) dictionary.

        Missing keys fall back to the defaults above.

        Args:
            data: Dictionary in the shape of configs/analysis.json
            direction: Optional override for ``data["direction"]``

        Returns:
            AnalysisConfig instance

        Raises:
            ConfigError: If a value is invalid
        """
        data = data or {}
        indicators = data.get("indicators", {}) or {}

        def _per_stage(key, defaults, cast):
            values = dict(defaults)
            for name, value in (data.get(key, {}) or {}).items():
                try:
                    values[StageName(name)] = cast(value)
                except ValueError as e:
                    raise ConfigError(f"Invalid {key} entry {name!r}: {e}") from e
            return values

        schedule = indicators.get("macd_schedule")
        if schedule:
            macd_schedule = tuple(sorted(
                (MACDPeriods(**p) for p in schedule),
                key=lambda p: p.min_bars,
                reverse=True,
            ))
        else:
            macd_schedule = DEFAULT_MACD_SCHEDULE

        try:
            resolved_direction = Direction(direction or data.get("direction", Direction.SHORT.value))
        except ValueError as e:
            raise ConfigError(f"Unknown direction: {direction or data.get('direction')}") from e

        return cls(
            direction=resolved_direction,
            benchmark_symbol=data.get("benchmark_symbol", "SPY"),
            lookback=_per_stage("lookback", DEFAULT_LOOKBACK, int),
            minimum_bars=_per_stage("minimum_bars", DEFAULT_MINIMUM_BARS, int),
            weights=_per_stage("weights", DEFAULT_WEIGHTS, lambda v: Decimal(str(v))),
            atr_period=int(indicators.get("atr_period", 14)),
            bb_period=int(indicators.get("bb_period", 20)),
            bb_std_dev=Decimal(str(indicators.get("bb_std_dev", 2))),
            sma_short_period=int(indicators.get("sma_short_period", 3)),
            sma_long_period=int(indicators.get("sma_long_period", 12)),
            macd_schedule=macd_schedule,
            adx_period=int(indicators.get("adx_period", 14)),
            adx_method=indicators.get("adx_method", "simplified"),
            neutral_score=int(data.get("neutral_score", 50)),
        )
