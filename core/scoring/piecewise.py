"""
Piecewise score tables shared by the long and short scorers.

A table is an ordered list of non-overlapping bands. Each band maps an input
interval to a score, either constant or linearly interpolated from
``start_score`` at the lower bound to ``end_score`` at the upper bound.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..utils.numeric import D, clamp, round_half_up

MIN_SCORE = 1
MAX_SCORE = 100


@dataclass(frozen=True)
class Band:
    """One interval of a piecewise table. ``None`` bounds are open-ended."""
    lower: Optional[Decimal]
    upper: Optional[Decimal]
    start_score: Decimal
    end_score: Decimal
    include_lower: bool = True
    include_upper: bool = True
    label: Any = None

    def __post_init__(self):
        if (self.lower is None or self.upper is None) and self.start_score != self.end_score:
            raise ValueError("Open-ended bands must have a constant score")

    def contains(self, x: Decimal) -> bool:
        if self.lower is not None:
            if x < self.lower or (x == self.lower and not self.include_lower):
                return False
        if self.upper is not None:
            if x > self.upper or (x == self.upper and not self.include_upper):
                return False
        return True

    def score(self, x: Decimal) -> Decimal:
        if self.start_score == self.end_score:
            return self.start_score
        fraction = (x - self.lower) / (self.upper - self.lower)
        return self.start_score + (self.end_score - self.start_score) * fraction


def band(lower, upper, start, end=None, include_lower=True, include_upper=True, label=None) -> Band:
    """Shorthand constructor accepting ints/strings/floats."""
    return Band(
        lower=D(lower) if lower is not None else None,
        upper=D(upper) if upper is not None else None,
        start_score=D(start),
        end_score=D(end if end is not None else start),
        include_lower=include_lower,
        include_upper=include_upper,
        label=label,
    )


class PiecewiseTable:
    """Ordered, gap-free collection of bands."""

    def __init__(self, name: str, bands: Sequence[Band]):
        self.name = name
        self.bands = tuple(bands)
        if not self.bands:
            raise ValueError(f"{name}: table needs at least one band")

    def lookup(self, x) -> Band:
        x = D(x)
        if x.is_nan():
            raise ValueError(f"{self.name}: input is not a number")
        for b in self.bands:
            if b.contains(x):
                return b
        raise ValueError(f"{self.name}: no band covers {x}")

    def evaluate(self, x) -> Decimal:
        x = D(x)
        return self.lookup(x).score(x)

    def __repr__(self) -> str:
        return f"PiecewiseTable({self.name!r}, bands={len(self.bands)})"


def clamp_score(raw) -> int:
    """Clamp a raw score to [1, 100] and round half-up to an int."""
    raw = D(raw)
    if raw.is_nan():
        raise ValueError("Score is not a number")
    return round_half_up(clamp(raw, Decimal(MIN_SCORE), Decimal(MAX_SCORE)))
