"""Final score aggregation and signal labels."""

from decimal import Decimal
from typing import Dict, Mapping, Optional

from ..models.stage import Direction, StageName
from ..utils.numeric import D
from .piecewise import clamp_score

# (minimum final score, label), checked top down
SIGNAL_THRESHOLDS: Dict[Direction, tuple] = {
    Direction.LONG: (
        (80, "Strong Buy"),
        (60, "Buy"),
        (40, "Hold"),
        (20, "Weak Sell"),
        (0, "Strong Sell"),
    ),
    Direction.SHORT: (
        (80, "Strong Sell"),
        (60, "Sell"),
        (40, "Hold"),
        (20, "Weak Buy"),
        (0, "Strong Buy"),
    ),
}


def final_score(stage_scores: Mapping[StageName, int],
                weights: Optional[Mapping[StageName, Decimal]] = None) -> int:
    """
    Weighted mean of the stage scores, rounded half-up into [1, 100].

    With no weights every stage counts equally.
    """
    if not stage_scores:
        raise ValueError("No stage scores to aggregate")
    if weights is None:
        weights = {stage: Decimal(1) for stage in stage_scores}
    total_weight = sum((D(weights.get(stage, 0)) for stage in stage_scores), Decimal(0))
    if total_weight <= 0:
        raise ValueError("Stage weights must sum to a positive value")
    weighted = sum((D(score) * D(weights.get(stage, 0)) for stage, score in stage_scores.items()), Decimal(0))
    return clamp_score(weighted / total_weight)


def final_signal(score: int, direction: Direction = Direction.SHORT) -> str:
    """Signal label for a final score."""
    for threshold, label in SIGNAL_THRESHOLDS[direction]:
        if score >= threshold:
            return label
    return SIGNAL_THRESHOLDS[direction][-1][1]
