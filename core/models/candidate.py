"""Candidate symbols that make up an analysis universe."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Candidate:
    """A symbol to be scored, with its display name."""
    symbol: str
    name: str = ""

    def __post_init__(self):
        if not self.symbol:
            raise ValueError("Candidate symbol must be non-empty")
