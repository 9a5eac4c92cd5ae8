"""
Candidate sources: the symbol universe handed to an analysis run.
"""

import logging
import json
import os
from typing import Any, Dict, Iterable, List, Union

from core.errors import ProviderUnavailableError
from core.models.candidate import Candidate

logger = logging.getLogger(__name__)


def _to_candidate(entry: Union[str, Dict[str, Any], Candidate]) -> Candidate:
    if isinstance(entry, Candidate):
        return entry
    if isinstance(entry, str):
        return Candidate(symbol=entry.strip())
    return Candidate(symbol=str(entry["symbol"]).strip(), name=str(entry.get("name", "") or ""))


def _dedupe(candidates: Iterable[Candidate]) -> List[Candidate]:
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.symbol in seen:
            continue
        seen.add(candidate.symbol)
        unique.append(candidate)
    return unique


class StaticCandidateSource:
    """Fixed list of symbols (strings, dicts or Candidates)."""

    def __init__(self, entries: Iterable[Union[str, Dict[str, Any], Candidate]]):
        self._candidates = _dedupe(_to_candidate(e) for e in entries)

    def list(self) -> List[Candidate]:
        return list(self._candidates)


class JsonCandidateSource:
    """
    Favorites document on disk: ``{"stocks": [{"symbol": ..., "name": ...}, ...]}``.

    Re-read on every ``list()`` call so edits between runs are picked up.
    """

    def __init__(self, path: str):
        self.path = path

    def list(self) -> List[Candidate]:
        if not os.path.exists(self.path):
            raise ProviderUnavailableError(f"Candidate file not found: {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise ProviderUnavailableError(f"Could not read candidate file {self.path}: {e}") from e

        entries = document.get("stocks", []) if isinstance(document, dict) else document
        candidates = []
        for entry in entries:
            try:
                candidates.append(_to_candidate(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("candidate_skipped", extra={"entry": str(entry)[:200], "error": str(e)})
        candidates = _dedupe(candidates)
        logger.info("candidates_read", extra={"path": self.path, "count": len(candidates)})
        return candidates
