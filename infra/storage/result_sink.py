"""
Result sinks - persist per-date analysis result sets.

``save(date, results)`` is an upsert keyed by analysis date: saving the same
date again replaces the previous result set.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from core.models.analysis import AnalysisResult
from core.utils.numeric import round_half_up

logger = logging.getLogger(__name__)


def _summary(target_date: date, results: Sequence[AnalysisResult]) -> Dict[str, Any]:
    scores = [r.final_score for r in results]
    average = round_half_up(Decimal(sum(scores)) / Decimal(len(scores))) if scores else 0
    return {
        "date": target_date.isoformat(),
        "direction": results[0].direction.value if results else None,
        "totalStocks": len(results),
        "averageScore": average,
        "savedAt": datetime.now(timezone.utc).isoformat(),
        "stocks": [r.to_dict() for r in results],
    }


class JsonFileResultSink:
    """
    One ``YYYY-MM-DD.json`` document per analysis date.

    Usage:
        sink = JsonFileResultSink("results/short")
        sink.save(date(2024, 3, 15), run.stocks)
    """

    def __init__(self, results_dir: str = None):
        if results_dir is None:
            base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
            results_dir = os.path.join(base_dir, "results")
        self.results_dir = results_dir

    def path_for(self, target_date: date) -> str:
        return os.path.join(self.results_dir, f"{target_date.isoformat()}.json")

    def save(self, target_date: date, results: Sequence[AnalysisResult]) -> bool:
        """Write the result set for ``target_date``, replacing any earlier one."""
        filepath = self.path_for(target_date)
        tmp_path = filepath + ".tmp"
        try:
            os.makedirs(self.results_dir, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(_summary(target_date, results), f, indent=2)
            os.replace(tmp_path, filepath)
        except (OSError, TypeError, ValueError) as e:
            logger.error("results_write_failed", extra={"filepath": filepath, "error": str(e)})
            return False

        logger.info("results_written", extra={"filepath": filepath, "total_records": len(results)})
        return True

    def load(self, target_date: date) -> Optional[Dict[str, Any]]:
        """Previously saved document for ``target_date``, or None."""
        filepath = self.path_for(target_date)
        if not os.path.exists(filepath):
            return None
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)

    def saved_dates(self) -> List[date]:
        if not os.path.isdir(self.results_dir):
            return []
        dates = []
        for filename in os.listdir(self.results_dir):
            stem, ext = os.path.splitext(filename)
            if ext != ".json":
                continue
            try:
                dates.append(date.fromisoformat(stem))
            except ValueError:
                continue
        return sorted(dates)


class MemoryResultSink:
    """Keeps result sets in a dict; used by tests and embedding callers."""

    def __init__(self):
        self.documents: Dict[date, Dict[str, Any]] = {}
        self.save_count = 0

    def save(self, target_date: date, results: Sequence[AnalysisResult]) -> bool:
        self.documents[target_date] = _summary(target_date, results)
        self.save_count += 1
        return True

    def load(self, target_date: date) -> Optional[Dict[str, Any]]:
        return self.documents.get(target_date)
