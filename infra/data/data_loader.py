"""
Historical Index: Switchable Source (Memory | JSON | Daily files | CSV)

Loads daily OHLCV history once into an in-memory, per-symbol sorted index and
serves ``get_bars(symbol, as_of, count)`` lookups to the analysis stages.
"""

import logging
import json
import os
from bisect import bisect_right
from datetime import date, datetime
from decimal import InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from core.errors import ProviderUnavailableError
from core.models.ohlcv import Bar
from core.utils.numeric import D

logger = logging.getLogger(__name__)

DAILY_FILE_DATE_FORMAT = "%d.%m.%Y"


class DataSource(Enum):
    """Data source types."""
    MEMORY = "memory"
    JSON = "json"
    DAILY_FILES = "daily_files"
    CSV = "csv"


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def bar_from_record(record: Dict[str, Any], default_date: Optional[date] = None) -> Bar:
    """
    Build a Bar from a raw record.

    Raises:
        KeyError, ValueError, TypeError: If a field is missing or unparseable
    """
    raw_date = record.get("date", default_date)
    if raw_date is None:
        raise KeyError("date")
    volume = record.get("volume")
    if volume is None or (isinstance(volume, float) and volume != volume):
        volume = 0
    try:
        prices = {field: D(record[field]) for field in ("open", "high", "low", "close")}
        volume = D(volume)
    except InvalidOperation as e:
        raise ValueError(f"Invalid price in record: {record}") from e
    for field, value in prices.items():
        if not value.is_finite():
            raise ValueError(f"Non-finite {field} in record: {record}")
    if not volume.is_finite():
        raise ValueError(f"Non-finite volume in record: {record}")
    return Bar(date=_parse_date(raw_date), volume=volume, **prices)


class HistoricalIndex:
    """
    Read-only daily price index keyed by symbol.

    Supports:
    - In-memory records (tests, embedding)
    - A single JSON file ``{"metadata": {...}, "data": [{symbol, date, open, ...}]}``
    - A directory of ``DD.MM.YYYY.json`` files, each ``{"records": [...]}``
    - A long-format CSV (symbol, date, open, high, low, close, volume)
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize the index.

        Args:
            config: Loader config
                {
                  "source": "memory|json|daily_files|csv",
                  "path": "file or directory for non-memory sources"
                }
        """
        config = config or {}
        self.source = DataSource(config.get("source", DataSource.MEMORY.value))
        self.path = config.get("path")
        self.metadata: Dict[str, Any] = {}
        self._bars: Dict[str, List[Bar]] = {}
        self._dates: Dict[str, List[date]] = {}
        self.is_loaded = False
        self.skipped_records = 0

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "HistoricalIndex":
        """Build a loaded in-memory index from ``{symbol, date, open, ...}`` records."""
        index = cls({"source": DataSource.MEMORY.value})
        index._build(records)
        return index

    @classmethod
    def from_bars(cls, series: Dict[str, Iterable[Bar]]) -> "HistoricalIndex":
        """Build a loaded in-memory index from ready-made bars."""
        index = cls({"source": DataSource.MEMORY.value})
        for symbol, bars in series.items():
            index._store(symbol, bars)
        index.is_loaded = True
        return index

    def load(self) -> "HistoricalIndex":
        """
        Load the configured source.

        Returns:
            self, for chaining

        Raises:
            ProviderUnavailableError: If the source cannot be read
        """
        if self.source == DataSource.MEMORY:
            self.is_loaded = True
            return self
        if not self.path or not os.path.exists(self.path):
            logger.error("historical_data_missing", extra={"source": self.source.value, "path": self.path})
            raise ProviderUnavailableError(f"Historical data not found: {self.path}")

        try:
            if self.source == DataSource.JSON:
                records = self._read_json(self.path)
            elif self.source == DataSource.DAILY_FILES:
                records = self._read_daily_files(self.path)
            else:
                records = self._read_csv(self.path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("historical_data_load_failed", extra={
                "source": self.source.value,
                "path": self.path,
                "error": str(e),
            })
            raise ProviderUnavailableError(f"Could not load historical data from {self.path}: {e}") from e

        self._build(records)
        logger.info("historical_data_loaded", extra={
            "source": self.source.value,
            "path": self.path,
            "symbols": len(self._bars),
            "bars": sum(len(b) for b in self._bars.values()),
            "skipped_records": self.skipped_records,
        })
        return self

    def _read_json(self, path: str) -> List[Dict[str, Any]]:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
        if isinstance(document, list):
            return document
        self.metadata = document.get("metadata", {}) or {}
        return list(document["data"])

    def _read_daily_files(self, directory: str) -> List[Tuple[Dict[str, Any], date]]:
        records = []
        for filename in sorted(os.listdir(directory)):
            stem, ext = os.path.splitext(filename)
            if ext.lower() != ".json":
                continue
            try:
                file_date = datetime.strptime(stem, DAILY_FILE_DATE_FORMAT).date()
            except ValueError:
                logger.debug("daily_file_ignored", extra={"file": filename})
                continue
            with open(os.path.join(directory, filename), "r", encoding="utf-8") as f:
                document = json.load(f)
            for record in document.get("records", []):
                records.append((record, file_date))
        return records

    def _read_csv(self, path: str) -> List[Dict[str, Any]]:
        df = pd.read_csv(path)

        # Standardize column names
        df.columns = [c.strip().lower() for c in df.columns]
        missing = {"symbol", "date", "open", "high", "low", "close"} - set(df.columns)
        if missing:
            raise ValueError(f"CSV missing columns: {sorted(missing)}")

        df = df.dropna(subset=["symbol", "date"])
        df["symbol"] = df["symbol"].astype(str)
        df["date"] = pd.to_datetime(df["date"]).dt.date
        price_cols = ["open", "high", "low", "close"]
        df[price_cols] = df[price_cols].astype(float)
        if "volume" in df.columns:
            df["volume"] = df["volume"].fillna(0).astype(float)
        df = df.sort_values(["symbol", "date"])
        return df.to_dict("records")

    def _build(self, records: Iterable[Any]) -> None:
        grouped: Dict[str, Dict[date, Bar]] = {}
        for item in records:
            record, default_date = item if isinstance(item, tuple) else (item, None)
            symbol = str(record.get("symbol", "")).strip()
            try:
                if not symbol:
                    raise KeyError("symbol")
                bar = bar_from_record(record, default_date)
            except (KeyError, ValueError, TypeError) as e:
                self.skipped_records += 1
                logger.warning("record_skipped", extra={"record": str(record)[:200], "error": str(e)})
                continue
            if not bar.is_well_formed:
                logger.warning("malformed_bar", extra={"symbol": symbol, "date": bar.date.isoformat()})
            # Later duplicates for the same date replace earlier ones
            grouped.setdefault(symbol, {})[bar.date] = bar

        for symbol, by_date in grouped.items():
            self._store(symbol, by_date.values())
        self.is_loaded = True

    def _store(self, symbol: str, bars: Iterable[Bar]) -> None:
        ordered = sorted(bars, key=lambda b: b.date)
        self._bars[symbol] = ordered
        self._dates[symbol] = [b.date for b in ordered]

    def get_bars(self, symbol: str, as_of: date, count: int) -> List[Bar]:
        """
        Up to ``count`` most recent bars on or before ``as_of``, oldest first.

        Returns an empty list for unknown symbols or when nothing precedes ``as_of``.
        """
        if count <= 0 or symbol not in self._bars:
            return []
        end = bisect_right(self._dates[symbol], as_of)
        return self._bars[symbol][max(0, end - count):end]

    @property
    def symbols(self) -> List[str]:
        return sorted(self._bars)

    def date_range(self, symbol: str) -> Optional[Tuple[date, date]]:
        """First and last available date for a symbol."""
        dates = self._dates.get(symbol)
        if not dates:
            return None
        return dates[0], dates[-1]
