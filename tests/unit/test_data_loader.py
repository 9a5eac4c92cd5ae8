"""Historical index: lookups and the JSON / daily-file / CSV sources."""

import json
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from core.errors import ProviderUnavailableError
from infra.data.data_loader import DataSource, HistoricalIndex, bar_from_record


def record(symbol, day, close, high=None, low=None, volume=1000):
    return {
        "symbol": symbol,
        "date": day,
        "open": close,
        "high": high if high is not None else close + 1,
        "low": low if low is not None else close - 1,
        "close": close,
        "volume": volume,
    }


RECORDS = [
    record("AAA", "2024-03-13", 10),
    record("AAA", "2024-03-11", 8),
    record("AAA", "2024-03-12", 9),
    record("AAA", "2024-03-15", 11),
    record("SPY", "2024-03-15", 500),
]


class TestHistoricalIndex:
    def test_bars_sorted_and_windowed(self):
        index = HistoricalIndex.from_records(RECORDS)
        bars = index.get_bars("AAA", date(2024, 3, 14), 2)
        assert [b.date for b in bars] == [date(2024, 3, 12), date(2024, 3, 13)]
        assert bars[-1].close == Decimal(10)

    def test_as_of_is_inclusive(self):
        index = HistoricalIndex.from_records(RECORDS)
        assert index.get_bars("AAA", date(2024, 3, 15), 1)[0].close == Decimal(11)

    def test_fewer_bars_than_requested(self):
        index = HistoricalIndex.from_records(RECORDS)
        assert len(index.get_bars("AAA", date(2024, 3, 15), 30)) == 4

    def test_unknown_symbol_and_early_date(self):
        index = HistoricalIndex.from_records(RECORDS)
        assert index.get_bars("ZZZ", date(2024, 3, 15), 5) == []
        assert index.get_bars("AAA", date(2024, 3, 1), 5) == []
        assert index.get_bars("AAA", date(2024, 3, 15), 0) == []

    def test_duplicate_date_last_wins(self):
        index = HistoricalIndex.from_records(RECORDS + [record("AAA", "2024-03-15", 12)])
        assert index.get_bars("AAA", date(2024, 3, 15), 1)[0].close == Decimal(12)

    def test_bad_records_skipped(self):
        index = HistoricalIndex.from_records(RECORDS + [
            {"symbol": "AAA", "date": "2024-03-14"},
            {"date": "2024-03-14", "open": 1, "high": 1, "low": 1, "close": 1},
            record("BBB", "not-a-date", 5),
        ])
        assert index.skipped_records == 3
        assert index.symbols == ["AAA", "SPY"]

    def test_malformed_bar_kept(self):
        index = HistoricalIndex.from_records([record("AAA", "2024-03-15", 10, high=9)])
        assert len(index.get_bars("AAA", date(2024, 3, 15), 1)) == 1

    def test_date_range(self):
        index = HistoricalIndex.from_records(RECORDS)
        assert index.date_range("AAA") == (date(2024, 3, 11), date(2024, 3, 15))
        assert index.date_range("ZZZ") is None

    def test_not_loaded_until_load(self, tmp_path):
        index = HistoricalIndex({"source": "json", "path": str(tmp_path / "history.json")})
        assert not index.is_loaded

    def test_bar_from_record_default_date(self):
        bar = bar_from_record({"open": "1", "high": "2", "low": "0.5", "close": "1.5"}, date(2024, 3, 15))
        assert bar.date == date(2024, 3, 15)
        assert bar.volume == Decimal(0)

    @pytest.mark.parametrize("close", ["NaN", "Infinity", "-inf"])
    def test_non_finite_price_skipped(self, close):
        index = HistoricalIndex.from_records(RECORDS + [dict(record("AAA", "2024-03-14", 10), close=close)])
        assert index.skipped_records == 1
        assert [b.date for b in index.get_bars("AAA", date(2024, 3, 15), 10)] == [
            date(2024, 3, 11), date(2024, 3, 12), date(2024, 3, 13), date(2024, 3, 15),
        ]

    def test_bar_from_record_rejects_nan_float(self):
        with pytest.raises(ValueError):
            bar_from_record(record("AAA", "2024-03-15", float("nan")))


class TestSources:
    def test_json_file(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"metadata": {"source": "test"}, "data": RECORDS}))
        index = HistoricalIndex({"source": DataSource.JSON.value, "path": str(path)}).load()
        assert index.is_loaded
        assert index.metadata == {"source": "test"}
        assert len(index.get_bars("AAA", date(2024, 3, 15), 10)) == 4

    def test_daily_files(self, tmp_path):
        (tmp_path / "14.03.2024.json").write_text(json.dumps({"records": [
            {"symbol": "AAA", "open": 10, "high": 11, "low": 9, "close": 10.5},
        ]}))
        (tmp_path / "15.03.2024.json").write_text(json.dumps({"records": [
            {"symbol": "AAA", "open": 10.5, "high": 12, "low": 10, "close": 11.5},
        ]}))
        (tmp_path / "notes.json").write_text("{}")
        index = HistoricalIndex({"source": "daily_files", "path": str(tmp_path)}).load()
        bars = index.get_bars("AAA", date(2024, 3, 15), 5)
        assert [b.date for b in bars] == [date(2024, 3, 14), date(2024, 3, 15)]
        assert bars[-1].close == Decimal("11.5")

    def test_csv(self, tmp_path):
        path = tmp_path / "history.csv"
        pd.DataFrame([
            {"Symbol": "AAA", "Date": "2024-03-14", "Open": 10, "High": 11, "Low": 9, "Close": 10, "Volume": 100},
            {"Symbol": "AAA", "Date": "2024-03-15", "Open": 10, "High": 12, "Low": 10, "Close": 11.5, "Volume": None},
        ]).to_csv(path, index=False)
        index = HistoricalIndex({"source": "csv", "path": str(path)}).load()
        bars = index.get_bars("AAA", date(2024, 3, 15), 5)
        assert len(bars) == 2
        assert bars[-1].close == Decimal("11.5")
        assert bars[-1].volume == Decimal(0)

    def test_csv_blank_price_row_skipped(self, tmp_path):
        path = tmp_path / "history.csv"
        path.write_text(
            "symbol,date,open,high,low,close,volume\n"
            "AAA,2024-03-14,10,11,9,10.5,100\n"
            "AAA,2024-03-15,10,11,9,,100\n"
        )
        index = HistoricalIndex({"source": "csv", "path": str(path)}).load()
        assert index.skipped_records == 1
        bars = index.get_bars("AAA", date(2024, 3, 15), 5)
        assert [b.date for b in bars] == [date(2024, 3, 14)]

    def test_csv_missing_columns(self, tmp_path):
        path = tmp_path / "history.csv"
        pd.DataFrame([{"symbol": "AAA", "date": "2024-03-15", "close": 10}]).to_csv(path, index=False)
        with pytest.raises(ProviderUnavailableError):
            HistoricalIndex({"source": "csv", "path": str(path)}).load()

    def test_missing_path(self, tmp_path):
        with pytest.raises(ProviderUnavailableError):
            HistoricalIndex({"source": "json", "path": str(tmp_path / "missing.json")}).load()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json")
        with pytest.raises(ProviderUnavailableError):
            HistoricalIndex({"source": "json", "path": str(path)}).load()
