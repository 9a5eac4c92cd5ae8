"""Command-line entry point wiring."""

import json
from datetime import date

import pytest

from core.errors import ProviderUnavailableError
from core.orchestration.trading_calendar import previous_trading_day
from run_analysis import parse_args, run_analysis

TARGET = date(2024, 3, 15)


def write_history(path, symbols):
    days = [TARGET]
    while len(days) < 40:
        days.append(previous_trading_day(days[-1]))
    data = []
    for symbol, base in symbols.items():
        for i, day in enumerate(reversed(days)):
            close = base + (i % 4) - i * 0.25
            data.append({"symbol": symbol, "date": day.isoformat(), "open": close,
                         "high": close + 1, "low": close - 1, "close": close, "volume": 100})
    path.write_text(json.dumps({"metadata": {}, "data": data}))


class TestRunAnalysis:
    def test_parse_args(self):
        args = parse_args(["--date", "2024-03-15", "--data", "h.json", "--direction", "long"])
        assert args.date == TARGET
        assert args.source == "json"
        assert args.direction == "long"
        assert args.results_dir == "results"

    def test_run_writes_results(self, tmp_path):
        history = tmp_path / "history.json"
        write_history(history, {"SPY": 500, "AAA": 100, "BBB": 40})
        args = parse_args([
            "--date", "2024-03-15",
            "--data", str(history),
            "--results-dir", str(tmp_path / "results"),
        ])
        run = run_analysis(args)
        assert [s.symbol for s in run.stocks] == ["AAA", "BBB"]
        assert run.saved
        assert (tmp_path / "results" / "short" / "2024-03-15.json").exists()

    def test_missing_data_file(self, tmp_path):
        args = parse_args(["--date", "2024-03-15", "--data", str(tmp_path / "nope.json")])
        with pytest.raises(ProviderUnavailableError):
            run_analysis(args)
