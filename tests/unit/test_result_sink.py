"""Result sinks and candidate sources."""

import json
from datetime import date
from decimal import Decimal

import pytest

from core.errors import ProviderUnavailableError
from core.models.analysis import AnalysisResult
from core.models.candidate import Candidate
from core.models.stage import Direction
from infra.data.candidates import JsonCandidateSource, StaticCandidateSource
from infra.storage.result_sink import JsonFileResultSink, MemoryResultSink

TARGET = date(2024, 3, 15)


def make_result(symbol, final_score):
    return AnalysisResult(
        symbol=symbol,
        name=symbol,
        current_price=Decimal('12.5'),
        relative_strength_score=final_score,
        volatility_score=final_score,
        momentum_score=final_score,
        trend_score=final_score,
        final_score=final_score,
        signal='Hold',
        direction=Direction.SHORT,
        analysis_date=TARGET,
        calculation_date=TARGET,
    )


class TestJsonFileResultSink:
    def test_save_and_load(self, tmp_path):
        sink = JsonFileResultSink(str(tmp_path / "results"))
        assert sink.save(TARGET, [make_result("AAA", 60), make_result("BBB", 41)])

        document = sink.load(TARGET)
        assert document["date"] == "2024-03-15"
        assert document["direction"] == "short"
        assert document["totalStocks"] == 2
        assert document["averageScore"] == 51
        assert [s["symbol"] for s in document["stocks"]] == ["AAA", "BBB"]
        assert (tmp_path / "results" / "2024-03-15.json").exists()

    def test_resave_replaces(self, tmp_path):
        sink = JsonFileResultSink(str(tmp_path))
        sink.save(TARGET, [make_result("AAA", 60), make_result("BBB", 41)])
        sink.save(TARGET, [make_result("CCC", 70)])
        document = sink.load(TARGET)
        assert [s["symbol"] for s in document["stocks"]] == ["CCC"]
        assert sink.saved_dates() == [TARGET]

    def test_empty_result_set(self, tmp_path):
        sink = JsonFileResultSink(str(tmp_path))
        assert sink.save(TARGET, [])
        assert sink.load(TARGET)["averageScore"] == 0

    def test_missing_date(self, tmp_path):
        assert JsonFileResultSink(str(tmp_path)).load(TARGET) is None

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        # results dir path runs through a regular file
        assert JsonFileResultSink(str(blocker / "results")).save(TARGET, [make_result("AAA", 60)]) is False


class TestMemoryResultSink:
    def test_upsert(self):
        sink = MemoryResultSink()
        sink.save(TARGET, [make_result("AAA", 60)])
        sink.save(TARGET, [make_result("BBB", 40)])
        assert sink.save_count == 2
        assert [s["symbol"] for s in sink.load(TARGET)["stocks"]] == ["BBB"]


class TestCandidateSources:
    def test_static_dedupes(self):
        source = StaticCandidateSource(["AAA", {"symbol": "BBB", "name": "Bee"}, Candidate("AAA"), " CCC "])
        assert [c.symbol for c in source.list()] == ["AAA", "BBB", "CCC"]
        assert source.list()[1].name == "Bee"

    def test_json_source(self, tmp_path):
        path = tmp_path / "favorites.json"
        path.write_text(json.dumps({"stocks": [
            {"symbol": "AAA", "name": "Alpha"},
            {"name": "no symbol"},
            {"symbol": "BBB"},
        ]}))
        candidates = JsonCandidateSource(str(path)).list()
        assert [(c.symbol, c.name) for c in candidates] == [("AAA", "Alpha"), ("BBB", "")]

    def test_json_source_missing_file(self, tmp_path):
        with pytest.raises(ProviderUnavailableError):
            JsonCandidateSource(str(tmp_path / "missing.json")).list()
