"""
Daily Short/Long Suitability Analysis

Scores every candidate symbol for one analysis date through the four stages
(relative strength, volatility, momentum, trend) and writes the ranked result
set to the results directory.

Usage (from repo root):
    python run_analysis.py --date 2024-03-15 --data data/history.json \
                           --candidates data/favorites.json --direction short
"""

import sys
import os
import argparse
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional

# Force UTF-8 encoding on Windows
try:
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")
except Exception:
    pass
os.environ.setdefault("PYTHONIOENCODING", "utf-8")

from core.errors import AnalysisError, ProviderUnavailableError
from core.models.analysis import AnalysisRun, ProgressEvent
from core.orchestration.orchestrator import AnalysisOrchestrator
from configs import ConfigLoader, config_loader
from infra.data.candidates import JsonCandidateSource, StaticCandidateSource
from infra.data.data_loader import DataSource, HistoricalIndex
from infra.storage.result_sink import JsonFileResultSink

SOURCE_CHOICES = {
    "json": DataSource.JSON,
    "csv": DataSource.CSV,
    "daily": DataSource.DAILY_FILES,
}

RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname', 'levelno',
    'lineno', 'module', 'msecs', 'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'getMessage', 'taskName',
}


# Configure logging to JSON format
class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in RESERVED_ATTRS and not key.startswith('_'):
                log_obj[key] = value
        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def setup_logging(verbose: bool = False) -> Path:
    """Setup JSON logging to file plus a plain console handler."""
    log_dir = Path('logs')
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f'analysis_{datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")}.json'

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # File handler with JSON formatter
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root_logger.addHandler(console_handler)

    return log_file


def print_progress(event: ProgressEvent) -> None:
    if event.symbol is None:
        print(f"[{event.percent:5.1f}%] {event.message}")


def print_summary(run: AnalysisRun, top: int) -> None:
    print("\n" + "=" * 78)
    print(f"ANALYSIS {run.date.isoformat()} ({run.direction.value.upper()})")
    print("=" * 78)
    print(f"{'#':>3}  {'Symbol':<8}{'Price':>10}{'RS':>5}{'Vol':>5}{'Mom':>5}{'Trd':>5}{'Final':>7}  Signal")
    for rank, stock in enumerate(run.ranked()[:top], start=1):
        price = f"{float(stock.current_price):.2f}" if stock.current_price is not None else "-"
        flag = " *" if not stock.is_complete else ""
        print(
            f"{rank:>3}  {stock.symbol:<8}{price:>10}{stock.relative_strength_score:>5}"
            f"{stock.volatility_score:>5}{stock.momentum_score:>5}{stock.trend_score:>5}"
            f"{stock.final_score:>7}  {stock.signal}{flag}"
        )
    print("-" * 78)
    print(f"  - Stocks: {run.processed_stocks}/{run.total_stocks} (defaulted: {run.defaulted_stocks})")
    print(f"  - Average score: {run.average_score}")
    print(f"  - Time: {run.analysis_time_ms} ms")
    print(f"  - Saved: {run.saved}")
    print("  (* = at least one stage used the neutral default)")
    print("=" * 78 + "\n")


def run_analysis(args: argparse.Namespace) -> Optional[AnalysisRun]:
    loader = ConfigLoader(args.config_dir) if args.config_dir else config_loader
    config = loader.analysis_config(direction=args.direction)

    index = HistoricalIndex({"source": SOURCE_CHOICES[args.source].value, "path": args.data}).load()

    if args.candidates:
        candidates = JsonCandidateSource(args.candidates)
    elif args.symbols:
        candidates = StaticCandidateSource(args.symbols)
    else:
        candidates = StaticCandidateSource(s for s in index.symbols if s != config.benchmark_symbol)

    results_dir = os.path.join(args.results_dir, config.direction.value)
    orchestrator = AnalysisOrchestrator(config, index, candidates, JsonFileResultSink(results_dir))
    return orchestrator.run(args.date, on_progress=print_progress)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Daily short/long suitability scoring")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        required=True,
        help="Analysis date, YYYY-MM-DD",
    )
    parser.add_argument(
        "--data",
        required=True,
        help="Historical data file (json/csv) or directory of DD.MM.YYYY.json files (daily)",
    )
    parser.add_argument(
        "--source",
        choices=sorted(SOURCE_CHOICES),
        default="json",
        help="Historical data format (default: json)",
    )
    parser.add_argument(
        "--candidates",
        help='Favorites JSON {"stocks": [{"symbol", "name"}]} (default: every symbol in the data)',
    )
    parser.add_argument(
        "--symbols",
        nargs="+",
        help="Explicit symbols to score instead of a candidates file",
    )
    parser.add_argument(
        "--results-dir",
        default="results",
        help="Directory for per-date result files (default: results)",
    )
    parser.add_argument(
        "--direction",
        choices=["short", "long"],
        help="Override the configured direction",
    )
    parser.add_argument(
        "--config-dir",
        help="Directory holding analysis.json / analysis.schema.json",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=20,
        help="Rows to print in the summary (default: 20)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log debug output to the console")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_file = setup_logging(args.verbose)
    try:
        run = run_analysis(args)
    except ProviderUnavailableError as e:
        print(f"Analysis failed: {e}")
        print(f"Log file: {log_file}")
        return 2
    except AnalysisError as e:
        print(f"Configuration error: {e}")
        return 1

    print_summary(run, args.top)
    print(f"Log file: {log_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
