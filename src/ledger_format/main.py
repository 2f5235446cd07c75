"""
Ledger Format Detection CLI
===========================

Reads the header row and a few sample rows of each CSV file given on the
command line, classifies it and prints one JSON document per file.

Exit status is 0 when every file was classified, 1 when at least one file
failed, and 2 on configuration errors.
"""

from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Sequence

import structlog

from common.config import Settings, setup_libraries
from common.logging_config import configure_logging

from .errors import ClassificationError
from .service import ClassificationService


def read_csv_preview(path: Path, sample_rows: int) -> tuple[list[str], list[dict]]:
    """Return the header row and up to ``sample_rows`` rows keyed by header."""
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.reader(handle)
        headers = next(reader, [])
        rows = []
        for row in reader:
            if len(rows) >= sample_rows:
                break
            rows.append(dict(zip(headers, row)))
    return headers, rows


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ledger-format",
        description="Detect the exchange and ledger type of trade-history CSV exports.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="CSV files to classify")
    parser.add_argument(
        "--stats",
        action="store_true",
        help="print response-cache statistics after classifying",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Classify every file named on the command line."""
    args = _parse_args(argv)
    log = structlog.get_logger(__name__)

    try:
        settings = Settings()
    except ValueError as e:
        # Logging is not configured yet; keep stdout for results only.
        structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))
        log.error("Configuration error", error=str(e))
        return 2

    configure_logging(settings, stream=sys.stderr)
    setup_libraries(settings)

    log.info(
        "Starting ledger format detection",
        file_count=len(args.files),
        llm_provider=settings.LLM_PROVIDER,
        ai_models=settings.AI_MODELS,
        fallback_configured=settings.FALLBACK_CONFIGURED,
    )

    failures = 0
    with ClassificationService(settings) as service:
        for path in args.files:
            try:
                headers, rows = read_csv_preview(path, settings.CLASSIFY_SAMPLE_ROWS)
                outcome = service.classify(headers, rows)
            except OSError as e:
                failures += 1
                log.error("Could not read file", path=str(path), error=str(e))
                payload = {"error": "io_error", "message": str(e)}
            except ClassificationError as e:
                failures += 1
                log.warning("Classification failed", path=str(path), kind=e.kind)
                payload = e.to_response()
            else:
                payload = outcome.to_response()
            print(json.dumps({"file": str(path), **payload}, ensure_ascii=False))

        if args.stats:
            print(json.dumps({"cache": service.cache.stats().to_dict()}))

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
