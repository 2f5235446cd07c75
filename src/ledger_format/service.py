"""
Ledger Format Classification Service
====================================

This module defines ClassificationService, which runs the end-to-end
classification of one uploaded export:

1. validate the request
2. look the header fingerprint up in the response cache
3. on a miss, run the heuristic rules, then the fallback classifier
   (always, for the column mapping), then reconcile the two
4. cache and return the reconciled result

Failures are never cached, so a failing header set goes through the full
pipeline again on the next call. Concurrent identical misses may each run
the pipeline; classification is idempotent, so the last write simply wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import structlog

from common.config import Settings
from response_cache import CSV_DETECTION, CacheSweeper, ResponseCache, get_response_cache

from .errors import InputError, ServiceUnavailable
from .heuristics import classify_heuristically
from .models import ClassificationResult
from .provider import FallbackClassifier
from .reconcile import reconcile

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClassificationOutcome:
    result: ClassificationResult
    cached: bool

    def to_response(self) -> dict:
        response = self.result.to_dict()
        response["cached"] = self.cached
        return response


def validate_headers(headers: Any) -> list[str]:
    """Return the headers as a list, or raise InputError."""
    if headers is None:
        raise InputError("Invalid input: headers required.")
    if isinstance(headers, (str, bytes)) or not isinstance(headers, (list, tuple)):
        raise InputError("Invalid input: headers must be a list of strings.")
    if not headers:
        raise InputError("Invalid input: headers required.")
    for index, header in enumerate(headers):
        if not isinstance(header, str):
            raise InputError(
                f"Invalid input: header {index} is {type(header).__name__}, not a string."
            )
    if not any(header.strip() for header in headers):
        raise InputError("Invalid input: all headers are blank.")
    return list(headers)


class ClassificationService:
    """
    Classifies trade exports and owns the cache sweeper's lifecycle.

    Use as a context manager, or call ``start()`` and ``close()``.
    """

    def __init__(
        self,
        settings: Settings,
        fallback: FallbackClassifier | None = None,
        cache: ResponseCache | None = None,
    ):
        self.settings = settings
        self.fallback = fallback or FallbackClassifier(settings)
        self.cache = cache if cache is not None else get_response_cache()
        self._sweeper = CacheSweeper(self.cache, settings.CACHE_SWEEP_INTERVAL)

    def start(self) -> None:
        self._sweeper.start()

    def close(self) -> None:
        self._sweeper.stop()

    def __enter__(self) -> "ClassificationService":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def classify(
        self,
        headers: Any,
        sample_rows: Sequence[Any] | None = None,
    ) -> ClassificationOutcome:
        headers = validate_headers(headers)

        cached = self.cache.get(CSV_DETECTION, headers)
        if cached is not None:
            log.info(
                "Classification served from cache",
                source_system=cached.source_system,
                ledger_type=cached.ledger_type.value,
            )
            return ClassificationOutcome(result=cached, cached=True)

        log.info("Classifying headers", headers=headers[:5], header_count=len(headers))

        heuristic = classify_heuristically(headers)

        if not self.fallback.configured:
            if heuristic is None:
                raise ServiceUnavailable(
                    "No heuristic rule matched and the fallback classifier is not configured."
                )
            # Exchange and type are known but there is no column mapping;
            # not cached so a later configured process gets a full answer.
            log.warning(
                "Fallback classifier not configured; returning heuristic-only result",
                rule=heuristic.rule,
            )
            return ClassificationOutcome(result=reconcile(heuristic, None), cached=False)

        fallback = self.fallback.classify(headers, sample_rows, hint=heuristic)
        result = reconcile(heuristic, fallback)

        self.cache.set(CSV_DETECTION, result, headers)
        log.info(
            "Classification complete",
            source_system=result.source_system,
            ledger_type=result.ledger_type.value,
            confidence=result.confidence,
            decided_by=result.decided_by.value,
        )
        return ClassificationOutcome(result=result, cached=False)
