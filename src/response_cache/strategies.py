"""
Cache strategies.

A strategy is the named, read-only policy for one class of cacheable
computation: how long answers stay valid, how a cache key is derived from
the call arguments, and whether caching happens at all. Strategies are
enumerated statically in ``STRATEGIES``; nothing registers them at runtime.

Entries are namespaced by a tagged ``CacheKey`` (strategy name + raw key),
so clearing one strategy never depends on string prefixes.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Hashable, Mapping, NamedTuple

from .fingerprint import fingerprint, hash_payload

MINUTE = 60.0
HOUR = 60 * MINUTE
DAY = 24 * HOUR

CSV_DETECTION = "CSV_DETECTION"
INSIGHTS = "INSIGHTS"
PATTERN_ANALYSIS = "PATTERN_ANALYSIS"
REPORT_SUMMARY = "REPORT_SUMMARY"
QUESTION_ANSWER = "QUESTION_ANSWER"


class CacheKey(NamedTuple):
    strategy: str
    raw_key: Hashable


@dataclass(frozen=True)
class CacheStrategy:
    """
    Named cache policy.

    ``key_fn`` must be a pure function of the call arguments. A strategy with
    ``ttl_seconds <= 0``, no ``key_fn`` or ``enabled=False`` never caches.
    """

    name: str
    ttl_seconds: float
    key_fn: Callable[..., Hashable] | None
    enabled: bool = True

    @property
    def caches(self) -> bool:
        return self.enabled and self.ttl_seconds > 0 and self.key_fn is not None

    def key_for(self, *key_args) -> CacheKey:
        if self.key_fn is None:
            raise ValueError(f"Strategy {self.name} has no key function")
        return CacheKey(self.name, self.key_fn(*key_args))


def _header_key(headers) -> str:
    key = fingerprint(headers)
    if not key:
        raise ValueError("Empty header list cannot be used as a cache key")
    return key


def _owner_period_key(owner_id, period) -> tuple[str, str]:
    return (str(owner_id), str(period))


def _pattern_key(pattern) -> tuple[str, str]:
    if isinstance(pattern, Mapping):
        return (str(pattern["name"]), str(pattern["severity"]))
    return (str(pattern.name), str(pattern.severity))


STRATEGIES: Mapping[str, CacheStrategy] = MappingProxyType(
    {
        # Column detection, keyed by the header fingerprint.
        CSV_DETECTION: CacheStrategy(CSV_DETECTION, 1 * HOUR, _header_key),
        # Trading insights per owner per day.
        INSIGHTS: CacheStrategy(INSIGHTS, 1 * DAY, _owner_period_key),
        PATTERN_ANALYSIS: CacheStrategy(PATTERN_ANALYSIS, 7 * DAY, _pattern_key),
        # Report summaries, keyed by a hash of the analytics payload.
        REPORT_SUMMARY: CacheStrategy(REPORT_SUMMARY, 30 * DAY, hash_payload),
        # Answers to free-form questions are request-unique.
        QUESTION_ANSWER: CacheStrategy(QUESTION_ANSWER, 0, None, enabled=False),
    }
)
