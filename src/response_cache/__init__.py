"""
Response cache package.

This package contains:

- header fingerprints and payload hashes used as cache keys
- the static table of cache strategies
- the thread-safe TTL store and its background sweeper
"""

from .fingerprint import fingerprint, hash_payload
from .store import CacheStats, CacheSweeper, ResponseCache, get_response_cache
from .strategies import (
    CSV_DETECTION,
    INSIGHTS,
    PATTERN_ANALYSIS,
    QUESTION_ANSWER,
    REPORT_SUMMARY,
    STRATEGIES,
    CacheKey,
    CacheStrategy,
)

__all__ = [
    "CSV_DETECTION",
    "INSIGHTS",
    "PATTERN_ANALYSIS",
    "QUESTION_ANSWER",
    "REPORT_SUMMARY",
    "STRATEGIES",
    "CacheKey",
    "CacheStats",
    "CacheStrategy",
    "CacheSweeper",
    "ResponseCache",
    "fingerprint",
    "get_response_cache",
    "hash_payload",
]
