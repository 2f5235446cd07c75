"""
Response Cache
==============

In-process, TTL-bounded store shared by every cacheable pipeline (ledger
format detection, insight generation, report summaries).

The cache is a pure optimization layer. None of its public operations
raise: an unknown or disabled strategy, a failing key derivation or any
other fault degrades to a miss (or a skipped write), so the caller simply
recomputes.

Expiry is enforced lazily on ``get`` so an expired entry is never returned;
``sweep`` additionally drops entries that are written once and never read
again. ``CacheSweeper`` owns the background thread that calls ``sweep``.
"""

from __future__ import annotations

import dataclasses
import json
import threading
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Mapping, TypeVar

import structlog

from common.daemon_loop import PeriodicTask

from .strategies import STRATEGIES, CacheKey, CacheStrategy

log = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    per_strategy: dict[str, int]
    approximate_size_bytes: int

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def _json_default(value: object) -> object:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, Mapping):
        return dict(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return repr(value)


def _approximate_size(value: object) -> int:
    try:
        return len(json.dumps(value, default=_json_default))
    except (TypeError, ValueError):
        return len(repr(value))


class ResponseCache:
    """
    Multi-strategy TTL cache guarded by a single lock.

    Args:
        strategies:
            Mapping of strategy name to policy. Defaults to ``STRATEGIES``.
        clock:
            Monotonic time source in seconds; injectable for tests.
    """

    def __init__(
        self,
        strategies: Mapping[str, CacheStrategy] = STRATEGIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._strategies = strategies
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def _active_strategy(self, name: str) -> CacheStrategy | None:
        if not isinstance(name, str):
            return None
        strategy = self._strategies.get(name)
        if strategy is None or not strategy.caches:
            return None
        return strategy

    def _key(self, strategy: CacheStrategy, key_args: tuple) -> CacheKey | None:
        try:
            key = strategy.key_for(*key_args)
            hash(key)
        except Exception as e:
            log.warning(
                "Cache key derivation failed; treating as miss",
                strategy=strategy.name,
                error=str(e),
            )
            return None
        return key

    @staticmethod
    def _expired(entry: CacheEntry, strategy: CacheStrategy, now: float) -> bool:
        return now - entry.stored_at >= strategy.ttl_seconds

    def get(self, strategy_name: str, *key_args) -> Any | None:
        """Return the cached value, or ``None`` on a miss."""
        strategy = self._active_strategy(strategy_name)
        if strategy is None:
            return None
        key = self._key(strategy, key_args)
        if key is None:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, strategy, self._clock()):
                del self._entries[key]
                expired = True
            else:
                expired = False

        if expired:
            log.debug("Cache entry expired", strategy=strategy_name)
            return None
        log.debug("Cache hit", strategy=strategy_name, key=str(key.raw_key)[:50])
        return entry.value

    def set(self, strategy_name: str, value: Any, *key_args) -> None:
        """Store ``value``, replacing any entry under the same key."""
        strategy = self._active_strategy(strategy_name)
        if strategy is None:
            return
        key = self._key(strategy, key_args)
        if key is None:
            return

        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
        log.debug("Cache set", strategy=strategy_name, key=str(key.raw_key)[:50])

    def clear(self, strategy_name: str | None = None) -> int:
        """Remove one strategy's entries, or everything; return the count."""
        with self._lock:
            if strategy_name is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [k for k in self._entries if k.strategy == strategy_name]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)
        log.info("Cache cleared", strategy=strategy_name or "all", removed=removed)
        return removed

    def sweep(self) -> int:
        """Remove every expired entry across all strategies."""
        now = self._clock()
        with self._lock:
            doomed = []
            for key, entry in self._entries.items():
                strategy = self._strategies.get(key.strategy)
                if strategy is None or self._expired(entry, strategy, now):
                    doomed.append(key)
            for key in doomed:
                del self._entries[key]
        if doomed:
            log.info("Swept expired cache entries", removed=len(doomed))
        return len(doomed)

    def stats(self) -> CacheStats:
        with self._lock:
            snapshot = list(self._entries.items())
        per_strategy: dict[str, int] = {}
        size = 0
        for key, entry in snapshot:
            per_strategy[key.strategy] = per_strategy.get(key.strategy, 0) + 1
            size += _approximate_size(entry.value)
        return CacheStats(
            total_entries=len(snapshot),
            per_strategy=per_strategy,
            approximate_size_bytes=size,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def memoize(self, strategy_name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
        """
        Decorate ``fn`` so its result is cached under ``strategy_name``.

        The decorated function's positional arguments are the key arguments,
        so it must be called positionally; keyword arguments raise
        ``TypeError``. Exceptions and ``None`` results are never cached.
        """

        def decorator(fn: Callable[..., T]) -> Callable[..., T]:
            @wraps(fn)
            def wrapper(*args, **kwargs):
                if kwargs:
                    raise TypeError(
                        f"{fn.__name__}() is memoized under {strategy_name!r} and "
                        f"accepts positional arguments only, got {sorted(kwargs)}"
                    )
                cached = self.get(strategy_name, *args)
                if cached is not None:
                    return cached
                result = fn(*args)
                if result is not None:
                    self.set(strategy_name, result, *args)
                return result

            return wrapper

        return decorator


class CacheSweeper(PeriodicTask):
    """Background task that periodically calls ``cache.sweep()``."""

    def __init__(self, cache: ResponseCache, interval_seconds: float, **kwargs):
        super().__init__(
            name="response-cache-sweep",
            task=cache.sweep,
            interval_seconds=interval_seconds,
            **kwargs,
        )
        self.cache = cache


_shared_cache: ResponseCache | None = None
_shared_lock = threading.Lock()


def get_response_cache() -> ResponseCache:
    """Return the process-wide cache, creating it on first use."""
    global _shared_cache
    with _shared_lock:
        if _shared_cache is None:
            _shared_cache = ResponseCache()
        return _shared_cache
