"""
Utilities
=========

Helpers that are used across the application but do not belong to a more
specific domain like the response cache or the ledger format classifier.

Currently, it contains a `retry` decorator for handling transient errors
with exponential backoff and jitter.
"""

import random
import time
from functools import wraps
from typing import Callable, Type, TypeVar

import structlog

from .config import Settings

log = structlog.get_logger(__name__)
T = TypeVar("T")


def retry(
    retryable_exceptions: tuple[Type[Exception], ...],
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    A decorator that retries a method call on specific exceptions.

    The decorated method's instance must expose ``self.settings`` with
    ``MAX_RETRIES`` (total attempts) and ``MAX_RETRY_BACKOFF_SECONDS``.

    Args:
        retryable_exceptions: A tuple of exception types that should trigger a retry.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            settings: Settings = self.settings
            if settings.MAX_RETRIES < 1:
                raise ValueError("MAX_RETRIES must be >= 1")
            for attempt in range(1, settings.MAX_RETRIES + 1):
                try:
                    return func(self, *args, **kwargs)
                except retryable_exceptions as e:
                    if attempt == settings.MAX_RETRIES:
                        log.warning(
                            "Call failed after all attempts",
                            func=func.__name__,
                            attempts=attempt,
                            error=str(e),
                        )
                        raise
                    log.warning(
                        "Call failed; retrying",
                        func=func.__name__,
                        error=str(e),
                        attempt=attempt,
                        max_retries=settings.MAX_RETRIES,
                    )
                    _sleep_backoff(attempt, settings)
            # Unreachable while MAX_RETRIES >= 1
            raise RuntimeError("Retry loop exited unexpectedly.")

        return wrapper

    return decorator


def _sleep_backoff(attempt: int, settings: Settings) -> None:
    """Sleep with exponential backoff and jitter, capped by the settings."""
    delay = min(
        (2**attempt) * random.uniform(0.8, 1.2),
        float(settings.MAX_RETRY_BACKOFF_SECONDS),
    )
    log.info(
        "Sleeping before retry",
        delay_seconds=round(delay, 1),
        attempt=attempt,
        max_retries=settings.MAX_RETRIES,
    )
    time.sleep(delay)
