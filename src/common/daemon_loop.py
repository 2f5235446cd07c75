"""
Background Loop Utilities
=========================

Long-lived housekeeping (such as sweeping expired response-cache entries)
runs on a background thread that is explicitly owned by a service object:

- The owner starts the loop during initialisation.
- The loop runs its task on a fixed interval.
- The owner stops the loop at shutdown; stopping interrupts the wait
  immediately instead of sleeping out the interval.

This module contains a small, reusable implementation so the owners stay
thin and easy to read.
"""

from __future__ import annotations

import threading
from typing import Callable

import structlog

log = structlog.get_logger(__name__)


class PeriodicTask:
    """
    Run ``task`` every ``interval_seconds`` on a daemon thread until stopped.

    Exceptions raised by the task are logged and do not stop the loop.

    Args:
        name:
            Name used in log messages and for the thread.
        task:
            Zero-argument callable invoked once per interval.
        interval_seconds:
            How long to wait between runs (clamped to at least 1 second
            unless ``allow_subsecond`` is set, which tests use).
    """

    def __init__(
        self,
        *,
        name: str,
        task: Callable[[], object],
        interval_seconds: float,
        allow_subsecond: bool = False,
    ):
        self.name = name
        self._task = task
        self._interval = (
            float(interval_seconds)
            if allow_subsecond
            else max(1.0, float(interval_seconds))
        )
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self.runs = 0

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """Start the loop. Starting an already running task is a no-op."""
        with self._lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run, name=f"periodic-{self.name}", daemon=True
            )
            self._thread.start()
        log.info(
            "Background task started",
            task=self.name,
            interval_seconds=self._interval,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for the thread to finish."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is None:
            return
        thread.join(timeout)
        if thread.is_alive():
            log.warning("Background task did not stop in time", task=self.name)
        else:
            log.info("Background task stopped", task=self.name, runs=self.runs)

    def run_once(self) -> None:
        """Run the task a single time, logging instead of raising on failure."""
        try:
            self._task()
        except Exception:
            log.exception("Background task failed; will retry", task=self.name)
        finally:
            self.runs += 1

    def _run(self) -> None:
        # Event.wait returns True as soon as stop() is called.
        while not self._stop_event.wait(self._interval):
            self.run_once()

    def __enter__(self) -> "PeriodicTask":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
