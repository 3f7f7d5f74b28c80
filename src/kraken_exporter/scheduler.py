"""Cycle runner: drives the publisher on a timer or on demand."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from kraken_exporter.connection.exceptions import FetchError
from kraken_exporter.logging_config import structured_log_extra
from kraken_exporter.market_data.publisher import CycleResult, TickerPublisher
from kraken_exporter.metrics import MetricsRegistry

logger = logging.getLogger(__name__)


class CycleRunner:
    """Runs generation cycles without ever letting two overlap.

    In the pull model a daemon thread calls :meth:`run_once` every
    ``interval`` seconds; in the lazy model the ``/metrics`` route calls it
    before rendering. A tick that finds a cycle still running is skipped.
    """

    def __init__(self, publisher: TickerPublisher, registry: MetricsRegistry) -> None:
        self.publisher = publisher
        self.registry = registry
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_error: Optional[Exception] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Optional[CycleResult]:
        """Run one cycle; return ``None`` when skipped or failed."""

        if not self._cycle_lock.acquire(blocking=False):
            logger.warning(
                "Previous cycle still running; skipping this tick",
                extra=structured_log_extra(event="cycle_skipped"),
            )
            self.registry.record_cycle("skipped")
            return None

        try:
            result = self.publisher.generate()
        except FetchError as exc:
            self.last_error = exc
            self.registry.record_cycle("failure")
            logger.error(
                "Generation cycle failed: %s",
                exc,
                extra=structured_log_extra(event="cycle_failed", error_type=type(exc).__name__),
            )
            return None
        except Exception as exc:  # pragma: no cover - defensive logging
            self.last_error = exc
            self.registry.record_cycle("failure")
            logger.exception(
                "Unexpected error during generation cycle",
                extra=structured_log_extra(event="cycle_crashed", error_type=type(exc).__name__),
            )
            return None
        finally:
            self._cycle_lock.release()

        self.last_error = None
        self.registry.record_cycle("success")
        return result

    def start(self, interval: float) -> None:
        """Start the pull loop on a background thread."""

        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, args=(interval,), name="cycle-runner", daemon=True
        )
        self._thread.start()
        logger.info(
            "Cycle runner started",
            extra=structured_log_extra(event="runner_started", interval=interval),
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the loop to exit and wait for the current cycle to finish."""

        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Cycle runner stopped", extra=structured_log_extra(event="runner_stopped"))

    def _loop(self, interval: float) -> None:
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(interval)


__all__ = ["CycleRunner"]
