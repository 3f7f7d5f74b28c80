"""Prometheus registry adapter shared by the publisher and the HTTP surface."""

from __future__ import annotations

import time
from threading import RLock
from typing import Dict, Mapping, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

EXPOSITION_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

HTTP_REQUESTS_TOTAL = "http_requests_total"
HTTP_REQUESTS_DURATION = "http_requests_duration_seconds"
HTTP_REQUESTS_IN_FLIGHT = "http_requests_in_flight"

CYCLE_OUTCOMES = ("success", "failure", "skipped")


class MetricsRegistry:
    """Thread-safe facade over a private :class:`CollectorRegistry`.

    ``set`` and ``render`` share one lock, so a scrape never observes a
    half-applied write.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self._lock = RLock()
        self.registry = registry or CollectorRegistry(auto_describe=True)
        self._gauges: Dict[str, Gauge] = {}

        self.http_requests_total = Counter(
            HTTP_REQUESTS_TOTAL,
            "Total HTTP requests served by the exporter",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.http_requests_duration = Histogram(
            HTTP_REQUESTS_DURATION,
            "HTTP request latency in seconds",
            ["method", "path"],
            registry=self.registry,
        )
        self.http_requests_in_flight = Gauge(
            HTTP_REQUESTS_IN_FLIGHT,
            "HTTP requests currently being served",
            ["method", "path"],
            registry=self.registry,
        )

        self.cycles_total = Counter(
            "kraken_exporter_cycles_total",
            "Generation cycles by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.samples_dropped_total = Counter(
            "kraken_exporter_samples_dropped_total",
            "Ticker samples dropped because of bad values or unknown pairs",
            registry=self.registry,
        )
        self.last_success_timestamp = Gauge(
            "kraken_exporter_last_success_timestamp_seconds",
            "Unix time of the last successful generation cycle",
            registry=self.registry,
        )
        for outcome in CYCLE_OUTCOMES:
            self.cycles_total.labels(outcome=outcome)

    def register_gauge(
        self, name: str, documentation: str, labelnames: Sequence[str]
    ) -> Gauge:
        """Create the gauge family ``name`` once; later calls return it."""

        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                gauge = Gauge(name, documentation, list(labelnames), registry=self.registry)
                self._gauges[name] = gauge
            return gauge

    def set(self, name: str, labels: Mapping[str, str], value: float) -> None:
        """Write one sample, last writer wins per (name, label set)."""

        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                raise KeyError(f"Gauge '{name}' is not registered")
            gauge.labels(**labels).set(value)

    def render(self) -> bytes:
        """Return the current exposition in Prometheus text format."""

        with self._lock:
            return generate_latest(self.registry)

    def samples(self, name: str) -> Dict[Tuple[Tuple[str, str], ...], float]:
        """Return ``{sorted label items: value}`` for the samples of ``name``."""

        with self._lock:
            values: Dict[Tuple[Tuple[str, str], ...], float] = {}
            for family in self.registry.collect():
                for sample in family.samples:
                    if sample.name == name:
                        values[tuple(sorted(sample.labels.items()))] = sample.value
            return values

    def record_request(self, method: str, path: str, status: int, duration: float) -> None:
        self.http_requests_total.labels(method=method, path=path, status=str(status)).inc()
        self.http_requests_duration.labels(method=method, path=path).observe(duration)

    def record_cycle(self, outcome: str) -> None:
        self.cycles_total.labels(outcome=outcome).inc()
        if outcome == "success":
            self.last_success_timestamp.set(time.time())

    def record_dropped_samples(self, count: int = 1) -> None:
        if count > 0:
            self.samples_dropped_total.inc(count)


__all__ = ["MetricsRegistry", "EXPOSITION_CONTENT_TYPE"]
