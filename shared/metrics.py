"""
Shared metrics configuration for the dashboard data layer.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram


class MetricsCollector:
    """Prometheus metrics for cache and fetch activity.

    Each collector owns its registry unless one is passed in, so several
    data layers (or tests) can live in one process.
    """

    def __init__(self, namespace: str = "dashboard", registry: Optional[CollectorRegistry] = None):
        self.namespace = namespace
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache and fetch metrics."""
        self._metrics["cache_lookups_total"] = Counter(
            "cache_lookups_total",
            "Cache lookups by result",
            ["result"],
            namespace=self.namespace,
            registry=self.registry
        )

        self._metrics["cache_entries"] = Gauge(
            "cache_entries",
            "Entries currently held by the resource cache",
            namespace=self.namespace,
            registry=self.registry
        )

        self._metrics["cache_evictions_total"] = Counter(
            "cache_evictions_total",
            "Expired cache entries evicted",
            ["reason"],
            namespace=self.namespace,
            registry=self.registry
        )

        self._metrics["fetch_attempts_total"] = Counter(
            "fetch_attempts_total",
            "Network fetch attempts",
            ["resource", "outcome"],
            namespace=self.namespace,
            registry=self.registry
        )

        self._metrics["fetch_results_total"] = Counter(
            "fetch_results_total",
            "Terminal fetch results",
            ["resource", "result"],
            namespace=self.namespace,
            registry=self.registry
        )

        self._metrics["deduplicated_requests_total"] = Counter(
            "deduplicated_requests_total",
            "Fetches that joined an in-flight request",
            ["resource"],
            namespace=self.namespace,
            registry=self.registry
        )

        self._metrics["fetch_duration_seconds"] = Histogram(
            "fetch_duration_seconds",
            "Time from fetch start to terminal state",
            ["resource"],
            namespace=self.namespace,
            registry=self.registry
        )

    @contextmanager
    def time_operation(self, operation_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            self.observe_histogram(operation_name, duration, **labels)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)

    def get_sample_value(self, sample_name: str, **labels) -> Optional[float]:
        """Read back a sample, e.g. ``cache_lookups_total`` with ``result="hit"``."""
        return self.registry.get_sample_value(f"{self.namespace}_{sample_name}", labels)
