"""
Prometheus metrics for cache activity.
"""

import time
from contextlib import contextmanager
from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, CollectorRegistry

CACHE_EVENTS = ("hit", "miss", "write", "bypass", "store_down")


class CacheMetrics:
    """Counters and timings for a cache instance."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "greencache"):
        self.registry = registry
        self.namespace = namespace
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""
        kwargs = {"registry": self.registry} if self.registry is not None else {}

        self._metrics["events_total"] = Counter(
            f"{self.namespace}_events_total",
            "Total cache events",
            ["event"],
            **kwargs
        )

        self._metrics["compute_duration_seconds"] = Histogram(
            f"{self.namespace}_compute_duration_seconds",
            "Duration of value computations on cache miss or bypass",
            **kwargs
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_event(self, event: str):
        """Count a cache event (hit, miss, write, bypass, store_down)."""
        if event not in CACHE_EVENTS:
            raise ValueError(f"Unknown cache event: {event}")
        self._metrics["events_total"].labels(event=event).inc()

    @contextmanager
    def time_compute(self):
        """Context manager timing a value computation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            self._metrics["compute_duration_seconds"].observe(time.perf_counter() - start_time)
