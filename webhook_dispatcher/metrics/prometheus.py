"""Prometheus metrics collection module."""

import threading
from typing import Any, Dict, List, Optional, Type

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


class MetricsRegistry:
    """Name-keyed cache of Prometheus collectors.

    Registering the same name twice returns the existing collector, so
    components that are instantiated many times (one queue per dispatcher,
    one pool per test) share a single series instead of colliding in the
    Prometheus registry.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _register(
        self, kind: Type, name: str, description: str, labels: Optional[List[str]]
    ) -> Any:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None:
                if not isinstance(existing, kind):
                    raise ValueError(f"Metric {name} already registered as {type(existing).__name__}")
                return existing

            collector = kind(name, description, labels or [], registry=self.registry)
            self._metrics[name] = collector
            return collector

    def register_counter(self, name: str, description: str, labels: List[str] = None) -> Counter:
        """Register a new counter metric."""
        return self._register(Counter, name, description, labels)

    def register_gauge(self, name: str, description: str, labels: List[str] = None) -> Gauge:
        """Register a new gauge metric."""
        return self._register(Gauge, name, description, labels)

    def register_histogram(
        self, name: str, description: str, labels: List[str] = None
    ) -> Histogram:
        """Register a new histogram metric."""
        return self._register(Histogram, name, description, labels)

    def get_metric(self, name: str) -> Any:
        """Get a registered metric by name."""
        return self._metrics.get(name)


# Global metrics registry
metrics = MetricsRegistry()


def start_metrics_server(port: int = 8000, registry: CollectorRegistry = REGISTRY):
    """Start a Prometheus metrics server on the specified port.

    Args:
        port: Port number for metrics server
        registry: Collector registry to expose
    """
    from prometheus_client import start_http_server

    start_http_server(port, registry=registry)
