"""Metrics for the webhook dispatcher.

Metric names are declared here once so the queue, router and worker pool
register the same series through the shared :data:`metrics` registry.
"""

from enum import Enum, auto
from typing import List, Optional

from .prometheus import MetricsRegistry, metrics, start_metrics_server


class MetricType(Enum):
    """Types of metrics that can be collected."""

    COUNTER = auto()
    GAUGE = auto()
    HISTOGRAM = auto()


class Metric:
    """Represents a single metric with its metadata."""

    def __init__(
        self, name: str, type: MetricType, description: str, labels: Optional[List[str]] = None
    ):
        self.name = name
        self.type = type
        self.description = description
        self.labels = labels or []


DELIVERIES = Metric(
    "webhook_deliveries_total",
    MetricType.COUNTER,
    "Webhook delivery attempts by outcome",
    ["outcome"],
)

DELIVERY_LATENCY = Metric(
    "webhook_delivery_duration_seconds",
    MetricType.HISTOGRAM,
    "Duration of webhook HTTP calls",
)

RETRIES = Metric(
    "webhook_retries_total", MetricType.COUNTER, "Total number of rescheduled deliveries"
)

QUEUE_SIZE = Metric(
    "webhook_queue_size", MetricType.GAUGE, "Current number of pending delivery tasks"
)

QUEUE_OVERFLOWS = Metric(
    "webhook_queue_overflows_total",
    MetricType.COUNTER,
    "Delivery tasks rejected because the queue was full or closed",
)

ABANDONED_TASKS = Metric(
    "webhook_abandoned_tasks_total",
    MetricType.COUNTER,
    "Pending delivery tasks abandoned at shutdown",
)

EVENTS_TRIGGERED = Metric(
    "webhook_events_triggered_total", MetricType.COUNTER, "Events triggered", ["event"]
)

TASKS_ENQUEUED = Metric(
    "webhook_tasks_enqueued_total", MetricType.COUNTER, "Delivery tasks created by the router"
)


def register(metric: Metric):
    """Register a declared metric with the shared registry and return it."""
    if metric.type is MetricType.COUNTER:
        return metrics.register_counter(metric.name, metric.description, metric.labels)
    if metric.type is MetricType.GAUGE:
        return metrics.register_gauge(metric.name, metric.description, metric.labels)
    return metrics.register_histogram(metric.name, metric.description, metric.labels)


__all__ = [
    "MetricsRegistry",
    "Metric",
    "MetricType",
    "metrics",
    "register",
    "start_metrics_server",
    "DELIVERIES",
    "DELIVERY_LATENCY",
    "RETRIES",
    "QUEUE_SIZE",
    "QUEUE_OVERFLOWS",
    "ABANDONED_TASKS",
    "EVENTS_TRIGGERED",
    "TASKS_ENQUEUED",
]
