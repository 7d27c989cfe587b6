"""Tests for the metrics registry and its use by the dispatcher."""

import pytest
from prometheus_client import CollectorRegistry, Counter

from webhook_dispatcher.metrics import DELIVERIES, register
from webhook_dispatcher.metrics.prometheus import MetricsRegistry


@pytest.fixture
def registry():
    return MetricsRegistry(registry=CollectorRegistry())


def test_register_is_idempotent(registry):
    first = registry.register_counter("test_events_total", "Events", ["kind"])
    second = registry.register_counter("test_events_total", "Events", ["kind"])

    assert first is second
    assert registry.get_metric("test_events_total") is first


def test_conflicting_kind_rejected(registry):
    registry.register_gauge("test_depth", "Depth")

    with pytest.raises(ValueError):
        registry.register_counter("test_depth", "Depth")


def test_collectors_use_given_registry(registry):
    counter = registry.register_counter("test_hits_total", "Hits")
    counter.inc(3)

    assert registry.registry.get_sample_value("test_hits_total") == 3


def test_declared_metrics_share_one_collector():
    assert register(DELIVERIES) is register(DELIVERIES)
    assert isinstance(register(DELIVERIES), Counter)
