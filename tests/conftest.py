import os
from unittest.mock import Mock

import pytest
import requests

from webhook_dispatcher.config import DispatcherConfig
from webhook_dispatcher.queues.delivery_queue import DeliveryQueue
from webhook_dispatcher.storage.memory_store import InMemorySubscriptionStore
from webhook_dispatcher.webhook.delivery import DeliveryWorkerPool
from webhook_dispatcher.webhook.observer import DeliveryObserver
from webhook_dispatcher.webhook.router import EventRouter


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingObserver(DeliveryObserver):
    """Collects every observer call for assertions."""

    def __init__(self):
        self.delivered = []
        self.retries = []
        self.failures = []

    def on_delivered(self, task, status_code):
        self.delivered.append((task.task_id, status_code))

    def on_retry_scheduled(self, task, error):
        self.retries.append((task.task_id, task.attempt, task.next_attempt_at))

    def on_terminal_failure(self, task_id, subscription_id, event, attempts, last_error):
        self.failures.append(
            {
                "task_id": task_id,
                "subscription_id": subscription_id,
                "event": event,
                "attempts": attempts,
                "last_error": last_error,
            }
        )


def make_response(status_code: int, headers=None) -> Mock:
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.headers = headers or {}
    return response


@pytest.fixture(autouse=True)
def clear_webhook_env(monkeypatch):
    """Keep host WEBHOOK_* variables out of configuration tests."""
    for name in list(os.environ):
        if name.startswith("WEBHOOK_"):
            monkeypatch.delenv(name)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def session():
    """HTTP session stand-in; set ``post.side_effect`` or ``post.return_value``."""
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(200)
    return session


@pytest.fixture
def config():
    return DispatcherConfig(
        worker_count=1,
        max_attempts=5,
        request_timeout=10.0,
        backoff_base=1.0,
        max_backoff=300.0,
        jitter=0.2,
    )


@pytest.fixture
def store():
    return InMemorySubscriptionStore()


@pytest.fixture
def queue(clock):
    return DeliveryQueue(clock=clock)


@pytest.fixture
def router(store, queue, clock):
    return EventRouter(store, queue, clock=clock)


@pytest.fixture
def pool(queue, store, config, observer, session, clock):
    return DeliveryWorkerPool(
        queue, store, config=config, observer=observer, session=session, clock=clock
    )


@pytest.fixture
def response():
    """Factory for HTTP responses returned by the mocked session."""
    return make_response
