"""Webhook dispatcher module."""

from .config.dispatcher_config import DispatcherConfig
from .core.errors import (
    ExhaustedRetriesError,
    NotFoundError,
    PermanentDeliveryError,
    TransientDeliveryError,
    ValidationError,
)
from .dispatcher import WebhookDispatcher
from .queues.delivery_queue import DeliveryQueue, DeliveryTask
from .storage.memory_store import InMemorySubscriptionStore
from .storage.models import Subscription
from .webhook.delivery import DeliveryWorkerPool
from .webhook.observer import CallbackObserver, DeliveryObserver, LoggingObserver
from .webhook.router import EventRouter

__version__ = "1.0.0"

__all__ = [
    "CallbackObserver",
    "DeliveryObserver",
    "DeliveryQueue",
    "DeliveryTask",
    "DeliveryWorkerPool",
    "DispatcherConfig",
    "EventRouter",
    "ExhaustedRetriesError",
    "InMemorySubscriptionStore",
    "LoggingObserver",
    "NotFoundError",
    "PermanentDeliveryError",
    "Subscription",
    "TransientDeliveryError",
    "ValidationError",
    "WebhookDispatcher",
]
