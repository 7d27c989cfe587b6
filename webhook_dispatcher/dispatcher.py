"""Process-wide webhook dispatcher: registry, router and worker pool together."""

import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
import structlog

from webhook_dispatcher.config.dispatcher_config import DispatcherConfig
from webhook_dispatcher.queues.delivery_queue import DeliveryQueue
from webhook_dispatcher.storage.memory_store import InMemorySubscriptionStore
from webhook_dispatcher.storage.models import SubscriptionStore
from webhook_dispatcher.storage.sqlite_store import SQLiteConfig, SQLiteSubscriptionStore
from webhook_dispatcher.webhook.delivery import DeliveryWorkerPool
from webhook_dispatcher.webhook.observer import DeliveryObserver
from webhook_dispatcher.webhook.router import EventRouter

logger = structlog.get_logger(__name__)


def create_store(config: DispatcherConfig) -> SubscriptionStore:
    """Build the store selected by ``config.db_path``."""
    if config.db_path:
        return SQLiteSubscriptionStore(
            SQLiteConfig(db_path=config.db_path, require_secret=config.require_secret)
        )
    return InMemorySubscriptionStore(require_secret=config.require_secret)


class WebhookDispatcher:
    """Register subscriptions and fan events out to them.

    Triggering only enqueues; delivery outcomes are visible solely through
    the observer passed in here. Pending tasks live in memory and are lost
    if the process dies before they are delivered.
    """

    def __init__(
        self,
        config: Optional[DispatcherConfig] = None,
        store: Optional[SubscriptionStore] = None,
        observer: Optional[DeliveryObserver] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the dispatcher.

        Args:
            config: Dispatcher configuration; defaults apply when omitted
            store: Subscription store; chosen from config when omitted
            observer: Receives delivery outcomes
            session: HTTP session used by the workers
            clock: Source of the current time in epoch seconds
        """
        self.config = config or DispatcherConfig()
        self.store = store if store is not None else create_store(self.config)
        self.queue = DeliveryQueue(max_size=self.config.max_queue_size, clock=clock)
        self.router = EventRouter(self.store, self.queue, clock=clock)
        self.workers = DeliveryWorkerPool(
            self.queue,
            self.store,
            config=self.config,
            observer=observer,
            session=session,
            clock=clock,
        )

    def register_subscription(
        self,
        url: str,
        events: Iterable[str],
        secret: Optional[str] = None,
        enabled: bool = True,
    ) -> Dict[str, Any]:
        return self.store.register(url, events, secret=secret, enabled=enabled).to_dict()

    def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self.store.get(subscription_id).to_dict()

    def list_subscriptions(self) -> List[Dict[str, Any]]:
        return [subscription.to_dict() for subscription in self.store.list()]

    def delete_subscription(self, subscription_id: str) -> bool:
        return self.store.delete(subscription_id)

    def set_subscription_enabled(self, subscription_id: str, enabled: bool) -> Dict[str, Any]:
        return self.store.set_enabled(subscription_id, enabled).to_dict()

    def trigger_event(self, event: str, payload: Any) -> Dict[str, int]:
        """Fan an event out to matching subscriptions without waiting for delivery."""
        return {"enqueued": self.router.trigger(event, payload)}

    def start(self) -> None:
        self.workers.start()

    def shutdown(self, timeout: Optional[float] = None) -> int:
        """Stop the workers and report how many pending deliveries were abandoned."""
        abandoned = self.workers.stop(timeout)
        logger.info("dispatcher_shutdown", abandoned=abandoned)
        return abandoned

    def status(self) -> Dict[str, Any]:
        return {
            "workers_running": self.workers.running,
            "worker_count": self.config.worker_count,
            "queue_size": len(self.queue),
            "subscriptions": len(self.store.list()),
        }
