"""In-memory subscription store."""

import dataclasses
import threading
from typing import Dict, Iterable, List, Optional

import structlog

from webhook_dispatcher.core.errors import NotFoundError
from webhook_dispatcher.storage.models import (
    Subscription,
    new_subscription_id,
    validate_registration,
)

logger = structlog.get_logger(__name__)


class InMemorySubscriptionStore:
    """Thread-safe subscription table keyed by ID.

    Dicts keep insertion order, which is the order :meth:`list` returns.
    Subscriptions are frozen, so handing out the stored instance is
    equivalent to handing out a copy.
    """

    def __init__(self, require_secret: bool = False):
        """Initialize the store.

        Args:
            require_secret: Reject registrations without a signing secret
        """
        self.require_secret = require_secret
        self._subscriptions: Dict[str, Subscription] = {}
        self._lock = threading.RLock()

    def register(
        self,
        url: str,
        events: Iterable[str],
        secret: Optional[str] = None,
        enabled: bool = True,
    ) -> Subscription:
        """Store a new subscription.

        Args:
            url: Endpoint URL
            events: Event names to match
            secret: Optional signing secret
            enabled: Whether the subscription receives deliveries

        Returns:
            The stored subscription

        Raises:
            ValidationError: If url or events are empty
        """
        event_set = validate_registration(url, events, secret, self.require_secret)

        with self._lock:
            subscription_id = new_subscription_id()
            while subscription_id in self._subscriptions:
                subscription_id = new_subscription_id()

            subscription = Subscription(
                id=subscription_id,
                url=url,
                events=event_set,
                secret=secret or None,
                enabled=bool(enabled),
            )
            self._subscriptions[subscription_id] = subscription

        logger.info(
            "subscription_registered",
            subscription_id=subscription_id,
            url=url,
            events=sorted(event_set),
        )
        return subscription

    def get(self, subscription_id: str) -> Subscription:
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
        if subscription is None:
            raise NotFoundError(subscription_id)
        return subscription

    def list(self) -> List[Subscription]:
        with self._lock:
            return list(self._subscriptions.values())

    def delete(self, subscription_id: str) -> bool:
        with self._lock:
            removed = self._subscriptions.pop(subscription_id, None)
        if removed is not None:
            logger.info("subscription_deleted", subscription_id=subscription_id)
        return removed is not None

    def set_enabled(self, subscription_id: str, enabled: bool) -> Subscription:
        """Enable or disable a subscription.

        Raises:
            NotFoundError: If the subscription does not exist
        """
        with self._lock:
            current = self._subscriptions.get(subscription_id)
            if current is None:
                raise NotFoundError(subscription_id)
            updated = dataclasses.replace(current, enabled=bool(enabled))
            self._subscriptions[subscription_id] = updated

        logger.info("subscription_updated", subscription_id=subscription_id, enabled=enabled)
        return updated

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
