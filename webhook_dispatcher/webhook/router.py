"""Event routing: turn one triggered event into delivery tasks."""

import json
import time
from typing import Any, Callable

import structlog

from webhook_dispatcher.core.errors import ValidationError
from webhook_dispatcher.metrics import EVENTS_TRIGGERED, TASKS_ENQUEUED, register
from webhook_dispatcher.queues.delivery_queue import DeliveryQueue, DeliveryTask
from webhook_dispatcher.storage.models import SubscriptionStore

logger = structlog.get_logger(__name__)


def serialize_payload(payload: Any) -> bytes:
    """Serialize a payload once into the bytes that will be signed and sent.

    Raises:
        ValidationError: If the payload is not JSON-serializable
    """
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Payload is not JSON-serializable: {e}") from e


class EventRouter:
    """Matches events against subscriptions and enqueues delivery tasks."""

    def __init__(
        self,
        store: SubscriptionStore,
        queue: DeliveryQueue,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.queue = queue
        self.clock = clock

        self.events_triggered = register(EVENTS_TRIGGERED)
        self.tasks_enqueued = register(TASKS_ENQUEUED)

    def trigger(self, event: str, payload: Any) -> int:
        """Enqueue one task per enabled subscription listening for ``event``.

        Returns immediately; delivery happens on the worker pool.

        Args:
            event: Event name, matched case-sensitively
            payload: JSON-serializable data sent as the request body

        Returns:
            Number of tasks enqueued
        """
        body = serialize_payload(payload)
        self.events_triggered.labels(event=event).inc()

        matches = [s for s in self.store.list() if s.matches(event)]
        if not matches:
            logger.debug("event_unmatched", event_type=event)
            return 0

        now = self.clock()
        enqueued = 0
        for subscription in matches:
            task = DeliveryTask(
                subscription_id=subscription.id,
                event=event,
                payload=body,
                next_attempt_at=now,
                created_at=now,
            )
            if self.queue.push(task):
                enqueued += 1

        self.tasks_enqueued.inc(enqueued)
        logger.info("event_triggered", event_type=event, matched=len(matches), enqueued=enqueued)
        return enqueued
