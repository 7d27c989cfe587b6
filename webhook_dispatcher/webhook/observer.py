"""Delivery outcome observers.

The trigger caller never sees individual delivery outcomes. Everything the
worker pool learns about a task after it was enqueued is reported here.
"""

from typing import Callable, Optional

import structlog

from webhook_dispatcher.core.errors import DeliveryError
from webhook_dispatcher.queues.delivery_queue import DeliveryTask

logger = structlog.get_logger(__name__)

TerminalFailureCallback = Callable[[str, str, str, int, DeliveryError], None]


class DeliveryObserver:
    """Base observer. Every hook is a no-op; override what you need."""

    def on_delivered(self, task: DeliveryTask, status_code: int) -> None:
        pass

    def on_retry_scheduled(self, task: DeliveryTask, error: DeliveryError) -> None:
        pass

    def on_terminal_failure(
        self,
        task_id: str,
        subscription_id: str,
        event: str,
        attempts: int,
        last_error: DeliveryError,
    ) -> None:
        """Called exactly once per task that exhausted retries or failed permanently."""


class LoggingObserver(DeliveryObserver):
    """Reports terminal failures to the structured log."""

    def on_terminal_failure(self, task_id, subscription_id, event, attempts, last_error):
        logger.error(
            "webhook_delivery_abandoned",
            task_id=task_id,
            subscription_id=subscription_id,
            event_type=event,
            attempts=attempts,
            error_type=type(last_error).__name__,
            status_code=last_error.status_code,
            error=last_error.message,
        )


class CallbackObserver(DeliveryObserver):
    """Adapts plain callables to the observer interface."""

    def __init__(
        self,
        on_terminal_failure: TerminalFailureCallback,
        on_delivered: Optional[Callable[[DeliveryTask, int], None]] = None,
    ):
        self._on_terminal_failure = on_terminal_failure
        self._on_delivered = on_delivered

    def on_delivered(self, task, status_code):
        if self._on_delivered is not None:
            self._on_delivered(task, status_code)

    def on_terminal_failure(self, task_id, subscription_id, event, attempts, last_error):
        self._on_terminal_failure(task_id, subscription_id, event, attempts, last_error)
