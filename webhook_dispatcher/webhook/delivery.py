"""Delivery worker pool with retries, backoff and terminal-failure reporting."""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

import requests
import structlog

from webhook_dispatcher.config.dispatcher_config import DispatcherConfig
from webhook_dispatcher.core.errors import (
    DeliveryError,
    ExhaustedRetriesError,
    NotFoundError,
    PermanentDeliveryError,
    TransientDeliveryError,
)
from webhook_dispatcher.metrics import (
    ABANDONED_TASKS,
    DELIVERIES,
    DELIVERY_LATENCY,
    RETRIES,
    register,
)
from webhook_dispatcher.queues.delivery_queue import DeliveryQueue, DeliveryTask
from webhook_dispatcher.storage.models import Subscription, SubscriptionStore
from webhook_dispatcher.webhook.observer import DeliveryObserver, LoggingObserver
from webhook_dispatcher.webhook.retry import RetryPolicy, parse_retry_after
from webhook_dispatcher.webhook.signer import SIGNATURE_HEADER, build_signature_header

logger = structlog.get_logger(__name__)

EVENT_HEADER = "X-Webhook-Event"
ID_HEADER = "X-Webhook-Id"


class DeliveryOutcome(Enum):
    """What happened to a task after one attempt."""

    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    PERMANENT_FAILURE = "permanent_failure"
    RETRIES_EXHAUSTED = "retries_exhausted"
    DROPPED = "dropped"


@dataclass
class DeliveryResult:
    """Result of processing one task."""

    task: DeliveryTask
    outcome: DeliveryOutcome
    status_code: Optional[int] = None
    error: Optional[DeliveryError] = None


def build_headers(
    subscription: Subscription, task: DeliveryTask, user_agent: str
) -> Dict[str, str]:
    """Headers for one delivery; the signature covers ``task.payload`` exactly."""
    headers = {
        "Content-Type": "application/json",
        "User-Agent": user_agent,
        EVENT_HEADER: task.event,
        ID_HEADER: subscription.id,
    }
    signature = build_signature_header(task.payload, subscription.secret)
    if signature is not None:
        headers[SIGNATURE_HEADER] = signature
    return headers


class DeliveryWorkerPool:
    """Fixed-size pool of threads draining a :class:`DeliveryQueue`.

    Each claimed task gets one HTTP attempt. Transient failures go back on
    the queue with a later ``next_attempt_at``; permanent failures and
    exhausted retries are reported once to the observer. Tasks whose
    subscription was deleted after they were enqueued are dropped silently.
    """

    def __init__(
        self,
        queue: DeliveryQueue,
        store: SubscriptionStore,
        config: Optional[DispatcherConfig] = None,
        observer: Optional[DeliveryObserver] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize the worker pool.

        Args:
            queue: Queue to consume
            store: Subscription lookup, consulted on every attempt
            config: Dispatcher configuration
            observer: Receives delivery outcomes; logs terminal failures by default
            session: HTTP session used for every POST
            clock: Source of the current time in epoch seconds
            retry_policy: Backoff policy; derived from config when omitted
        """
        self.queue = queue
        self.store = store
        self.config = config or DispatcherConfig()
        self.observer = observer or LoggingObserver()
        self.session = session or requests.Session()
        self.clock = clock
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.config.max_attempts,
            backoff_base=self.config.backoff_base,
            max_backoff=self.config.max_backoff,
            jitter=self.config.jitter,
        )

        self._shutdown = threading.Event()
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._unqueued_lock = threading.Lock()
        self._unqueued_retries = 0
        self._abandon_reported = False

        self.deliveries = register(DELIVERIES)
        self.delivery_latency = register(DELIVERY_LATENCY)
        self.retries = register(RETRIES)
        self.abandoned = register(ABANDONED_TASKS)

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Start the worker threads."""
        with self._lock:
            if self.running:
                return
            if self.queue.closed:
                raise RuntimeError("Cannot start workers on a closed queue")
            self._shutdown.clear()
            self._unqueued_retries = 0
            self._abandon_reported = False
            self._threads = [
                threading.Thread(
                    target=self._worker_loop, name=f"webhook-worker-{i}", daemon=True
                )
                for i in range(self.config.worker_count)
            ]
            for thread in self._threads:
                thread.start()
        logger.info("worker_pool_started", workers=self.config.worker_count)

    def stop(self, timeout: Optional[float] = None) -> int:
        """Stop claiming tasks and wait for in-flight deliveries.

        Args:
            timeout: Longest time to wait for each worker thread

        Returns:
            Number of pending tasks abandoned
        """
        self._shutdown.set()
        self.queue.close()

        with self._lock:
            for thread in self._threads:
                thread.join(timeout)
            self._threads = []
        with self._unqueued_lock:
            unqueued = self._unqueued_retries
            self._unqueued_retries = 0
            self._abandon_reported = True

        abandoned = len(self.queue.drain()) + unqueued
        if abandoned:
            self.abandoned.inc(abandoned)
            logger.warning("pending_deliveries_abandoned", count=abandoned)
        logger.info("worker_pool_stopped", abandoned=abandoned)
        return abandoned

    def _worker_loop(self) -> None:
        while not self._shutdown.is_set():
            task = None
            try:
                task = self.queue.get(timeout=self.config.poll_interval)
                if task is not None:
                    self.process_task(task)
            except Exception as e:
                logger.exception(
                    "worker_task_failed",
                    task_id=task.task_id if task is not None else None,
                    error=str(e),
                )
                self._shutdown.wait(self.config.poll_interval)

    def process_next(self, now: Optional[float] = None) -> Optional[DeliveryResult]:
        """Claim the next due task, if any, and attempt it once.

        Args:
            now: Reference time; defaults to the pool clock

        Returns:
            The result, or None if no task was due
        """
        task = self.queue.pop_ready(self.clock() if now is None else now)
        if task is None:
            return None
        return self.process_task(task, now)

    def process_task(self, task: DeliveryTask, now: Optional[float] = None) -> DeliveryResult:
        """Attempt one delivery of a claimed task and settle its outcome."""
        try:
            subscription = self.store.get(task.subscription_id)
        except NotFoundError:
            self.deliveries.labels(outcome=DeliveryOutcome.DROPPED.value).inc()
            logger.info(
                "webhook_task_dropped",
                task_id=task.task_id,
                subscription_id=task.subscription_id,
                reason="subscription_deleted",
            )
            return DeliveryResult(task, DeliveryOutcome.DROPPED)

        try:
            status_code = self._send(subscription, task)
        except TransientDeliveryError as e:
            return self._handle_transient(task, e, now)
        except PermanentDeliveryError as e:
            self.deliveries.labels(outcome=DeliveryOutcome.PERMANENT_FAILURE.value).inc()
            logger.warning(
                "webhook_delivery_rejected",
                task_id=task.task_id,
                subscription_id=task.subscription_id,
                status_code=e.status_code,
                attempt=task.attempt,
            )
            self._report_terminal(task, e)
            return DeliveryResult(task, DeliveryOutcome.PERMANENT_FAILURE, e.status_code, e)

        self.deliveries.labels(outcome=DeliveryOutcome.DELIVERED.value).inc()
        logger.info(
            "webhook_delivered",
            task_id=task.task_id,
            subscription_id=task.subscription_id,
            event_type=task.event,
            status_code=status_code,
            attempt=task.attempt,
        )
        self._notify("on_delivered", task, status_code)
        return DeliveryResult(task, DeliveryOutcome.DELIVERED, status_code)

    def _send(self, subscription: Subscription, task: DeliveryTask) -> int:
        """POST the task payload and classify the response.

        Returns:
            The 2xx status code

        Raises:
            TransientDeliveryError: Network error, timeout, 5xx or 429
            PermanentDeliveryError: Any other non-2xx status
        """
        headers = build_headers(subscription, task, self.config.user_agent)
        start_time = time.time()
        try:
            response = self.session.post(
                subscription.url,
                data=task.payload,
                headers=headers,
                timeout=self.config.request_timeout,
                allow_redirects=False,
            )
        except requests.exceptions.Timeout as e:
            raise TransientDeliveryError(f"Request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransientDeliveryError(f"Request failed: {e}") from e
        finally:
            self.delivery_latency.observe(time.time() - start_time)

        status_code = response.status_code
        if 200 <= status_code < 300:
            return status_code
        if status_code == 429:
            raise TransientDeliveryError(
                "Rate limited by receiver",
                status_code=status_code,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status_code >= 500:
            raise TransientDeliveryError(f"Server error {status_code}", status_code=status_code)
        raise PermanentDeliveryError(f"Rejected with status {status_code}", status_code=status_code)

    def _handle_transient(
        self, task: DeliveryTask, error: TransientDeliveryError, now: Optional[float]
    ) -> DeliveryResult:
        if not self.retry_policy.should_retry(task.attempt):
            exhausted = ExhaustedRetriesError(task.attempt, error)
            self.deliveries.labels(outcome=DeliveryOutcome.RETRIES_EXHAUSTED.value).inc()
            logger.warning(
                "webhook_retries_exhausted",
                task_id=task.task_id,
                subscription_id=task.subscription_id,
                attempts=task.attempt,
                error=error.message,
            )
            self._report_terminal(task, exhausted)
            return DeliveryResult(
                task, DeliveryOutcome.RETRIES_EXHAUSTED, error.status_code, exhausted
            )

        failed_attempt = task.attempt
        task.next_attempt_at = self.retry_policy.next_attempt_at(
            failed_attempt,
            now=self.clock() if now is None else now,
            previous=task.next_attempt_at,
            retry_after=error.retry_after,
        )
        task.attempt += 1

        self.deliveries.labels(outcome=DeliveryOutcome.RETRY_SCHEDULED.value).inc()
        self.retries.inc()
        logger.info(
            "webhook_retry_scheduled",
            task_id=task.task_id,
            subscription_id=task.subscription_id,
            failed_attempt=failed_attempt,
            next_attempt_at=task.next_attempt_at,
            status_code=error.status_code,
            error=error.message,
        )

        if not self.queue.push(task):
            self._record_unqueued(task)
        else:
            self._notify("on_retry_scheduled", task, error)
        return DeliveryResult(task, DeliveryOutcome.RETRY_SCHEDULED, error.status_code, error)

    def _record_unqueued(self, task: DeliveryTask) -> None:
        # After stop has reported, a late retry is abandoned on its own.
        with self._unqueued_lock:
            late = self._abandon_reported
            if not late:
                self._unqueued_retries += 1
        if late:
            self.abandoned.inc()
            logger.warning("pending_deliveries_abandoned", count=1, task_id=task.task_id)
        else:
            logger.warning("webhook_retry_not_queued", task_id=task.task_id)

    def _report_terminal(self, task: DeliveryTask, error: DeliveryError) -> None:
        self._notify(
            "on_terminal_failure",
            task.task_id,
            task.subscription_id,
            task.event,
            task.attempt,
            error,
        )

    def _notify(self, hook: str, *args) -> None:
        try:
            getattr(self.observer, hook)(*args)
        except Exception as e:
            logger.exception("delivery_observer_failed", hook=hook, error=str(e))
