"""Time-ordered delivery queue shared by the router and the worker pool."""

import heapq
import itertools
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import structlog

from webhook_dispatcher.metrics import QUEUE_OVERFLOWS, QUEUE_SIZE, register

logger = structlog.get_logger(__name__)


@dataclass
class DeliveryTask:
    """A pending delivery of one event to one subscription.

    Attributes:
        task_id: Unique identifier for the task
        subscription_id: Subscription the task was created for
        event: Event name
        payload: Serialized JSON body, signed and sent as-is
        attempt: Number of the next attempt, starting at 1
        next_attempt_at: Epoch seconds before which the task is not ready
        created_at: Epoch seconds when the router created the task
    """

    subscription_id: str
    event: str
    payload: bytes
    next_attempt_at: float
    created_at: float
    attempt: int = 1
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex)


class DeliveryQueue:
    """Thread-safe min-heap of delivery tasks keyed by ``next_attempt_at``.

    Ties are broken by ``created_at`` and then by push order. Producers
    notify waiting consumers, so :meth:`get` sleeps only until the earliest
    task is due or something new arrives.
    """

    def __init__(self, max_size: Optional[int] = None, clock: Callable[[], float] = time.time):
        """Initialize the queue.

        Args:
            max_size: Maximum number of pending tasks; unbounded when None
            clock: Source of the current time in epoch seconds
        """
        self.max_size = max_size
        self.clock = clock
        self._heap: List[Tuple[float, float, int, DeliveryTask]] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._closed = False

        self.queue_size = register(QUEUE_SIZE)
        self.queue_overflows = register(QUEUE_OVERFLOWS)

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, task: DeliveryTask) -> bool:
        """Add a task to the queue.

        Args:
            task: DeliveryTask to add

        Returns:
            False if the queue is full or closed, True otherwise
        """
        with self._condition:
            if self._closed or (
                self.max_size is not None and len(self._heap) >= self.max_size
            ):
                self.queue_overflows.inc()
                logger.warning(
                    "delivery_queue_rejected",
                    task_id=task.task_id,
                    closed=self._closed,
                    size=len(self._heap),
                )
                return False

            heapq.heappush(
                self._heap,
                (task.next_attempt_at, task.created_at, next(self._sequence), task),
            )
            self.queue_size.set(len(self._heap))
            self._condition.notify()
            return True

    def pop_ready(self, now: Optional[float] = None) -> Optional[DeliveryTask]:
        """Remove and return the earliest task if it is due.

        Args:
            now: Reference time; defaults to the queue clock

        Returns:
            The task, or None if the queue is empty or nothing is due yet
        """
        with self._condition:
            return self._pop_ready_locked(self.clock() if now is None else now)

    def _pop_ready_locked(self, now: float) -> Optional[DeliveryTask]:
        if not self._heap or self._heap[0][0] > now:
            return None
        task = heapq.heappop(self._heap)[-1]
        self.queue_size.set(len(self._heap))
        return task

    def get(self, timeout: Optional[float] = None) -> Optional[DeliveryTask]:
        """Wait for a task to become due.

        Args:
            timeout: Longest time to wait in seconds; waits indefinitely when None

        Returns:
            A due task, or None on timeout or once the queue is closed
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while not self._closed:
                now = self.clock()
                task = self._pop_ready_locked(now)
                if task is not None:
                    return task

                wait = None if not self._heap else max(self._heap[0][0] - now, 0.0)
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait = remaining if wait is None else min(wait, remaining)
                self._condition.wait(wait)
            return None

    def peek(self) -> Optional[DeliveryTask]:
        """Return the earliest task without removing it."""
        with self._condition:
            return self._heap[0][-1] if self._heap else None

    def close(self) -> None:
        """Reject further pushes and wake every waiting consumer."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def drain(self) -> List[DeliveryTask]:
        """Remove and return all pending tasks in queue order."""
        with self._condition:
            tasks = [entry[-1] for entry in sorted(self._heap)]
            self._heap.clear()
            self.queue_size.set(0)
            return tasks

    def __len__(self) -> int:
        with self._condition:
            return len(self._heap)
