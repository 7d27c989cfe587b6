"""Unit tests for the delivery queue."""

import threading
import time

from webhook_dispatcher.queues.delivery_queue import DeliveryQueue, DeliveryTask


def make_task(next_attempt_at: float, created_at: float = 0.0, event: str = "e") -> DeliveryTask:
    return DeliveryTask(
        subscription_id="sub",
        event=event,
        payload=b"{}",
        next_attempt_at=next_attempt_at,
        created_at=created_at,
    )


def test_pop_ready_orders_by_next_attempt_at(clock):
    queue = DeliveryQueue(clock=clock)
    late = make_task(clock.now + 5)
    early = make_task(clock.now - 5)
    middle = make_task(clock.now)
    for task in (late, early, middle):
        assert queue.push(task)

    assert queue.pop_ready() is early
    assert queue.pop_ready() is middle
    assert queue.pop_ready() is None  # late is not due yet
    assert len(queue) == 1

    clock.advance(5)
    assert queue.pop_ready() is late


def test_ties_broken_by_created_at_then_push_order(clock):
    queue = DeliveryQueue(clock=clock)
    due = clock.now
    second_created = make_task(due, created_at=2.0)
    first_created = make_task(due, created_at=1.0)
    first_pushed = make_task(due, created_at=3.0, event="first")
    second_pushed = make_task(due, created_at=3.0, event="second")

    for task in (second_created, first_created, first_pushed, second_pushed):
        queue.push(task)

    popped = [queue.pop_ready() for _ in range(4)]
    assert popped == [first_created, second_created, first_pushed, second_pushed]


def test_pop_ready_on_empty_queue_returns_none(clock):
    assert DeliveryQueue(clock=clock).pop_ready() is None


def test_max_size_applies_backpressure(clock):
    queue = DeliveryQueue(max_size=2, clock=clock)

    assert queue.push(make_task(clock.now))
    assert queue.push(make_task(clock.now))
    assert queue.push(make_task(clock.now)) is False
    assert len(queue) == 2


def test_closed_queue_rejects_pushes_and_drains(clock):
    queue = DeliveryQueue(clock=clock)
    queue.push(make_task(clock.now + 10))
    queue.push(make_task(clock.now))

    queue.close()

    assert queue.closed
    assert queue.push(make_task(clock.now)) is False
    drained = queue.drain()
    assert len(drained) == 2
    assert drained[0].next_attempt_at <= drained[1].next_attempt_at
    assert len(queue) == 0


def test_get_times_out_when_nothing_is_due():
    queue = DeliveryQueue()
    queue.push(make_task(time.time() + 60))

    start = time.monotonic()
    assert queue.get(timeout=0.1) is None
    assert time.monotonic() - start >= 0.09


def test_get_wakes_on_push():
    queue = DeliveryQueue()
    result = []

    consumer = threading.Thread(target=lambda: result.append(queue.get(timeout=5)))
    consumer.start()
    time.sleep(0.05)
    task = make_task(time.time())
    queue.push(task)
    consumer.join(timeout=5)

    assert result == [task]


def test_get_waits_until_task_is_due():
    queue = DeliveryQueue()
    task = make_task(time.time() + 0.1)
    queue.push(task)

    assert queue.get(timeout=2) is task


def test_close_wakes_waiting_consumers():
    queue = DeliveryQueue()
    result = []

    consumer = threading.Thread(target=lambda: result.append(queue.get()))
    consumer.start()
    time.sleep(0.05)
    queue.close()
    consumer.join(timeout=5)

    assert not consumer.is_alive()
    assert result == [None]


def test_concurrent_producers_and_consumers_lose_nothing():
    """Every pushed task is popped exactly once."""
    queue = DeliveryQueue()
    per_producer = 200
    producers = 4
    popped = []
    popped_lock = threading.Lock()

    def produce():
        for _ in range(per_producer):
            queue.push(make_task(time.time()))

    def consume():
        while True:
            task = queue.get(timeout=0.5)
            if task is None:
                return
            with popped_lock:
                popped.append(task.task_id)

    threads = [threading.Thread(target=produce) for _ in range(producers)]
    threads += [threading.Thread(target=consume) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(popped) == producers * per_producer
    assert len(set(popped)) == len(popped)


def test_zero_max_size_rejects_every_push(clock):
    queue = DeliveryQueue(max_size=0, clock=clock)

    assert queue.push(make_task(clock.now)) is False
    assert len(queue) == 0
