from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_STOP = object()


@dataclass(slots=True)
class DispatchSummary(Generic[R]):
    dispatched: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: bool = False
    results: list[R] = field(default_factory=list)


class WorkDispatcher(Generic[T, R]):
    """Fan a lazy sequence of items out to a fixed pool of worker threads.

    The calling thread is the producer: it blocks while the bounded queue is full.
    ``dispatch`` returns only after every enqueued item has been handled.
    """

    def __init__(
        self,
        handler: Callable[[T], R],
        *,
        worker_count: int = 10,
        queue_capacity: int | None = None,
        cancel_event: threading.Event | None = None,
        keep_results: bool = True,
        name: str = "dupsweep-worker",
    ):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        capacity = worker_count * 4 if queue_capacity is None else queue_capacity
        if capacity < 1:
            raise ValueError("queue_capacity must be at least 1")

        self._handler = handler
        self._worker_count = worker_count
        self._queue: queue.Queue[object] = queue.Queue(maxsize=capacity)
        self._cancel_event = cancel_event or threading.Event()
        self._keep_results = keep_results
        self._name = name
        self._summary_lock = threading.Lock()
        self._summary: DispatchSummary[R] = DispatchSummary()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    @property
    def summary(self) -> DispatchSummary[R]:
        return self._summary

    def dispatch(self, items: Iterable[T]) -> DispatchSummary[R]:
        self._summary = DispatchSummary()
        workers = [
            threading.Thread(target=self._work, name=f"{self._name}-{idx}", daemon=True)
            for idx in range(self._worker_count)
        ]
        for worker in workers:
            worker.start()

        try:
            for item in items:
                if self._cancel_event.is_set():
                    break
                self._queue.put(item)
                with self._summary_lock:
                    self._summary.dispatched += 1
        except BaseException:
            # A failed producer cancels whatever is still queued.
            self._cancel_event.set()
            self._summary.cancelled = True
            raise
        finally:
            for _ in workers:
                self._queue.put(_STOP)
            for worker in workers:
                worker.join()

        self._summary.cancelled = self._cancel_event.is_set()
        return self._summary

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                if self._cancel_event.is_set():
                    continue
                self._handle(item)  # type: ignore[arg-type]
            finally:
                self._queue.task_done()

    def _handle(self, item: T) -> None:
        try:
            result = self._handler(item)
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error while processing %s", item)
            with self._summary_lock:
                self._summary.failed += 1
            return

        with self._summary_lock:
            self._summary.completed += 1
            if self._keep_results:
                self._summary.results.append(result)
