"""Bounded accumulate-then-flush buffer."""

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchBuffer(Generic[T]):
    """Collects items and hands them to a callback in groups.

    push() flushes automatically once capacity is reached; call flush()
    at the end of a run to drain whatever is left. A failing callback is
    logged and the batch is dropped so one bad consumer cannot wedge the
    producer.
    """

    def __init__(self, flush_callback: Callable[[list[T]], None], capacity: int = 10):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._flush_callback = flush_callback
        self._capacity = capacity
        self._items: list[T] = []
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def push(self, item: T) -> bool:
        """Add an item.

        Returns:
            True if this push triggered a flush
        """
        with self._lock:
            self._items.append(item)
            if len(self._items) < self._capacity:
                return False
            batch = self._take()
        self._deliver(batch)
        return True

    def flush(self) -> int:
        """Deliver everything buffered.

        Returns:
            Number of items handed to the callback
        """
        with self._lock:
            batch = self._take()
        if batch:
            self._deliver(batch)
        return len(batch)

    def _take(self) -> list[T]:
        batch = self._items
        self._items = []
        return batch

    def _deliver(self, batch: list[T]) -> None:
        logger.debug("[BATCH] Flushing %d items", len(batch))
        try:
            self._flush_callback(batch)
        except Exception as e:
            logger.error("[BATCH] Flush of %d items failed: %s", len(batch), e)
