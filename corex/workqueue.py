"""Thread-safe work queues: an unbounded condition-based queue and a channel-like queue."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Iterator


class QueueStopped(Exception):
    """Raised by ``read`` when the queue is stopped and holds no more items."""


class WorkQueue:
    """Unbounded FIFO queue; readers block until an item arrives or it is stopped."""

    def __init__(self) -> None:
        self._items: deque[Any] = deque()
        self._cond = threading.Condition()
        self._shutting_down = False

    def write(self, item: Any) -> None:
        """Append an item; ignored once the queue is stopped."""
        with self._cond:
            if self._shutting_down:
                return
            self._items.append(item)
            self._cond.notify()

    def read(self) -> Any:
        """Return the next item, blocking; raise QueueStopped when drained and stopped."""
        with self._cond:
            self._cond.wait_for(lambda: self._items or self._shutting_down)
            if not self._items:
                raise QueueStopped("queue stopped")
            return self._items.popleft()

    def stop(self) -> None:
        """Stop accepting items and wake all waiting readers."""
        with self._cond:
            if self._shutting_down:
                return
            self._shutting_down = True
            self._cond.notify_all()

    def stopped(self) -> bool:
        with self._cond:
            return self._shutting_down

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.read()
            except QueueStopped:
                return


class ChannelQueue:
    """Bounded hand-off queue.

    With ``maxsize`` 0 a write blocks until a reader has taken the item; otherwise
    up to ``maxsize`` items are buffered. Items already written stay readable after
    :meth:`stop`.
    """

    def __init__(self, maxsize: int = 0) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must not be negative")
        self._maxsize = maxsize
        self._capacity = maxsize or 1
        self._items: deque[Any] = deque()
        self._cond = threading.Condition()
        self._stopped = False
        self._written = 0
        self._taken = 0

    def write(self, item: Any) -> None:
        """Send an item, blocking while the queue is full; ignored once stopped."""
        with self._cond:
            if self._stopped:
                return
            self._cond.wait_for(lambda: self._stopped or len(self._items) < self._capacity)
            if self._stopped:
                return
            self._items.append(item)
            self._written += 1
            ticket = self._written
            self._cond.notify_all()
            if self._maxsize == 0:
                self._cond.wait_for(lambda: self._taken >= ticket or self._stopped)

    def read(self) -> Any:
        """Receive the next item, blocking; raise QueueStopped when drained and stopped."""
        with self._cond:
            self._cond.wait_for(lambda: self._items or self._stopped)
            if not self._items:
                raise QueueStopped("queue stopped")
            item = self._items.popleft()
            self._taken += 1
            self._cond.notify_all()
            return item

    def stop(self) -> None:
        """Close the queue; later writes are dropped."""
        with self._cond:
            if self._stopped:
                return
            self._stopped = True
            self._cond.notify_all()

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.read()
            except QueueStopped:
                return