"""Worker pool that feeds items from a source to a handler."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, TypeVar

from corex.group import Context, Group
from corex.workqueue import ChannelQueue, QueueStopped

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 8
_MIN_WORKERS = 1

T = TypeVar("T")


class ControllerError(Exception):
    """The controller was used before it was fully set up."""


class _Queue(Protocol):
    def write(self, item: Any) -> None: ...

    def read(self) -> Any: ...

    def stop(self) -> None: ...


class Controller(Generic[T]):
    """Copies items from a source into a queue and runs ``workers`` threads that handle them."""

    def __init__(
        self,
        workers: int = DEFAULT_WORKERS,
        queue: Optional[_Queue] = None,
        ctx: Optional[Context] = None,
    ) -> None:
        self.workers = max(workers, _MIN_WORKERS)
        self.queue: _Queue = queue if queue is not None else ChannelQueue(0)
        self.ctx = ctx
        self._source: Optional[Iterable[T]] = None
        self._handler: Optional[Callable[[T], None]] = None

    def source(self, items: Iterable[T]) -> "Controller[T]":
        """Set the iterable the items come from."""
        self._source = items
        return self

    def handle(self, handler: Callable[[T], None]) -> "Controller[T]":
        """Set the function called for every item."""
        if self._source is None:
            raise ControllerError("controller source is not set")
        self._handler = handler
        return self

    def run(self) -> None:
        """Handle every item of the source, returning when all are done or the context ends."""
        if self._handler is None or self._source is None:
            raise ControllerError("controller handler is not set")
        items = self._source

        def feed() -> None:
            try:
                for item in items:
                    self.queue.write(item)
            except Exception:
                logger.exception("controller source failed")
            finally:
                self.queue.stop()

        threading.Thread(target=feed, daemon=True).start()

        group = Group()
        try:
            group.go_n(self.workers, self._run_worker)
            group.wait()
        finally:
            self.queue.stop()

    def _run_worker(self) -> None:
        handler = self._handler
        assert handler is not None
        while self.ctx is None or not self.ctx.done():
            try:
                item = self.queue.read()
            except QueueStopped:
                return
            try:
                handler(item)
            except Exception:
                logger.exception("controller handler failed")