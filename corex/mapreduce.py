"""Concurrent map/filter/reduce pipeline over items produced by a function."""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Iterable, Optional, Protocol

from corex.group import Context, ErrGroup
from corex.workqueue import ChannelQueue, QueueStopped

DEFAULT_WORKERS = 8
_MIN_WORKERS = 1
_POLL_INTERVAL = 0.01


class MapReduceError(Exception):
    """The pipeline was assembled in the wrong order."""


class _Writer(Protocol):
    def write(self, item: Any) -> None: ...


class _MapReducer(Protocol):
    def source(self, writer: _Writer) -> None: ...

    def map(self, item: Any) -> Any: ...

    def reduce(self, items: Iterable[Any]) -> Any: ...


Producer = Callable[[_Writer], None]
Mapper = Callable[[Any], Any]
Filter = Callable[[Any], bool]
Reducer = Callable[[Iterable[Any]], Any]


class MapReduce:
    """Pipeline: a producer writes items, workers filter and map them, a reducer folds the results.

    Build it with :meth:`source`, :meth:`map`, optionally :meth:`filter`, and
    :meth:`reduce`, then call :meth:`run`. ``None`` items are skipped.
    """

    def __init__(self, workers: int = DEFAULT_WORKERS, ctx: Optional[Context] = None) -> None:
        self.workers = max(workers, _MIN_WORKERS)
        self.ctx = ctx
        self._producer: Optional[Producer] = None
        self._mapper: Optional[Mapper] = None
        self._filters: Optional[list[Filter]] = None
        self._reducer: Optional[Reducer] = None

    def source(self, producer: Producer) -> "MapReduce":
        """Set the function that writes the input items to the writer it is given."""
        if self._producer is not None:
            raise MapReduceError("cannot call source twice")
        self._producer = producer
        return self

    def map(self, mapper: Mapper) -> "MapReduce":
        """Set the function applied to every item."""
        if self._producer is None:
            raise MapReduceError("cannot call map before source")
        if self._mapper is not None:
            raise MapReduceError("cannot call map twice")
        self._mapper = mapper
        return self

    def filter(self, *filters: Filter) -> "MapReduce":
        """Keep only the items for which every filter returns true."""
        if self._filters is not None:
            raise MapReduceError("cannot call filter twice")
        self._filters = list(filters)
        return self

    def reduce(self, reducer: Reducer) -> "MapReduce":
        """Set the function that folds the iterable of mapped items into the result."""
        if self._mapper is None:
            raise MapReduceError("cannot call reduce before map")
        if self._reducer is not None:
            raise MapReduceError("cannot call reduce twice")
        self._reducer = reducer
        return self

    def run(self) -> Any:
        """Run the pipeline and return what the reducer returned.

        The first exception raised by the producer, a filter, the mapper or the
        reducer is re-raised; the context's error is raised once it is done.
        """
        if self._reducer is None or self._producer is None or self._mapper is None:
            raise MapReduceError("cannot call run before reduce")

        producer, reducer = self._producer, self._reducer
        inner = Context(self.ctx)
        source = ChannelQueue(0)
        output = ChannelQueue(self.workers)
        events: queue.Queue[tuple[bool, Any]] = queue.Queue()

        def produce() -> None:
            try:
                producer(source)
            except Exception as exc:
                events.put((False, exc))
            finally:
                source.stop()

        def work() -> None:
            try:
                self._run_workers(inner, source, output)
            except Exception as exc:
                events.put((False, exc))
            finally:
                output.stop()

        def fold() -> None:
            try:
                value = reducer(output)
            except Exception as exc:
                events.put((False, exc))
                return
            events.put((True, value))

        for target in (produce, work, fold):
            threading.Thread(target=target, daemon=True).start()

        try:
            while True:
                if self.ctx is not None and self.ctx.done():
                    raise self.ctx.error()  # type: ignore[misc]
                try:
                    ok, value = events.get(
                        timeout=_POLL_INTERVAL if self.ctx is not None else None
                    )
                except queue.Empty:
                    continue
                if not ok:
                    raise value
                return value
        finally:
            inner.cancel()
            source.stop()
            output.stop()

    def _run_workers(self, ctx: Context, source: ChannelQueue, output: ChannelQueue) -> None:
        mapper = self._mapper
        assert mapper is not None
        filters = self._filters or []

        def worker(wctx: Context) -> None:
            while not wctx.done():
                try:
                    item = source.read()
                except QueueStopped:
                    return
                if item is None:
                    continue
                if not all(keep(item) for keep in filters):
                    continue
                output.write(mapper(item))

        group = ErrGroup(ctx)
        for _ in range(self.workers):
            group.go(worker)
        group.wait()


def from_map_reducer(
    mr: _MapReducer,
    workers: int = DEFAULT_WORKERS,
    ctx: Optional[Context] = None,
) -> MapReduce:
    """Build a pipeline from an object with ``source``, ``map`` and ``reduce`` methods."""
    return MapReduce(workers, ctx).source(mr.source).map(mr.map).reduce(mr.reduce)