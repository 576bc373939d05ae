"""Hashed timing wheel that runs scheduled tasks on a fixed tick."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from corex.clock import Ticker
from corex.containers import Set
from corex.cron import Task


@dataclass(eq=False)
class _WheelTask:
    task: Task
    next_time: Optional[float] = None
    initialized: bool = False
    slot: int = 0
    circle: int = 0

    @property
    def name(self) -> str:
        return self.task.name


def _execute(logger: logging.Logger, task: Task) -> None:
    start = time.monotonic()
    try:
        task.job.run()
    except Exception as exc:
        logger.info("Run job [%s] failed: %s", task.name, exc)
        return
    logger.info("Run job [%s] successfully, duration %.6fs", task.name, time.monotonic() - start)


class TimeWheel:
    """Runs tasks from ``slots`` buckets, advancing one bucket every ``interval`` seconds.

    A task due further away than one turn of the wheel waits out the extra
    turns in its bucket. Each run happens in its own thread.
    """

    def __init__(self, interval: float, slots: int, logger: Optional[logging.Logger] = None) -> None:
        if interval <= 0:
            raise ValueError("interval must be greater than zero")
        if slots < 1:
            raise ValueError("slots must be at least one")
        self._interval = interval
        self._slots = slots
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._wheel: list[list[_WheelTask]] = [[] for _ in range(slots)]
        self._names: Set[str] = Set()
        self._lock = threading.RLock()
        self._current = 0
        self._ticker: Optional[Ticker] = None
        self._stopped = False

    def run(self) -> None:
        """Advance the wheel on every tick until :meth:`stop` is called."""
        with self._lock:
            if self._stopped:
                return
            ticker = Ticker(self._interval)
            self._ticker = ticker
        while ticker.wait():
            now = time.time()
            with self._lock:
                self.run_slot(now, self._current)
                self._current = (self._current + 1) % self._slots

    def run_slot(self, now: float, slot: int) -> None:
        """Run the due tasks of bucket ``slot`` as of time ``now`` and reschedule them."""
        with self._lock:
            pending = self._wheel[slot]
            self._wheel[slot] = []
            for entry in pending:
                if entry.circle > 0:
                    entry.circle -= 1
                    self._wheel[slot].append(entry)
                    continue

                threading.Thread(
                    target=_execute, args=(self._logger, entry.task), daemon=True
                ).start()

                entry.next_time = entry.task.schedule.next(now)
                if entry.next_time is not None:
                    self._add(now, entry)
                else:
                    self.remove(entry.name)

    def stop(self) -> None:
        """Stop the wheel; :meth:`run` returns."""
        with self._lock:
            self._stopped = True
            if self._ticker is not None:
                self._ticker.stop()

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)

    def add(self, task: Task) -> None:
        """Schedule a task."""
        self._add(time.time(), _WheelTask(task))

    def _add(self, now: float, entry: _WheelTask) -> None:
        with self._lock:
            if not entry.initialized:
                entry.next_time = entry.task.schedule.next(now)
                entry.initialized = True

            duration = -1.0 if entry.next_time is None else entry.next_time - now
            if duration <= 0:
                entry.slot = (self._current + 1) % self._slots
                entry.circle = 0
            else:
                ticks = int(duration // self._interval)
                entry.slot = (self._current + ticks) % self._slots
                entry.circle = ticks // self._slots

            self._wheel[entry.slot].append(entry)
            self._names.insert(entry.name)

    def remove(self, name: str) -> None:
        """Forget the task called ``name``."""
        with self._lock:
            self._names.delete(name)