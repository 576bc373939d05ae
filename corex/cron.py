"""Job scheduler that runs tasks at the times their schedules give."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from corex.containers import Heap, Set

RUN_ALWAYS = -1


class Job(Protocol):
    """A named unit of work."""

    name: str

    def run(self) -> None: ...


class SimpleJob:
    """Job that calls a function."""

    def __init__(self, name: str, func: Callable[[], None]) -> None:
        self.name = name
        self._func = func

    def run(self) -> None:
        self._func()

    def __repr__(self) -> str:
        return f"SimpleJob({self.name!r})"


@dataclass
class Schedule:
    """Run times starting at ``start``, repeated every ``interval`` seconds.

    ``times`` limits the number of runs; RUN_ALWAYS means no limit. Times are
    seconds since the epoch; None means no further run.
    """

    start: Optional[float] = None
    times: int = RUN_ALWAYS
    interval: float = 0.0

    def _next_time(self, now: float) -> Optional[float]:
        if self.start is None:
            return None
        if self.start > now:
            return self.start
        if self.interval == 0:
            return None
        return now + self.interval

    def next(self, now: float) -> Optional[float]:
        """Return the run time following ``now`` and count it against ``times``."""
        if self.times == 0:
            return None
        upcoming = self._next_time(now)
        if upcoming is not None and self.times > 0:
            self.times -= 1
        return upcoming


def every(interval: float) -> Schedule:
    """Run every ``interval`` seconds from now on."""
    return Schedule(start=time.time(), times=RUN_ALWAYS, interval=interval)


def every_at(start: float, interval: float) -> Schedule:
    """Run at ``start`` and every ``interval`` seconds after it."""
    return Schedule(start=start, times=RUN_ALWAYS, interval=interval)


def once(at_time: float) -> Schedule:
    """Run a single time at ``at_time``."""
    return Schedule(start=at_time, times=1)


def at(start: float, interval: float, times: int) -> Schedule:
    """Run ``times`` times, from ``start`` on, every ``interval`` seconds."""
    return Schedule(start=start, times=times, interval=interval)


@dataclass(eq=False)
class Task:
    """A job together with the schedule that says when to run it."""

    job: Job
    schedule: Schedule
    next_time: Optional[float] = field(default=None, init=False)

    @property
    def name(self) -> str:
        return self.job.name


def _key(task: Task) -> float:
    return -math.inf if task.next_time is None else task.next_time


def _earlier(x: Task, y: Task) -> bool:
    return _key(x) < _key(y)


class Cron:
    """Runs tasks in the order of their next run time, each run in its own thread."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._tasks: Heap[Task] = Heap([], _earlier)
        self._names: Set[str] = Set()
        self._cond = threading.Condition()
        self._started = False
        self._changes = 0

    def _wake(self) -> None:
        self._changes += 1
        self._cond.notify_all()

    def add(self, task: Task) -> None:
        """Schedule a task."""
        with self._cond:
            if task.next_time is None:
                task.next_time = task.schedule.next(time.time())
            self._tasks.push(task)
            self._names.insert(task.name)
            self._wake()

    def remove(self, name: str) -> None:
        """Stop running the task called ``name``."""
        with self._cond:
            self._names.delete(name)
            self._wake()

    def __len__(self) -> int:
        with self._cond:
            return len(self._tasks)

    def run(self) -> None:
        """Run due tasks until :meth:`stop` is called."""
        with self._cond:
            self._started = True
        while self._run_once():
            pass

    def stop(self) -> None:
        """Make :meth:`run` return."""
        with self._cond:
            self._started = False
            self._wake()

    def _run_once(self) -> bool:
        with self._cond:
            if not self._started:
                return False

            generation = self._changes
            delay: Optional[float] = None
            if self._tasks:
                task = self._tasks.peek()
                if task.name not in self._names:
                    self._tasks.pop()
                    return True
                if task.next_time is None:
                    delay = 0.0
                else:
                    delay = max(0.0, task.next_time - time.time())

            interrupted = self._cond.wait_for(
                lambda: self._changes != generation or not self._started, delay
            )
            if interrupted or not self._tasks:
                return True

            task = self._tasks.pop()
            task.next_time = task.schedule.next(time.time())
            if task.next_time is None:
                self._names.delete(task.name)
            else:
                self._tasks.push(task)

        threading.Thread(target=self._execute, args=(task,), daemon=True).start()
        return True

    def _execute(self, task: Task) -> None:
        start = time.monotonic()
        try:
            task.job.run()
        except Exception as exc:
            self._logger.info("Run job [%s] failed: %s", task.name, exc)
            return
        self._logger.info(
            "Run job [%s] successfully, duration %.6fs", task.name, time.monotonic() - start
        )