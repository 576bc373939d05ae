"""Traces of timed steps, logged when they run longer than a threshold."""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence, Union


@dataclass(frozen=True)
class Field:
    """Key/value detail attached to a trace or step."""

    key: str
    value: Any

    def __str__(self) -> str:
        return f"{self.key}:{self.value}"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _fields(fields: Sequence[Field]) -> str:
    return ",".join(str(field) for field in fields)


def _clock(ts: float) -> str:
    moment = datetime.fromtimestamp(ts)
    return f"{moment:%H:%M}:00.{moment.microsecond // 1000:03d}"


def _date(ts: float) -> str:
    moment = datetime.fromtimestamp(ts)
    return f"{moment:%d-%b-%Y %H:%M:%S}.{moment.microsecond // 1000:03d}"


def _duration(seconds: float) -> str:
    size = abs(seconds)
    if size == 0:
        return "0s"
    if size < 1e-6:
        return f"{round(seconds * 1e9)}ns"
    if size < 1e-3:
        return f"{seconds * 1e6:g}µs"
    if size < 1:
        return f"{seconds * 1e3:g}ms"
    return f"{seconds:g}s"


def _summary(msg: str, total: float, start: float, fields: Sequence[Field]) -> str:
    text = f"{_quote(msg)} "
    if fields:
        text += _fields(fields) + " "
    return text + f"{int(total * 1000)}ms ({_clock(start)})"


@dataclass
class _Step:
    step_time: float
    msg: str
    fields: tuple[Field, ...]

    def _item_time(self) -> float:
        return self.step_time

    def _write_item(self, formatter: str, start: float, step_threshold: Optional[float]) -> str:
        elapsed = self.step_time - start
        if step_threshold is None or step_threshold == 0 or elapsed >= step_threshold:
            return f"{formatter}---" + _summary(self.msg, elapsed, self.step_time, self.fields)
        return ""


class Trace:
    """Records named steps and nested traces and logs them with their timings.

    Times are seconds. A nested trace is logged together with the trace it is
    nested in.
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None, *fields: Field) -> None:
        self.name = name
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.fields = tuple(fields)
        self.threshold: Optional[float] = None
        self.start_time = time.time()
        self.end_time: Optional[float] = None
        self.items: list[Union[_Step, Trace]] = []
        self._parent: Optional[Trace] = None

    def step(self, msg: str, *fields: Field) -> None:
        """Mark the end of a step called ``msg``."""
        self.items.append(_Step(time.time(), msg, tuple(fields)))

    def nest(self, msg: str, *fields: Field) -> "Trace":
        """Start a trace nested in this one and return it."""
        child = Trace(msg, self.logger, *fields)
        child._parent = self
        self.items.append(child)
        return child

    def log(self) -> None:
        """Finish the trace and log it, unless it is nested."""
        self.end_time = time.time()
        if self._parent is None:
            self._log_trace()

    def log_if_long(self, threshold: float) -> None:
        """Finish the trace and log it only if it took at least ``threshold`` seconds."""
        self.threshold = threshold
        self.log()

    def total_time(self) -> float:
        """Seconds since the trace was created."""
        return time.time() - self.start_time

    def _item_time(self) -> float:
        return self.end_time if self.end_time is not None else self.start_time

    def _write_item(self, formatter: str, start: float, step_threshold: Optional[float]) -> str:
        if self._within_threshold() or self.logger.isEnabledFor(logging.DEBUG):
            own = self._step_threshold()
            if own is not None:
                step_threshold = own
            return (
                f"{formatter}["
                + _summary(self.name, self.total_time(), self.start_time, self.fields)
                + self._write_steps(formatter + " ", step_threshold)
                + "]"
            )
        return "".join(
            item._write_item(formatter, start, step_threshold)
            for item in self.items
            if isinstance(item, Trace)
        )

    def _write_steps(self, formatter: str, step_threshold: Optional[float]) -> str:
        parts = []
        last = self.start_time
        for item in self.items:
            parts.append(item._write_item(formatter, last, step_threshold))
            last = item._item_time()
        return "".join(parts)

    def _log_trace(self) -> None:
        if self._within_threshold():
            assert self.end_time is not None
            number = random.randint(0, 2**31 - 1)
            total = self.end_time - self.start_time
            text = f"Trace[{number}]: {_quote(self.name)} "
            if self.fields:
                text += _fields(self.fields) + " "
            text += f"({_date(self.start_time)}) (total time: {int(total * 1000)}ms):"
            text += self._write_steps(f"\nTrace[{number}]: ", self._step_threshold())
            text += f"\nTrace[{number}]: [{_duration(total)}] [{_duration(total)}] END\n"
            self.logger.info("%s", text)
            return

        for item in self.items:
            if isinstance(item, Trace):
                item._log_trace()

    def _within_threshold(self) -> bool:
        if self.end_time is None:
            return False
        return (
            self.threshold is None
            or self.threshold == 0
            or self.end_time - self.start_time >= self.threshold
        )

    def _step_threshold(self) -> Optional[float]:
        if self.threshold is None:
            return None
        count = len(self.items) + 1
        remaining = self.threshold
        for item in self.items:
            if isinstance(item, Trace) and item.threshold is not None:
                remaining -= item.threshold
                count -= 1

        limit = self.threshold / 4
        if remaining < limit:
            remaining = limit
            count = len(self.items) + 1

        return remaining / count