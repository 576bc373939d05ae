"""Exponential backoff parameters, backoff loops and backoff managers."""

from __future__ import annotations

import dataclasses
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

from corex.clock import RealClock, Timer
from corex.group import Context

_MAX_INT32 = 2**31 - 1


class WaitTimeout(TimeoutError):
    """The condition was never satisfied within the allowed attempts."""

    def __init__(self, message: str = "timed out waiting for the condition") -> None:
        super().__init__(message)


def jitter(duration: float, max_factor: float) -> float:
    """Return a duration between ``duration`` and ``duration * (1 + max_factor)``.

    A non-positive ``max_factor`` is replaced by 1.0.
    """
    if max_factor <= 0.0:
        max_factor = 1.0
    return duration + random.random() * max_factor * duration


@dataclass
class Backoff:
    """Backoff parameters; durations are in seconds.

    ``factor`` multiplies the duration after each step while ``steps`` remain,
    ``cap`` bounds the grown duration and ``jitter`` adds a random share of it.
    """

    duration: float = 0.0
    factor: float = 0.0
    jitter: float = 0.0
    steps: int = 0
    cap: float = 0.0

    def step(self) -> float:
        """Return the next sleep and advance ``duration`` and ``steps``."""
        if self.steps < 1:
            if self.jitter > 0:
                return jitter(self.duration, self.jitter)
            return self.duration
        self.steps -= 1

        current = self.duration
        if self.factor != 0:
            self.duration = self.duration * self.factor
            if self.cap > 0 and self.duration > self.cap:
                self.duration = self.cap
                self.steps = 0

        if self.jitter > 0:
            current = jitter(current, self.jitter)
        return current


def exponential_backoff(
    backoff: Backoff,
    condition: Callable[[], bool],
    ctx: Optional[Context] = None,
) -> None:
    """Check ``condition`` repeatedly, sleeping ``backoff.step()`` in between.

    Returns once the condition is true; an exception from the condition
    propagates. Raises WaitTimeout after ``backoff.steps`` failed checks, or the
    context's error once ``ctx`` is done. The given ``backoff`` is not modified.
    """
    backoff = dataclasses.replace(backoff)
    while backoff.steps > 0:
        if ctx is not None and ctx.done():
            raise ctx.error()  # type: ignore[misc]

        if condition():
            return

        if backoff.steps == 1:
            break

        delay = backoff.step()
        if ctx is None:
            time.sleep(max(0.0, delay))
        elif ctx.wait(max(0.0, delay)):
            raise ctx.error()  # type: ignore[misc]

    raise WaitTimeout()


class ExponentialBackoffManager:
    """Hands out timers with jittered, exponentially growing delays.

    The delay goes back to ``initial`` when no backoff was requested for longer
    than ``reset_duration``.
    """

    def __init__(
        self,
        initial: float,
        maximum: float,
        reset_duration: float,
        factor: float,
        jitter: float,
        clock: Optional[RealClock] = None,
    ) -> None:
        self._clock = clock if clock is not None else RealClock()
        self._backoff = Backoff(
            duration=initial,
            factor=factor,
            jitter=jitter,
            steps=_MAX_INT32,
            cap=maximum,
        )
        self._initial = initial
        self._reset_duration = reset_duration
        self._last_start = self._clock.now()
        self._timer: Optional[Timer] = None

    def _next_delay(self) -> float:
        if self._clock.now() - self._last_start > self._reset_duration:
            self._backoff.steps = _MAX_INT32
            self._backoff.duration = self._initial
        self._last_start = self._clock.now()
        return self._backoff.step()

    def backoff(self) -> Timer:
        """Return the timer, armed with the next delay."""
        delay = self._next_delay()
        if self._timer is None:
            self._timer = self._clock.new_timer(delay)
        else:
            self._timer.reset(delay)
        return self._timer


class JitteredBackoffManager:
    """Hands out timers with a fixed delay plus optional jitter."""

    def __init__(self, duration: float, jitter: float, clock: Optional[RealClock] = None) -> None:
        self._clock = clock if clock is not None else RealClock()
        self._duration = duration
        self._jitter = jitter
        self._timer: Optional[Timer] = None

    def _next_delay(self) -> float:
        if self._jitter > 0.0:
            return jitter(self._duration, self._jitter)
        return self._duration

    def backoff(self) -> Timer:
        """Return the timer, armed with the next delay."""
        delay = self._next_delay()
        if self._timer is None:
            self._timer = self._clock.new_timer(delay)
        else:
            self._timer.reset(delay)
        return self._timer