"""Periodic runners and condition polling driven by timers and contexts."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Optional, Protocol

from corex.backoff import JitteredBackoffManager, WaitTimeout
from corex.clock import RealClock, Timer
from corex.group import Context

logger = logging.getLogger(__name__)

_SLICE = 0.005

Condition = Callable[[], bool]
WaitFunc = Callable[[Optional[Context]], Iterator[None]]


class _BackoffManager(Protocol):
    def backoff(self) -> Timer: ...


def _run_protected(func: Callable[[], None]) -> None:
    try:
        func()
    except Exception:
        logger.exception("Observed a panic")


def _wait_timer(timer: Timer, ctx: Optional[Context]) -> bool:
    """Wait for the timer; False if the context finished first."""
    if ctx is None:
        timer.wait()
        return True
    while not ctx.done():
        if timer.wait(_SLICE):
            return True
    return False


def backoff_until(
    func: Callable[[], None],
    manager: _BackoffManager,
    sliding: bool,
    ctx: Optional[Context] = None,
) -> None:
    """Run ``func`` repeatedly, sleeping as ``manager`` dictates, until ``ctx`` is done.

    With ``sliding`` the delay starts after ``func`` returns; otherwise it
    includes the time ``func`` takes. Exceptions from ``func`` are logged.
    """
    while True:
        if ctx is not None and ctx.done():
            return

        timer: Optional[Timer] = None
        if not sliding:
            timer = manager.backoff()

        _run_protected(func)

        if sliding:
            timer = manager.backoff()

        assert timer is not None
        if not _wait_timer(timer, ctx):
            timer.stop()
            return


def jitter_until(
    func: Callable[[], None],
    period: float,
    jitter_factor: float,
    sliding: bool,
    ctx: Optional[Context] = None,
) -> None:
    """Run ``func`` every ``period`` seconds, jittered when ``jitter_factor`` is positive."""
    backoff_until(func, JitteredBackoffManager(period, jitter_factor, RealClock()), sliding, ctx)


def until(func: Callable[[], None], period: float, ctx: Optional[Context] = None) -> None:
    """Run ``func`` every ``period`` seconds, timed from the end of each run."""
    jitter_until(func, period, 0.0, True, ctx)


def non_sliding_until(func: Callable[[], None], period: float, ctx: Optional[Context] = None) -> None:
    """Run ``func`` every ``period`` seconds, timed from the start of each run."""
    jitter_until(func, period, 0.0, False, ctx)


def forever(func: Callable[[], None], period: float) -> None:
    """Run ``func`` every ``period`` seconds for ever."""
    until(func, period, None)


def poller(interval: float, timeout: float = 0.0) -> WaitFunc:
    """Return a wait function that ticks every ``interval`` seconds until ``timeout``.

    A ``timeout`` of 0 means no limit. Missed ticks are dropped. The returned
    function takes an optional context; its ticks end when the context is done.
    """
    if interval <= 0:
        raise ValueError("non-positive interval for poller")

    def wait(ctx: Optional[Context] = None) -> Iterator[None]:
        start = time.monotonic()
        deadline = start + timeout if timeout else None
        next_tick = start + interval
        while True:
            timed_out = deadline is not None and deadline < next_tick
            target = deadline if timed_out else next_tick
            delay = max(0.0, target - time.monotonic())  # type: ignore[operator]
            if ctx is not None:
                if ctx.wait(delay):
                    return
            else:
                time.sleep(delay)
            if timed_out:
                return
            yield None
            now = time.monotonic()
            next_tick += interval
            while next_tick <= now:
                next_tick += interval

    return wait


def wait_for(wait: WaitFunc, condition: Condition, ctx: Optional[Context] = None) -> None:
    """Check ``condition`` on every tick of ``wait`` and once more when it ends.

    Returns once the condition holds; raises WaitTimeout when the ticks run out
    or ``ctx`` finishes first. Exceptions from the condition propagate.
    """
    for _ in wait(ctx):
        if ctx is not None and ctx.done():
            raise WaitTimeout()
        if condition():
            return
    if ctx is not None and ctx.done():
        raise WaitTimeout()
    if condition():
        return
    raise WaitTimeout()


def _poll(immediate: bool, wait: WaitFunc, condition: Condition, ctx: Optional[Context]) -> None:
    if immediate and condition():
        return
    if ctx is not None and ctx.done():
        raise WaitTimeout()
    wait_for(wait, condition, ctx)


def poll(interval: float, timeout: float, condition: Condition, ctx: Optional[Context] = None) -> None:
    """Check ``condition`` every ``interval`` until it holds or ``timeout`` passes."""
    _poll(False, poller(interval, timeout), condition, ctx)


def poll_immediate(
    interval: float, timeout: float, condition: Condition, ctx: Optional[Context] = None
) -> None:
    """Like :func:`poll`, but check the condition once before the first wait."""
    _poll(True, poller(interval, timeout), condition, ctx)


def poll_infinite(interval: float, condition: Condition, ctx: Optional[Context] = None) -> None:
    """Check ``condition`` every ``interval`` until it holds."""
    _poll(False, poller(interval, 0.0), condition, ctx)


def poll_immediate_infinite(interval: float, condition: Condition, ctx: Optional[Context] = None) -> None:
    """Like :func:`poll_infinite`, but check the condition before the first wait."""
    _poll(True, poller(interval, 0.0), condition, ctx)


def poll_until(interval: float, condition: Condition, ctx: Optional[Context]) -> None:
    """Check ``condition`` every ``interval`` until it holds or ``ctx`` is done."""
    _poll(False, poller(interval, 0.0), condition, ctx)


def poll_immediate_until(interval: float, condition: Condition, ctx: Optional[Context]) -> None:
    """Like :func:`poll_until`, but check the condition before the first wait."""
    _poll(True, poller(interval, 0.0), condition, ctx)