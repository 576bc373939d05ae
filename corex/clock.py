"""Real clock, timers and tickers that can be injected into time-dependent code."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class Timer:
    """One-shot timer.

    Without ``func`` the expiry is delivered to :meth:`wait`. With ``func`` the
    function runs in its own thread on expiry and nothing is delivered.
    """

    def __init__(self, duration: float, func: Optional[Callable[[], None]] = None) -> None:
        self._func = func
        self._cond = threading.Condition()
        self._generation = 0
        self._active = False
        self._pending = False
        self._timer: Optional[threading.Timer] = None
        with self._cond:
            self._arm(duration)

    def _arm(self, duration: float) -> None:
        self._generation += 1
        self._active = True
        self._pending = False
        timer = threading.Timer(max(0.0, duration), self._fire, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _disarm(self) -> bool:
        was_active = self._active
        self._active = False
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return was_active

    def _fire(self, generation: int) -> None:
        with self._cond:
            if generation != self._generation or not self._active:
                return
            self._active = False
            if self._func is None:
                self._pending = True
                self._cond.notify_all()
                return
            func = self._func
        func()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the timer fires; True if it fired within ``timeout``."""
        with self._cond:
            self._cond.wait_for(lambda: self._pending, timeout)
            if self._pending:
                self._pending = False
                return True
            return False

    def stop(self) -> bool:
        """Prevent the timer from firing; True if it was still pending."""
        with self._cond:
            return self._disarm()

    def reset(self, duration: float) -> bool:
        """Restart the timer with a new duration; True if it had been active."""
        with self._cond:
            was_active = self._disarm()
            self._arm(duration)
            return was_active


class Ticker:
    """Delivers ticks every ``interval`` seconds; unread ticks are dropped."""

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("non-positive interval for ticker")
        self._interval = interval
        self._cond = threading.Condition()
        self._pending = False
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stopped.wait(self._interval):
            with self._cond:
                self._pending = True
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the next tick; False on timeout or once stopped."""
        with self._cond:
            self._cond.wait_for(lambda: self._pending or self._stopped.is_set(), timeout)
            if self._pending:
                self._pending = False
                return True
            return False

    def stop(self) -> None:
        """Stop delivering ticks."""
        self._stopped.set()
        with self._cond:
            self._cond.notify_all()


class RealClock:
    """Clock backed by the system time; times are seconds since the epoch."""

    def now(self) -> float:
        return time.time()

    def since(self, ts: float) -> float:
        """Seconds elapsed since ``ts``."""
        return time.time() - ts

    def after(self, duration: float) -> Timer:
        """Return a timer that fires once after ``duration`` seconds."""
        return Timer(duration)

    def new_timer(self, duration: float) -> Timer:
        return Timer(duration)

    def after_func(self, duration: float, func: Callable[[], None]) -> Timer:
        """Run ``func`` in its own thread after ``duration`` seconds."""
        return Timer(duration, func)

    def new_ticker(self, duration: float) -> Ticker:
        return Ticker(duration)

    def sleep(self, duration: float) -> None:
        time.sleep(max(0.0, duration))