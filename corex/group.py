"""Cancellation contexts and helpers for running groups of threads."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class Cancelled(Exception):
    """The context was cancelled."""


class DeadlineExceeded(TimeoutError):
    """The context deadline passed."""


class Context:
    """Cancellation signal with an optional deadline, inherited from a parent."""

    def __init__(self, parent: Optional["Context"] = None, timeout: Optional[float] = None) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._error: Optional[BaseException] = None
        self._children: list[Context] = []
        self._timer: Optional[threading.Timer] = None
        self._parent = parent

        deadline = None if timeout is None else time.monotonic() + timeout
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline

        if parent is not None:
            parent._attach(self)

        if deadline is not None and not self.done():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._finish(DeadlineExceeded("context deadline exceeded"))
            else:
                timer = threading.Timer(
                    remaining, self._finish, args=(DeadlineExceeded("context deadline exceeded"),)
                )
                timer.daemon = True
                with self._lock:
                    if self._error is None:
                        self._timer = timer
                        timer.start()

    def _attach(self, child: "Context") -> None:
        with self._lock:
            if self._error is None:
                self._children.append(child)
                return
            error = self._error
        child._finish(error)

    def _detach(self, child: "Context") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def _finish(self, error: BaseException) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error
            children, self._children = self._children, []
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        self._done.set()
        for child in children:
            child._finish(error)
        if self._parent is not None:
            self._parent._detach(self)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._finish(Cancelled("context canceled"))

    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context is done; True if it finished within ``timeout``."""
        return self._done.wait(timeout)

    def time_remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> Optional[BaseException]:
        """Why the context finished, or None while it is still live."""
        with self._lock:
            return self._error


class Group:
    """Runs functions in threads and waits for all of them."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._running = 0

    def _spawn(self, func: Callable[[], None], on_exit: Optional[Callable[[], None]] = None) -> None:
        with self._cond:
            self._running += 1

        def target() -> None:
            try:
                func()
            finally:
                if on_exit is not None:
                    on_exit()
                with self._cond:
                    self._running -= 1
                    self._cond.notify_all()

        threading.Thread(target=target, daemon=True).start()

    def go(self, func: Callable[[], None]) -> None:
        """Run ``func`` in a new thread."""
        self._spawn(func)

    def go_n(self, num: int, func: Callable[[], None]) -> None:
        """Run ``func`` in ``num`` new threads."""
        for _ in range(num):
            self._spawn(func)

    def start_with_context(self, ctx: Context, func: Callable[[Context], None]) -> None:
        """Run ``func(ctx)`` in a new thread."""
        self._spawn(lambda: func(ctx))

    def wait(self) -> None:
        """Block until every started function has returned."""
        with self._cond:
            self._cond.wait_for(lambda: self._running == 0)


class ErrGroup:
    """Thread group whose first failure cancels the shared context."""

    def __init__(self, ctx: Optional[Context] = None) -> None:
        self.context = Context(ctx)
        self._group = Group()
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None

    def go(self, func: Callable[[Context], None]) -> None:
        """Run ``func(context)`` in a new thread; an exception it raises is recorded."""

        def target() -> None:
            try:
                func(self.context)
            except Exception as exc:  # noqa: BLE001 - first failure is reported by wait()
                with self._lock:
                    if self._error is not None:
                        return
                    self._error = exc
                self.context.cancel()

        self._group.go(target)

    def wait(self) -> None:
        """Wait for every function, cancel the context and re-raise the first failure."""
        self._group.wait()
        self.context.cancel()
        with self._lock:
            error = self._error
        if error is not None:
            raise error


class CtrlGroup:
    """Thread group that runs at most ``number`` functions at the same time."""

    def __init__(self, number: int) -> None:
        if number < 1:
            raise ValueError("number must be at least one")
        self._slots = threading.BoundedSemaphore(number)
        self._group = Group()

    def enter(self) -> None:
        """Take a slot, blocking while all are in use."""
        self._slots.acquire()

    def leave(self) -> None:
        """Give a slot back."""
        self._slots.release()

    def go(self, func: Callable[[], None]) -> None:
        """Wait for a free slot, then run ``func`` in a new thread."""
        self.enter()
        self._group._spawn(func, on_exit=self.leave)

    def wait(self) -> None:
        self._group.wait()