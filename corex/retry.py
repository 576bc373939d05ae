"""Retry a callable with exponential backoff."""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from corex.backoff import Backoff, WaitTimeout, exponential_backoff

R = TypeVar("R")


def retry_on_error(backoff: Backoff, fn: Callable[[], R]) -> Optional[R]:
    """Call ``fn`` until it returns, retrying on any exception."""
    return retry_on_condition(backoff, lambda exc: True, fn)


def retry_on_condition(
    backoff: Backoff,
    retriable: Callable[[Exception], bool],
    fn: Callable[[], R],
) -> Optional[R]:
    """Call ``fn`` until it returns, retrying while ``retriable(exc)`` holds.

    Returns what ``fn`` returned. A non-retriable exception propagates at once;
    when the attempts run out the last retriable exception is raised. With no
    attempts at all, ``fn`` is never called and None is returned.
    """
    result: Optional[R] = None
    last_error: Optional[Exception] = None

    def condition() -> bool:
        nonlocal result, last_error
        try:
            result = fn()
        except Exception as exc:
            if retriable(exc):
                last_error = exc
                return False
            raise
        return True

    try:
        exponential_backoff(backoff, condition)
    except WaitTimeout:
        if last_error is not None:
            raise last_error
        return None
    return result