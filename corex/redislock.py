"""Distributed lock held as a Redis key with an expiry."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from corex.backoff import Backoff, exponential_backoff
from corex.group import Context

JITTER = 1.2
_MAX_STEPS = 2**32 - 1

UNLOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == KEYS[2] then
    redis.call("del", KEYS[1])
    return true
end
return false
"""


class Locker(Protocol):
    """A lock shared between processes."""

    def lock(self, ctx: Optional[Context] = None) -> None: ...

    def unlock(self) -> None: ...

    def try_lock(self) -> bool: ...

    def close(self) -> None: ...


class RedisLock:
    """Lock on ``key`` owned by ``owner``; it expires after ``expiration`` seconds.

    :meth:`lock` retries every ``retry_interval`` seconds, jittered.
    """

    def __init__(
        self,
        client: Any,
        key: str,
        owner: str,
        expiration: float,
        retry_interval: float = 0.1,
    ) -> None:
        if client is None:
            raise ValueError("redis client must not be None")
        if not key:
            raise ValueError("redis key must be set")
        if not owner:
            raise ValueError("owner must be set")
        if expiration <= 0:
            raise ValueError("expiration must be greater than zero")
        self._client = client
        self.key = key
        self.owner = owner
        self.expiration = expiration
        self.retry_interval = retry_interval

    def try_lock(self) -> bool:
        """Take the lock if it is free; True on success."""
        millis = max(1, round(self.expiration * 1000))
        return bool(self._client.set(self.key, self.owner, nx=True, px=millis))

    def lock(self, ctx: Optional[Context] = None) -> None:
        """Block until the lock is taken; raise the context's error once it is done."""
        backoff = Backoff(duration=self.retry_interval, jitter=JITTER, steps=_MAX_STEPS)
        exponential_backoff(backoff, self.try_lock, ctx)

    def unlock(self) -> None:
        """Release the lock if this owner holds it."""
        self._client.eval(UNLOCK_SCRIPT, 2, self.key, self.owner)

    def close(self) -> None:
        self.unlock()

    def __enter__(self) -> "RedisLock":
        self.lock()
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()