"""Bit set stored in a Redis string, for use as a shared bloom filter backend."""

from __future__ import annotations

from typing import Any, Iterable

SET_SCRIPT = """
for _, offset in ipairs(ARGV) do
    redis.call("setbit", KEYS[1], offset, 1)
end
"""

GET_SCRIPT = """
for _, offset in ipairs(ARGV) do
    if tonumber(redis.call("getbit", KEYS[1], offset)) == 0 then
        return false
    end
end
return true
"""


class RedisBitSet:
    """Bit set kept under ``key`` in Redis; updates and checks are atomic scripts."""

    def __init__(self, client: Any, key: str) -> None:
        if client is None:
            raise ValueError("redis client must not be None")
        if not key:
            raise ValueError("key must not be empty")
        self._client = client
        self.key = key

    @staticmethod
    def _args(locations: Iterable[int]) -> list[str]:
        return [str(location) for location in locations]

    def add(self, locations: Iterable[int]) -> None:
        """Set every given bit."""
        self._client.eval(SET_SCRIPT, 1, self.key, *self._args(locations))

    def exists(self, locations: Iterable[int]) -> bool:
        """True when every given bit is set."""
        response = self._client.eval(GET_SCRIPT, 1, self.key, *self._args(locations))
        return response == 1

    def reset(self) -> None:
        """Delete the key, clearing all bits."""
        self._client.delete(self.key)