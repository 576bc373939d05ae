"""Bloom filter over a pluggable bit set, hashed with 64-bit MurmurHash3."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

DEFAULT_MAPS = 14

_MASK = (1 << 64) - 1
_C1 = 0x87C37B91114253D5
_C2 = 0x4CF5AD432745937F


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (64 - shift))) & _MASK


def _fmix(k: int) -> int:
    k ^= k >> 33
    k = (k * 0xFF51AFD7ED558CCD) & _MASK
    k ^= k >> 33
    k = (k * 0xC4CEB9FE1A85EC53) & _MASK
    k ^= k >> 33
    return k


def sum64(data: bytes) -> int:
    """Return the first 64 bits of MurmurHash3 x64 128 of ``data`` with seed 0."""
    length = len(data)
    h1 = h2 = 0
    full = length - length % 16

    for offset in range(0, full, 16):
        k1 = int.from_bytes(data[offset:offset + 8], "little")
        k2 = int.from_bytes(data[offset + 8:offset + 16], "little")

        k1 = (k1 * _C1) & _MASK
        k1 = _rotl(k1, 31)
        k1 = (k1 * _C2) & _MASK
        h1 ^= k1
        h1 = _rotl(h1, 27)
        h1 = (h1 + h2) & _MASK
        h1 = (h1 * 5 + 0x52DCE729) & _MASK

        k2 = (k2 * _C2) & _MASK
        k2 = _rotl(k2, 33)
        k2 = (k2 * _C1) & _MASK
        h2 ^= k2
        h2 = _rotl(h2, 31)
        h2 = (h2 + h1) & _MASK
        h2 = (h2 * 5 + 0x38495AB5) & _MASK

    tail = data[full:]
    if len(tail) > 8:
        k2 = int.from_bytes(tail[8:], "little")
        k2 = (k2 * _C2) & _MASK
        k2 = _rotl(k2, 33)
        k2 = (k2 * _C1) & _MASK
        h2 ^= k2
    if tail:
        k1 = int.from_bytes(tail[:8], "little")
        k1 = (k1 * _C1) & _MASK
        k1 = _rotl(k1, 31)
        k1 = (k1 * _C2) & _MASK
        h1 ^= k1

    h1 ^= length
    h2 ^= length
    h1 = (h1 + h2) & _MASK
    h2 = (h2 + h1) & _MASK
    h1 = _fmix(h1)
    h2 = _fmix(h2)
    h1 = (h1 + h2) & _MASK
    return h1


class _BitStore(Protocol):
    def add(self, locations: Iterable[int]) -> None: ...

    def exists(self, locations: Iterable[int]) -> bool: ...

    def reset(self) -> None: ...


class BitSet:
    """In-memory fixed-size bit set."""

    def __init__(self, size: int) -> None:
        self._bits = bytearray(size)

    def add(self, locations: Iterable[int]) -> None:
        """Set every given bit."""
        for location in locations:
            self._bits[location] = 1

    def exists(self, locations: Iterable[int]) -> bool:
        """True when every given bit is set."""
        return all(self._bits[location] for location in locations)

    def reset(self) -> None:
        """Clear all bits."""
        self._bits = bytearray(len(self._bits))

    def __len__(self) -> int:
        return len(self._bits)


class BloomFilter:
    """Probabilistic set membership with ``maps`` hash functions over ``bits`` bits."""

    def __init__(
        self,
        bits: int,
        maps: int = 0,
        bitset: Optional[_BitStore] = None,
        key: str = "",
    ) -> None:
        if bits <= 0:
            raise ValueError("bits must be greater than zero")
        self.bits = bits
        self.maps = maps if maps > 0 else DEFAULT_MAPS
        self.bitset: _BitStore = bitset if bitset is not None else BitSet(bits)
        self.key = key

    def reset(self) -> None:
        """Forget every added item."""
        self.bitset.reset()

    def add(self, data: bytes) -> None:
        """Add ``data``; empty data is ignored."""
        if not data:
            return
        self.bitset.add(self.locations(data))

    def exists(self, data: bytes) -> bool:
        """True if ``data`` may have been added; always False for empty data."""
        if not data:
            return False
        return self.bitset.exists(self.locations(data))

    def locations(self, data: bytes) -> list[int]:
        """Bit positions that represent ``data``."""
        data = bytes(data)
        return [sum64(data + bytes([index & 0xFF])) % self.bits for index in range(self.maps)]