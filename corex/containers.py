"""Generic containers: a binary heap with a custom ordering, a FIFO queue and a set."""

from __future__ import annotations

import operator
from collections import deque
from typing import Callable, Generic, Hashable, Iterable, Iterator, TypeVar

T = TypeVar("T")
H = TypeVar("H", bound=Hashable)


class Heap(Generic[T]):
    """Binary heap ordered by a ``less(x, y)`` predicate; the least item is on top."""

    def __init__(
        self,
        data: Iterable[T] = (),
        less: Callable[[T, T], bool] = operator.lt,
    ) -> None:
        self._data: list[T] = list(data)
        self._less = less
        size = len(self._data)
        for index in reversed(range(size // 2)):
            self._down(index, size)

    def push(self, item: T) -> None:
        """Add an item and restore the heap order."""
        self._data.append(item)
        self._up(len(self._data) - 1)

    def pop(self) -> T:
        """Remove and return the top item; raise IndexError when empty."""
        if not self._data:
            raise IndexError("pop from an empty heap")
        last = len(self._data) - 1
        self._swap(0, last)
        self._down(0, last)
        return self._data.pop()

    def peek(self) -> T:
        """Return the top item without removing it; raise IndexError when empty."""
        if not self._data:
            raise IndexError("peek at an empty heap")
        return self._data[0]

    def remove(self, index: int) -> T:
        """Remove and return the item stored at position ``index``."""
        if not 0 <= index < len(self._data):
            raise IndexError("heap index out of range")
        last = len(self._data) - 1
        if last != index:
            self._swap(index, last)
            if not self._down(index, last):
                self._up(index)
        return self._data.pop()

    def fix(self, index: int) -> None:
        """Re-establish the order after the item at ``index`` changed its value."""
        if not self._data:
            return
        if not self._down(index, len(self._data)):
            self._up(index)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __repr__(self) -> str:
        return f"Heap({self._data!r})"

    def _less_at(self, i: int, j: int) -> bool:
        return self._less(self._data[i], self._data[j])

    def _swap(self, i: int, j: int) -> None:
        self._data[i], self._data[j] = self._data[j], self._data[i]

    def _up(self, child: int) -> None:
        while child > 0:
            parent = (child - 1) // 2
            if not self._less_at(child, parent):
                break
            self._swap(parent, child)
            child = parent

    def _down(self, start: int, size: int) -> bool:
        index = start
        while True:
            left = 2 * index + 1
            if left >= size:
                break
            child = left
            right = left + 1
            if right < size and self._less_at(right, left):
                child = right
            if not self._less_at(child, index):
                break
            self._swap(index, child)
            index = child
        return index > start


class Queue(Generic[T]):
    """First-in first-out queue."""

    def __init__(self, *items: T) -> None:
        self._data: deque[T] = deque(items)

    def push(self, item: T) -> None:
        """Append an item at the back."""
        self._data.append(item)

    def pop(self) -> T:
        """Remove and return the front item; raise IndexError when empty."""
        if not self._data:
            raise IndexError("pop from an empty queue")
        return self._data.popleft()

    def front(self) -> T:
        """Return the front item; raise IndexError when empty."""
        if not self._data:
            raise IndexError("front of an empty queue")
        return self._data[0]

    def back(self) -> T:
        """Return the back item; raise IndexError when empty."""
        if not self._data:
            raise IndexError("back of an empty queue")
        return self._data[-1]

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __repr__(self) -> str:
        return f"Queue({list(self._data)!r})"


class Set(Generic[H]):
    """Unordered collection of unique items."""

    def __init__(self, *items: H) -> None:
        self._items: set[H] = set(items)

    def insert(self, *items: H) -> None:
        """Add every given item."""
        self._items.update(items)

    def delete(self, *items: H) -> None:
        """Remove every given item that is present."""
        self._items.difference_update(items)

    def has(self, item: H) -> bool:
        return item in self._items

    def has_all(self, *items: H) -> bool:
        """True when every given item is present."""
        return all(item in self._items for item in items)

    def has_any(self, *items: H) -> bool:
        """True when at least one given item is present."""
        return any(item in self._items for item in items)

    def to_list(self) -> list[H]:
        """Return the items as a list in no particular order."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[H]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"Set({sorted(map(repr, self._items))})"