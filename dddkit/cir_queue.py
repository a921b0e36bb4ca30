"""A fixed-size ring buffer that keeps the most recent items."""

from __future__ import annotations

from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class CirQueue(Generic[T]):
    """Ring buffer of at most ``size`` items; not thread-safe."""

    def __init__(self, size: int) -> None:
        if not 1 <= size <= 255:
            raise ValueError("size must be between 1 and 255")
        self._size = size
        self._idx = 0
        self._over = False
        self._data: list[T | None] = [None] * size

    def push(self, item: T) -> None:
        """Add an item, overwriting the oldest when full."""
        if self._idx == self._size - 1 and not self._over:
            self._over = True
        self._data[self._idx] = item
        self._idx = (self._idx + 1) % self._size

    def to_list(self) -> list[T]:
        """Items from oldest to newest."""
        return list(self)

    def __iter__(self) -> Iterator[T]:
        start = self._idx if self._over else 0
        for step in range(len(self)):
            yield self._data[(start + step) % self._size]  # type: ignore[misc]

    def __len__(self) -> int:
        return self._size if self._over else self._idx

    def is_full(self) -> bool:
        return self._over