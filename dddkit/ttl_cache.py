"""A key/value cache with a single time-to-live for every entry."""

from __future__ import annotations

from typing import Any, Protocol

from .ttl_map import TTLMap


class CacheNotFoundError(LookupError):
    """Raised when a key is absent or expired."""

    def __init__(self, key: str) -> None:
        super().__init__(f"cache not found: {key}")
        self.key = key


class Cacher(Protocol):
    """What a cache backend offers."""

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def get(self, key: str) -> Any: ...

    def set_nx(self, key: str, value: Any) -> None: ...


class TTLCache:
    """In-memory :class:`Cacher` whose entries expire after ``ttl`` seconds."""

    def __init__(self, ttl: float) -> None:
        self.ttl = ttl
        self._map: TTLMap[str, Any] = TTLMap()

    def set(self, key: str, value: Any) -> None:
        self._map.store(key, value, self.ttl)

    def delete(self, key: str) -> None:
        self._map.delete(key)

    def get(self, key: str) -> Any:
        """Return the cached value or raise :class:`CacheNotFoundError`."""
        value, ok = self._map.load(key)
        if not ok:
            raise CacheNotFoundError(key)
        return value

    def set_nx(self, key: str, value: Any) -> None:
        """Store only when the key is absent or expired."""
        _, exists = self._map.load(key)
        if not exists:
            self._map.store(key, value, self.ttl)

    def __len__(self) -> int:
        return len(self._map)

    def dispose(self) -> None:
        """Drop every entry and stop the cleanup thread."""
        self._map.dispose()