"""Thread-safe maps, including one whose entries expire."""

from __future__ import annotations

import threading
import time
from typing import Callable, Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class SyncMap(Generic[K, V]):
    """A dictionary guarded by a lock."""

    def __init__(self) -> None:
        self._data: dict[K, V] = {}
        self._lock = threading.RLock()

    def store(self, key: K, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def load(self, key: K) -> tuple[V | None, bool]:
        """Return ``(value, found)``."""
        with self._lock:
            if key in self._data:
                return self._data[key], True
            return None, False

    def load_or_store(self, key: K, value: V) -> tuple[V, bool]:
        """Return ``(actual, loaded)``; store ``value`` only when absent."""
        with self._lock:
            if key in self._data:
                return self._data[key], True
            self._data[key] = value
            return value, False

    def load_and_delete(self, key: K) -> tuple[V | None, bool]:
        with self._lock:
            if key in self._data:
                return self._data.pop(key), True
            return None, False

    def delete(self, key: K) -> None:
        with self._lock:
            self._data.pop(key, None)

    def items(self) -> list[tuple[K, V]]:
        """Snapshot of the key/value pairs."""
        with self._lock:
            return list(self._data.items())

    def swap(self, key: K, value: V) -> tuple[V | None, bool]:
        """Store ``value`` and return ``(previous, loaded)``."""
        with self._lock:
            loaded = key in self._data
            previous = self._data.get(key)
            self._data[key] = value
            return previous, loaded

    def compare_and_swap(self, key: K, old: V, new: V) -> bool:
        with self._lock:
            if key in self._data and self._data[key] == old:
                self._data[key] = new
                return True
            return False

    def compare_and_delete(self, key: K, old: V) -> bool:
        with self._lock:
            if key in self._data and self._data[key] == old:
                del self._data[key]
                return True
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def keys(self) -> list[K]:
        with self._lock:
            return list(self._data)

    def values(self) -> list[V]:
        with self._lock:
            return list(self._data.values())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class TTLMap(Generic[K, V]):
    """Map whose entries expire ``ttl`` seconds after being stored.

    A background thread purges expired entries once a second by default.
    """

    def __init__(self) -> None:
        self._data: SyncMap[K, V] = SyncMap()
        self._exp: SyncMap[K, float] = SyncMap()
        self._lock = threading.Lock()
        self._stop: threading.Event | None = None
        self._start(self._ticker_cleanup, 0)

    def _start(self, target: Callable, arg: object) -> None:
        with self._lock:
            if self._stop is not None:
                self._stop.set()
            stop = threading.Event()
            self._stop = stop
        threading.Thread(target=target, args=(stop, arg), daemon=True).start()

    def switch_fixed_time_clear(self, after_fn: Callable[[], float]) -> TTLMap[K, V]:
        """Replace the cleanup with a full clear every ``after_fn()`` seconds."""
        self._start(self._fixed_time_cleanup, after_fn)
        return self

    def set_ticker_cleanup(self, interval: float) -> TTLMap[K, V]:
        """Purge expired entries every ``interval`` seconds (1 s when <= 0)."""
        self._start(self._ticker_cleanup, interval)
        return self

    def _fixed_time_cleanup(self, stop: threading.Event, after_fn: Callable[[], float]) -> None:
        while not stop.wait(after_fn()):
            self.clear()

    def _ticker_cleanup(self, stop: threading.Event, interval: float) -> None:
        if interval <= 0:
            interval = 1.0
        while not stop.wait(interval):
            now = time.monotonic()
            for key, expires in self._exp.items():
                if now > expires and self._exp.compare_and_delete(key, expires):
                    self._data.delete(key)

    def store(self, key: K, value: V, ttl: float) -> None:
        """Store ``value``; it expires after ``ttl`` seconds."""
        self._data.store(key, value)
        self._exp.store(key, time.monotonic() + ttl)

    def load(self, key: K) -> tuple[V | None, bool]:
        """Return ``(value, found)`` for an unexpired entry."""
        expires, ok = self._exp.load(key)
        if not ok:
            return None, False
        if time.monotonic() > expires:
            self.delete(key)
            return None, False
        return self._data.load(key)

    def load_or_store(self, key: K, value: V, ttl: float) -> tuple[V, bool]:
        """Return ``(actual, loaded)``; the expiry is always refreshed."""
        self._exp.store(key, time.monotonic() + ttl)
        return self._data.load_or_store(key, value)

    def delete(self, key: K) -> None:
        self._data.delete(key)
        self._exp.delete(key)

    def __len__(self) -> int:
        return len(self._data)

    def items(self) -> list[tuple[K, V]]:
        return self._data.items()

    def clear(self) -> None:
        self._data.clear()
        self._exp.clear()

    def dispose(self) -> None:
        """Clear the map and stop its background thread."""
        self.clear()
        with self._lock:
            if self._stop is not None:
                self._stop.set()

    def __enter__(self) -> TTLMap[K, V]:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()