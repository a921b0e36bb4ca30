"""Small helpers: sequence utilities, memoising wrappers, hashing and timing."""

from __future__ import annotations

import datetime as _dt
import gc
import hashlib
import inspect
import logging
import re
import threading
import time
import tracemalloc
from typing import (
    Any,
    BinaryIO,
    Callable,
    Hashable,
    Iterable,
    Sequence,
    TypeVar,
)

from .ttl_map import TTLMap

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_log = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_CHUNK = 64 * 1024


def reverse(items: Sequence[T]) -> list[T]:
    """Return a reversed copy of ``items``."""
    return list(reversed(items))


def unique(values: Iterable[Hashable]) -> bool:
    """True when every value occurs only once."""
    values = list(values)
    return len(values) == len(set(values))


def any_match(items: Iterable[T], callback: Callable[[T], bool]) -> bool:
    """True when ``callback`` holds for at least one item."""
    return any(callback(item) for item in items)


def deduplication_func(items: Iterable[T], fn: Callable[[T], str]) -> list[T]:
    """Keep the first item for each key ``fn(item)``, preserving order."""
    seen: set[str] = set()
    out: list[T] = []
    for item in items:
        key = fn(item)
        if key not in seen:
            seen.add(key)
            out.append(item)
    return out


def deduplication(*args: T) -> list[T]:
    """Drop repeated values, preserving the order of first occurrence."""
    return list(dict.fromkeys(args))


def use_cache(fn: Callable[[K], V]) -> Callable[[K], tuple[V, bool]]:
    """Memoise ``fn`` forever.

    The returned function gives ``(value, hit)``. Exceptions raised by ``fn``
    propagate and nothing is cached for that key.
    """
    cache: dict[K, V] = {}

    def cached(key: K) -> tuple[V, bool]:
        if key in cache:
            return cache[key], True
        value = fn(key)
        cache[key] = value
        return value, False

    return cached


def use_ttl_cache(timeline: float, fn: Callable[[K], V]) -> Callable[[K], tuple[V, bool]]:
    """Memoise ``fn`` with entries expiring after ``timeline`` seconds."""
    cache: TTLMap[K, V] = TTLMap()

    def cached(key: K) -> tuple[V, bool]:
        value, ok = cache.load(key)
        if ok:
            return value, True  # type: ignore[return-value]
        value = fn(key)
        cache.store(key, value, timeline)
        return value, False

    return cached


def strings_to_ints(*args: str) -> list[int]:
    """Convert strings to ints; empty strings are skipped, invalid ones become 0."""
    return [int(s) if _INT_RE.fullmatch(s) else 0 for s in args if s != ""]


def strings_to_map(*args: str) -> set[str]:
    """Set of the non-empty strings."""
    return {s for s in args if s != ""}


def ints_to_map(*args: int) -> set[int]:
    return set(args)


def ints_to_strings(*args: int) -> list[str]:
    return [str(v) for v in args]


def md5(text: str) -> str:
    """Hex MD5 of the UTF-8 encoding of ``text``."""
    return md5_from_bytes(text.encode("utf-8"))


def md5_from_bytes(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def md5_from_io(reader: BinaryIO) -> str:
    """Hex MD5 of everything readable from a binary stream."""
    digest = hashlib.md5()
    for chunk in iter(lambda: reader.read(_CHUNK), b""):
        digest.update(chunk)
    return digest.hexdigest()


def use_timer(
    stop_event: threading.Event,
    fn: Callable[[], Any],
    next_time: Callable[[], float],
) -> None:
    """Call ``fn`` repeatedly, waiting ``next_time()`` seconds before each call."""
    while not stop_event.wait(next_time()):
        fn()


def next_time_tomorrow(hour: int, minute: int, second: int) -> float:
    """Seconds from one day ahead of now until the following day's hour:minute:second."""
    now = _dt.datetime.now() + _dt.timedelta(days=1)
    tomorrow = now + _dt.timedelta(days=1)
    target = _dt.datetime(tomorrow.year, tomorrow.month, tomorrow.day, hour, minute, second)
    return (target - now).total_seconds()


def next_time_with_first(first_wait: float, fn: Callable[[], float]) -> Callable[[], float]:
    """Return a function giving ``first_wait`` once, then ``fn()`` on every later call."""
    first = True

    def next_wait() -> float:
        nonlocal first
        if first:
            first = False
            return first_wait
        return fn()

    return next_wait


def use_timing(limit: float) -> Callable[[], float]:
    """Start a stopwatch; the returned function gives the elapsed seconds."""
    start = time.perf_counter()

    def cost() -> float:
        return time.perf_counter() - start

    return cost


def _caller_name() -> str:
    frame = inspect.currentframe()
    try:
        caller = frame.f_back.f_back if frame and frame.f_back else None
        return caller.f_code.co_qualname if caller else "unknown"  # type: ignore[attr-defined]
    finally:
        del frame


def use_timing_with_log(limit: float) -> Callable[[], float]:
    """Start a stopwatch that logs the elapsed time when stopped.

    At or above ``limit`` seconds the record is an error, otherwise debug.
    """
    start = time.perf_counter()

    def cost() -> float:
        elapsed = time.perf_counter() - start
        level = logging.ERROR if elapsed >= limit else logging.DEBUG
        _log.log(level, "timing cost=%.6fs caller=%s", elapsed, _caller_name())
        return elapsed

    return cost


def use_memory_usage() -> Callable[[], int]:
    """Measure memory allocated between this call and the returned function's call."""
    started_here = not tracemalloc.is_tracing()
    if started_here:
        tracemalloc.start()
    gc.collect()
    before, _ = tracemalloc.get_traced_memory()

    def cost() -> int:
        after, _ = tracemalloc.get_traced_memory()
        used = max(0, after - before)
        _log.debug("memory usage cost(KiB)=%.3f caller=%s", used / 1024, _caller_name())
        if started_here:
            tracemalloc.stop()
        return used

    return cost