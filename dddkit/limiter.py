"""Token-bucket rate limiting, globally or per client address."""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from .ttl_map import TTLMap

IP_LIMITER_TTL = 180.0


class TokenBucket:
    """Allows ``rate`` events per second with bursts of up to ``burst``.

    The bucket starts full. An infinite rate allows every event.
    """

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] | None = None) -> None:
        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock or time.monotonic
        self._tokens = float(self.burst)
        self._last = self._clock()
        self._lock = threading.Lock()

    def allow(self) -> bool:
        """Take one token if available."""
        if math.isinf(self.rate) and self.rate > 0:
            return True
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._last = now
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False


def ip_rate_limiter(rate: float, burst: int) -> Callable[[str], bool]:
    """Return a function telling whether a request from an address may proceed.

    Each address gets its own bucket, forgotten after three idle minutes.
    """
    cache: TTLMap[str, TokenBucket] = TTLMap()

    def allow(ip: str) -> bool:
        bucket, ok = cache.load(ip)
        if not ok:
            bucket, _ = cache.load_or_store(ip, TokenBucket(rate, burst), IP_LIMITER_TTL)
        return bucket.allow()

    return allow


def content_length_allowed(content_length: int, limit: int) -> bool:
    """False when a request body is larger than ``limit`` bytes."""
    return content_length <= limit