"""
Fixed-window rate limiting for the key mutation endpoints.

Advisory only: it blunts retry storms, it is not a security boundary.
The memory backend is per-process and resets on restart; the Redis backend
shares counters between instances. Both allow ``max_requests`` calls per
``window_seconds`` per user.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from tradescope.config import Config, RateLimitConfig
from tradescope.errors import ConfigurationError

logger = logging.getLogger(__name__)

KEY_PREFIX = "tradescope:ratelimit:"


class RateLimiter(Protocol):
    max_requests: int
    window_seconds: float

    def allow(self, user_id: str) -> bool: ...


@dataclass
class _Window:
    start: float
    count: int


class FixedWindowRateLimiter:
    """In-memory limiter. Thread-safe; check-and-increment happens under one lock."""

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def allow(self, user_id: str) -> bool:
        now = self._clock()
        with self._lock:
            window = self._windows.get(user_id)
            if window is None or now - window.start > self.window_seconds:
                self._windows[user_id] = _Window(start=now, count=1)
                self._prune(now)
                return True
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def _prune(self, now: float) -> None:
        """Drop expired windows so idle users don't accumulate. Caller holds the lock."""
        expired = [uid for uid, w in self._windows.items() if now - w.start > self.window_seconds]
        for uid in expired:
            del self._windows[uid]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


class RedisRateLimiter:
    """Shared counters via INCR + PEXPIRE. Fails open if Redis is unreachable.

    The expiry is checked on every call, so a counter left without a TTL by a
    failed PEXPIRE gets one on the next request instead of living forever.
    """

    def __init__(self, client, max_requests: int = 5, window_seconds: float = 60.0) -> None:
        self._client = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def allow(self, user_id: str) -> bool:
        key = f"{KEY_PREFIX}{user_id}"
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.incr(key)
            pipe.pttl(key)
            count, ttl_ms = pipe.execute()
            # -1: key exists without an expiry
            if ttl_ms < 0:
                self._client.pexpire(key, int(self.window_seconds * 1000))
        except Exception as e:
            logger.warning("Rate limiter: Redis unavailable (%s), allowing request", type(e).__name__)
            return True
        return count <= self.max_requests


def build_rate_limiter(config: Config) -> RateLimiter:
    """Select the limiter backend named in config."""
    rl: RateLimitConfig = config.rate_limit
    if rl.backend == "memory":
        return FixedWindowRateLimiter(rl.max_requests, rl.window_seconds)
    if rl.backend == "redis":
        import redis

        client = redis.Redis.from_url(config.redis.url, socket_connect_timeout=3, socket_timeout=3)
        return RedisRateLimiter(client, rl.max_requests, rl.window_seconds)
    raise ConfigurationError(f"Unknown rate limit backend: {rl.backend}")
