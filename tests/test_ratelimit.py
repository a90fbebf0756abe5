"""Tests for tradescope.ratelimit — fixed-window limiters."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from helpers import FakeClock

from tradescope.config import Config, RateLimitConfig
from tradescope.errors import ConfigurationError
from tradescope.ratelimit import (
    KEY_PREFIX,
    FixedWindowRateLimiter,
    RedisRateLimiter,
    build_rate_limiter,
)


class TestFixedWindow:
    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = FixedWindowRateLimiter(5, 60.0, clock=self.clock)

    def test_five_allowed_sixth_rejected(self):
        results = [self.limiter.allow("u1") for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_rejections_do_not_extend_window(self):
        for _ in range(5):
            self.limiter.allow("u1")
        self.clock.advance(30)
        assert not self.limiter.allow("u1")
        self.clock.advance(31)
        assert self.limiter.allow("u1")

    def test_window_boundary_is_inclusive(self):
        for _ in range(5):
            self.limiter.allow("u1")
        self.clock.advance(60)
        # Exactly one window later the old window still applies
        assert not self.limiter.allow("u1")
        self.clock.advance(0.001)
        assert self.limiter.allow("u1")

    def test_new_window_counts_first_call(self):
        for _ in range(5):
            self.limiter.allow("u1")
        self.clock.advance(61)
        results = [self.limiter.allow("u1") for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_users_independent(self):
        for _ in range(5):
            self.limiter.allow("u1")
        assert not self.limiter.allow("u1")
        assert self.limiter.allow("u2")

    def test_expired_windows_pruned(self):
        self.limiter.allow("idle")
        self.clock.advance(61)
        self.limiter.allow("active")
        assert "idle" not in self.limiter._windows

    def test_reset(self):
        for _ in range(5):
            self.limiter.allow("u1")
        self.limiter.reset()
        assert self.limiter.allow("u1")

    def test_concurrent_calls_never_exceed_limit(self):
        limiter = FixedWindowRateLimiter(5, 60.0)
        results = []
        lock = threading.Lock()

        def worker():
            ok = limiter.allow("shared")
            with lock:
                results.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 5
        assert results.count(False) == 45


class FakeRedis:
    """Just enough of redis.Redis for the limiter: INCR, PTTL, PEXPIRE and pipelines."""

    def __init__(self, failing_pexpires=0):
        self.counts = {}
        self.expiries = {}
        self.failing_pexpires = failing_pexpires

    def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def pttl(self, key):
        if key not in self.counts:
            return -2
        return self.expiries.get(key, -1)

    def pexpire(self, key, ms):
        if self.failing_pexpires:
            self.failing_pexpires -= 1
            raise ConnectionError("connection reset")
        self.expiries[key] = ms
        return True

    def expire_now(self, key):
        self.counts.pop(key, None)
        self.expiries.pop(key, None)

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client):
        self._client = client
        self._queued = []

    def incr(self, key):
        self._queued.append(("incr", key))

    def pttl(self, key):
        self._queued.append(("pttl", key))

    def execute(self):
        results = [getattr(self._client, name)(key) for name, key in self._queued]
        self._queued = []
        return results


class TestRedisLimiter:
    def test_limit(self):
        client = FakeRedis()
        limiter = RedisRateLimiter(client, 5, 60.0)
        results = [limiter.allow("u1") for _ in range(6)]
        assert results == [True] * 5 + [False]
        assert client.expiries == {f"{KEY_PREFIX}u1": 60_000}

    def test_users_independent(self):
        client = FakeRedis()
        limiter = RedisRateLimiter(client, 5, 60.0)
        for _ in range(5):
            limiter.allow("u1")
        assert not limiter.allow("u1")
        assert limiter.allow("u2")

    def test_expiry_set_once_per_window(self):
        client = FakeRedis()
        limiter = RedisRateLimiter(client, 5, 60.0)
        with patch.object(client, "pexpire", wraps=client.pexpire) as pexpire:
            for _ in range(3):
                limiter.allow("u1")
        pexpire.assert_called_once_with(f"{KEY_PREFIX}u1", 60_000)

    def test_new_window_after_expiry(self):
        client = FakeRedis()
        limiter = RedisRateLimiter(client, 5, 60.0)
        for _ in range(6):
            limiter.allow("u1")
        client.expire_now(f"{KEY_PREFIX}u1")
        assert limiter.allow("u1")

    def test_failed_expiry_is_repaired_on_next_call(self):
        client = FakeRedis(failing_pexpires=1)
        limiter = RedisRateLimiter(client, 5, 60.0)
        key = f"{KEY_PREFIX}u1"

        # First call: INCR lands, PEXPIRE fails, request fails open
        assert limiter.allow("u1") is True
        assert key not in client.expiries

        assert limiter.allow("u1") is True
        assert client.expiries == {key: 60_000}

        # The counter can expire again, so the user is not locked out for good
        for _ in range(10):
            limiter.allow("u1")
        assert not limiter.allow("u1")
        client.expire_now(key)
        assert limiter.allow("u1")

    def test_fails_open(self, caplog):
        client = MagicMock()
        client.pipeline.return_value.execute.side_effect = ConnectionError("redis down")
        limiter = RedisRateLimiter(client, 5, 60.0)
        assert limiter.allow("u1") is True
        assert "Redis unavailable" in caplog.text


class TestBuildRateLimiter:
    def test_memory(self):
        limiter = build_rate_limiter(Config(rate_limit=RateLimitConfig(max_requests=3, window_seconds=10)))
        assert isinstance(limiter, FixedWindowRateLimiter)
        assert limiter.max_requests == 3
        assert limiter.window_seconds == 10

    def test_redis(self):
        with patch("redis.Redis.from_url") as from_url:
            limiter = build_rate_limiter(Config(rate_limit=RateLimitConfig(backend="redis")))
        assert isinstance(limiter, RedisRateLimiter)
        assert from_url.call_args[0][0] == "redis://127.0.0.1:6379/0"

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            build_rate_limiter(Config(rate_limit=RateLimitConfig(backend="memcached")))
