"""
Unit tests for the login rate limiters.

Tests:
- Fixed window counting and blocking
- Block outliving the window
- Reset after a successful login
- Opportunistic cleanup
- Redis backend (mocked client)
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import redis

from app.core.config import settings
from app.core.rate_limiter import (
    RateLimiter,
    RedisRateLimiter,
    build_rate_limiters,
    rate_limit_key,
)


@pytest.fixture
def limiter(clock):
    return RateLimiter(
        "send_code",
        max_attempts=3,
        window=timedelta(minutes=15),
        block_duration=timedelta(minutes=30),
        cleanup_interval=timedelta(minutes=5),
        clock=clock,
    )


class TestFixedWindow:
    """Counting attempts inside one window"""

    def test_allows_up_to_max_attempts(self, limiter):
        results = [limiter.check("store:a@example.com") for _ in range(3)]

        assert all(r.allowed for r in results)
        assert all(r.retry_after_seconds is None for r in results)

    def test_blocks_the_attempt_after_max(self, limiter):
        for _ in range(3):
            limiter.check("store:a@example.com")

        result = limiter.check("store:a@example.com")

        assert result.allowed is False
        assert result.retry_after_seconds == 30 * 60

    def test_keys_are_independent(self, limiter):
        for _ in range(4):
            limiter.check("store:a@example.com")

        assert limiter.check("store:b@example.com").allowed is True
        assert limiter.check("other:a@example.com").allowed is True

    def test_window_elapsed_starts_fresh(self, limiter, clock):
        for _ in range(3):
            limiter.check("k")

        clock.advance(minutes=15, seconds=1)
        result = limiter.check("k")

        assert result.allowed is True
        assert limiter.get_entry("k").attempts == 1

    def test_max_attempts_override(self, limiter):
        assert limiter.check("k", max_attempts=1).allowed is True
        assert limiter.check("k", max_attempts=1).allowed is False


class TestBlocking:
    """A block holds for its full duration, not just the window"""

    def test_block_outlives_window(self, limiter, clock):
        for _ in range(4):
            limiter.check("k")

        clock.advance(minutes=20)
        result = limiter.check("k")

        assert result.allowed is False
        assert result.retry_after_seconds == 10 * 60

    def test_retry_after_rounds_up(self, limiter, clock):
        for _ in range(4):
            limiter.check("k")

        clock.advance(minutes=29, seconds=59, milliseconds=500)
        result = limiter.check("k")

        assert result.allowed is False
        assert result.retry_after_seconds == 1

    def test_short_block_inside_window_blocks_again(self, clock):
        limiter = RateLimiter(
            "send_code", 2, timedelta(minutes=15), timedelta(minutes=5),
            cleanup_interval=timedelta(minutes=5), clock=clock,
        )
        for _ in range(3):
            limiter.check("k")

        clock.advance(minutes=5)
        result = limiter.check("k")

        assert result.allowed is False
        assert result.retry_after_seconds == 5 * 60
        assert limiter.get_entry("k").attempts == 4

    def test_long_block_expiring_after_window_starts_fresh(self, limiter, clock):
        for _ in range(4):
            limiter.check("k")

        clock.advance(minutes=30)
        result = limiter.check("k")

        assert result.allowed is True
        entry = limiter.get_entry("k")
        assert entry.attempts == 1
        assert entry.blocked_until is None

    def test_denied_attempts_do_not_extend_block(self, limiter, clock):
        for _ in range(4):
            limiter.check("k")
        blocked_until = limiter.get_entry("k").blocked_until

        clock.advance(minutes=5)
        limiter.check("k")

        assert limiter.get_entry("k").blocked_until == blocked_until


class TestReset:
    def test_reset_clears_attempts(self, limiter):
        for _ in range(3):
            limiter.check("k")

        limiter.reset("k")

        assert limiter.get_entry("k") is None
        assert limiter.check("k").allowed is True

    def test_reset_unknown_key_is_noop(self, limiter):
        limiter.reset("never-seen")
        assert len(limiter) == 0


class TestCleanup:
    """Expired entries are swept at most once per cleanup interval"""

    def test_removes_expired_entries(self, limiter, clock):
        limiter.check("old")
        clock.advance(minutes=16)

        limiter.check("new")

        assert limiter.get_entry("old") is None
        assert limiter.get_entry("new") is not None

    def test_keeps_blocked_entries(self, limiter, clock):
        for _ in range(4):
            limiter.check("blocked")
        clock.advance(minutes=16)

        limiter.check("new")

        assert limiter.get_entry("blocked") is not None
        assert limiter.check("blocked").allowed is False

    def test_not_run_before_interval(self, clock):
        limiter = RateLimiter(
            "verify_code", 5, timedelta(minutes=1), timedelta(minutes=30),
            cleanup_interval=timedelta(minutes=10), clock=clock,
        )
        limiter.check("old")
        clock.advance(minutes=2)

        limiter.check("new")

        assert limiter.get_entry("old") is not None


class TestBuildRateLimiters:
    def test_default_memory_limiters(self, clock):
        limiters = build_rate_limiters(settings, clock=clock)

        assert isinstance(limiters.send_code, RateLimiter)
        assert limiters.send_code.max_attempts == 3
        assert limiters.verify_code.max_attempts == 5
        assert limiters.send_code.block_duration == timedelta(minutes=30)
        assert limiters.verify_code.window == timedelta(minutes=15)

    def test_keyspaces_are_separate(self, limiters):
        key = rate_limit_key("store", "a@example.com")
        for _ in range(4):
            limiters.send_code.check(key)

        assert limiters.verify_code.check(key).allowed is True

    def test_key_normalizes_email(self):
        assert rate_limit_key("abc", "  Jane@Example.COM ") == "abc:jane@example.com"


class TestRedisRateLimiter:
    """Same contract on top of Redis TTL keys"""

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.ttl.return_value = -2
        return client

    @pytest.fixture
    def redis_limiter(self, redis_client):
        return RedisRateLimiter(
            "verify_code", 5, timedelta(minutes=15), timedelta(minutes=30), redis_client
        )

    def test_first_attempt_sets_window_expiry(self, redis_limiter, redis_client):
        redis_client.incr.return_value = 1

        assert redis_limiter.check("k").allowed is True
        redis_client.expire.assert_called_once_with("rate_limit:verify_code:k", 900)

    def test_exceeding_sets_block(self, redis_limiter, redis_client):
        redis_client.incr.return_value = 6

        result = redis_limiter.check("k")

        assert result.allowed is False
        assert result.retry_after_seconds == 1800
        redis_client.setex.assert_called_once_with("rate_limit:verify_code:blocked:k", 1800, 1)
        redis_client.delete.assert_not_called()

    def test_blocked_key_reports_remaining_ttl(self, redis_limiter, redis_client):
        redis_client.ttl.return_value = 742

        result = redis_limiter.check("k")

        assert result.allowed is False
        assert result.retry_after_seconds == 742
        redis_client.incr.assert_not_called()

    def test_fails_open_when_redis_is_down(self, redis_limiter, redis_client):
        redis_client.ttl.side_effect = redis.ConnectionError("connection refused")

        assert redis_limiter.check("k").allowed is True

    def test_reset_deletes_both_keys(self, redis_limiter, redis_client):
        redis_limiter.reset("k")

        redis_client.delete.assert_called_once_with(
            "rate_limit:verify_code:k", "rate_limit:verify_code:blocked:k"
        )
