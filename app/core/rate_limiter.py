"""
Rate limiting for the customer login flow.

Attempts are counted per key (``store_id:email``) inside a fixed window.
Once a key exceeds its threshold it is blocked for a cooldown period,
regardless of window resets, until the block expires. A block ending inside
the same window does not reset the count.

Two backends share the same ``check``/``reset`` contract:

- RateLimiter: process-local, in-memory. State is NOT shared between
  instances of the API; use the Redis backend behind a load balancer.
- RedisRateLimiter: counters and blocks stored as Redis keys with TTLs.
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Union

import redis

from app.core.clock import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: Optional[int] = None


@dataclass
class RateLimitEntry:
    attempts: int
    first_attempt: datetime
    blocked_until: Optional[datetime] = None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and now < self.blocked_until


def _ceil_seconds(delta: timedelta) -> int:
    return max(1, math.ceil(delta.total_seconds()))


class RateLimiter:
    """
    In-memory fixed-window rate limiter with progressive blocking.

    Expired entries are swept opportunistically: at most once per
    ``cleanup_interval``, on the next ``check`` call. There is no background
    thread.
    """

    def __init__(
        self,
        name: str,
        max_attempts: int,
        window: timedelta,
        block_duration: timedelta,
        cleanup_interval: timedelta = timedelta(minutes=5),
        clock: Clock = utc_now,
    ):
        self.name = name
        self.max_attempts = max_attempts
        self.window = window
        self.block_duration = block_duration
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def check(self, key: str, max_attempts: Optional[int] = None) -> RateLimitResult:
        """
        Record an attempt for ``key`` and decide whether it may proceed.

        Args:
            key: Rate limit key, e.g. "store_id:email"
            max_attempts: Override for the configured threshold

        Returns:
            RateLimitResult: allowed flag, plus retry_after_seconds when denied
        """
        limit = self.max_attempts if max_attempts is None else max_attempts
        now = self._clock()

        with self._lock:
            self._maybe_cleanup(now)

            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = RateLimitEntry(attempts=1, first_attempt=now)
                return RateLimitResult(allowed=True)

            if entry.is_blocked(now):
                return RateLimitResult(
                    allowed=False,
                    retry_after_seconds=_ceil_seconds(entry.blocked_until - now),
                )

            # Window elapsed: start over. An expired block inside the window keeps counting
            if now - entry.first_attempt > self.window:
                self._entries[key] = RateLimitEntry(attempts=1, first_attempt=now)
                return RateLimitResult(allowed=True)

            entry.attempts += 1
            if entry.attempts > limit:
                entry.blocked_until = now + self.block_duration
                logger.warning(
                    "Rate limit %s exceeded (%d attempts), blocking for %ds",
                    self.name, entry.attempts, int(self.block_duration.total_seconds()),
                )
                return RateLimitResult(
                    allowed=False,
                    retry_after_seconds=_ceil_seconds(self.block_duration),
                )

            return RateLimitResult(allowed=True)

    def reset(self, key: str) -> None:
        """Forget all attempts for ``key`` (used after a successful login)."""
        with self._lock:
            self._entries.pop(key, None)

    def get_entry(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def _maybe_cleanup(self, now: datetime) -> None:
        # Caller holds the lock
        if now - self._last_cleanup <= self.cleanup_interval:
            return
        self._last_cleanup = now

        expired = [
            key for key, entry in self._entries.items()
            if now - entry.first_attempt > self.window and not entry.is_blocked(now)
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug("Rate limit %s cleanup removed %d entries", self.name, len(expired))


class RedisRateLimiter:
    """
    Redis-backed rate limiter with the same contract as RateLimiter.

    Keys:
        {prefix}:{key}          attempt counter, expires with the window
        {prefix}:blocked:{key}  block marker, expires with the block

    Expiry is handled by Redis TTLs, so no cleanup pass is needed. If Redis
    is unreachable the limiter fails open and logs the error.
    """

    def __init__(
        self,
        name: str,
        max_attempts: int,
        window: timedelta,
        block_duration: timedelta,
        redis_client: redis.Redis,
    ):
        self.name = name
        self.max_attempts = max_attempts
        self.window = window
        self.block_duration = block_duration
        self.redis_client = redis_client

    def _counter_key(self, key: str) -> str:
        return f"rate_limit:{self.name}:{key}"

    def _block_key(self, key: str) -> str:
        return f"rate_limit:{self.name}:blocked:{key}"

    def check(self, key: str, max_attempts: Optional[int] = None) -> RateLimitResult:
        limit = self.max_attempts if max_attempts is None else max_attempts
        block_seconds = int(self.block_duration.total_seconds())

        try:
            ttl = self.redis_client.ttl(self._block_key(key))
            if ttl is not None and ttl > 0:
                return RateLimitResult(allowed=False, retry_after_seconds=int(ttl))

            attempts = self.redis_client.incr(self._counter_key(key))
            if attempts == 1:
                self.redis_client.expire(self._counter_key(key), int(self.window.total_seconds()))

            if attempts > limit:
                self.redis_client.setex(self._block_key(key), block_seconds, 1)
                logger.warning(
                    "Rate limit %s exceeded (%d attempts), blocking for %ds",
                    self.name, attempts, block_seconds,
                )
                return RateLimitResult(allowed=False, retry_after_seconds=block_seconds)

            return RateLimitResult(allowed=True)

        except redis.RedisError as e:
            logger.error(f"Redis rate limiter error ({self.name}): {e}")
            return RateLimitResult(allowed=True)

    def reset(self, key: str) -> None:
        try:
            self.redis_client.delete(self._counter_key(key), self._block_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis rate limiter reset error ({self.name}): {e}")


@dataclass
class RateLimiters:
    """The two independent keyspaces used by the login flow."""
    send_code: Union[RateLimiter, "RedisRateLimiter"]
    verify_code: Union[RateLimiter, "RedisRateLimiter"]


def rate_limit_key(store_id: str, email: str) -> str:
    return f"{store_id}:{email.strip().lower()}"


def build_rate_limiters(settings, clock: Clock = utc_now) -> RateLimiters:
    """
    Build the send-code and verify-code limiters for the configured backend.
    """
    window = timedelta(minutes=settings.RATE_LIMIT_WINDOW_MINUTES)
    block = timedelta(minutes=settings.RATE_LIMIT_BLOCK_MINUTES)

    if settings.RATE_LIMIT_BACKEND == "redis":
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
        )
        return RateLimiters(
            send_code=RedisRateLimiter("send_code", settings.SEND_CODE_MAX_ATTEMPTS, window, block, client),
            verify_code=RedisRateLimiter("verify_code", settings.VERIFY_CODE_MAX_ATTEMPTS, window, block, client),
        )

    cleanup = timedelta(minutes=settings.RATE_LIMIT_CLEANUP_INTERVAL_MINUTES)
    return RateLimiters(
        send_code=RateLimiter("send_code", settings.SEND_CODE_MAX_ATTEMPTS, window, block, cleanup, clock),
        verify_code=RateLimiter("verify_code", settings.VERIFY_CODE_MAX_ATTEMPTS, window, block, cleanup, clock),
    )
