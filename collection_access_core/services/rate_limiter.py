"""
Sliding-window rate limiting for outbound remote API calls.

Each subject (normally a user id) may make at most ``max_calls`` accepted
calls in any ``window_seconds`` interval. Denied attempts are not recorded,
so a caller who backs off regains budget as old calls age out.
"""

import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

import redis
from pydantic import BaseModel, ConfigDict

from ..config import AppConfig, RateLimitConfig, get_config
from ..utils.logger import get_logger

Clock = Callable[[], float]


class RateLimitResult(BaseModel):
    """Outcome of one acquire attempt."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int
    remaining: int
    reset_at: float


class RateLimiter(ABC):
    """Interface shared by all rate limiting strategies."""

    def __init__(self, config: Optional[RateLimitConfig] = None):
        self.config = config or get_config().rate_limit
        self.logger = get_logger()

    @property
    def limit(self) -> int:
        return self.config.max_calls

    @property
    def window_seconds(self) -> int:
        return self.config.window_seconds

    def subject_key(self, subject: str) -> str:
        return f"{self.config.key_prefix}:{subject}"

    @abstractmethod
    def try_acquire(self, subject: str) -> RateLimitResult:
        """Record one call for ``subject`` if budget remains."""


# KEYS[1] window key; ARGV: now, window, limit, member
_SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
local allowed = 0
if count < limit then
    redis.call('ZADD', key, now, ARGV[4])
    count = count + 1
    allowed = 1
end
redis.call('PEXPIRE', key, math.ceil(window * 1000))

local reset_at = now + window
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
if oldest[2] then
    reset_at = tonumber(oldest[2]) + window
end
return {allowed, count, tostring(reset_at)}
"""


class RedisRateLimiter(RateLimiter):
    """
    Sliding log kept in a Redis sorted set and evaluated atomically by a Lua
    script, so concurrent workers share one budget per subject.

    A store failure fails open: the call is allowed and a warning is logged.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        config: Optional[RateLimitConfig] = None,
        clock: Clock = time.time,
    ):
        super().__init__(config)
        self.redis = redis_client
        self.clock = clock
        self._script = redis_client.register_script(_SLIDING_WINDOW_SCRIPT)

    def try_acquire(self, subject: str) -> RateLimitResult:
        now = self.clock()
        key = self.subject_key(subject)
        member = f"{now}:{uuid.uuid4().hex}"

        try:
            allowed, count, reset_at = self._script(
                keys=[key], args=[now, self.window_seconds, self.limit, member]
            )
        except redis.RedisError as e:
            self.logger.warning(
                "Rate limiter store unavailable, allowing call",
                extra={"subject_key": key, "error": str(e)},
            )
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit,
                reset_at=now + self.window_seconds,
            )

        return RateLimitResult(
            allowed=bool(int(allowed)),
            limit=self.limit,
            remaining=max(self.limit - int(count), 0),
            reset_at=float(reset_at),
        )


class InMemoryRateLimiter(RateLimiter):
    """Single-process sliding log with the same semantics as the Redis limiter."""

    def __init__(self, config: Optional[RateLimitConfig] = None, clock: Clock = time.time):
        super().__init__(config)
        self.clock = clock
        self._windows: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def try_acquire(self, subject: str) -> RateLimitResult:
        key = self.subject_key(subject)
        with self._lock:
            now = self.clock()
            window = self._windows[key]
            while window and window[0] <= now - self.window_seconds:
                window.popleft()

            allowed = len(window) < self.limit
            if allowed:
                window.append(now)

            reset_at = (window[0] if window else now) + self.window_seconds
            return RateLimitResult(
                allowed=allowed,
                limit=self.limit,
                remaining=max(self.limit - len(window), 0),
                reset_at=reset_at,
            )

    def reset(self, subject: Optional[str] = None) -> None:
        with self._lock:
            if subject is None:
                self._windows.clear()
            else:
                self._windows.pop(self.subject_key(subject), None)


class NullRateLimiter(RateLimiter):
    """Always allows; used when no shared store is configured."""

    def __init__(self, config: Optional[RateLimitConfig] = None, clock: Clock = time.time):
        super().__init__(config)
        self.clock = clock

    def try_acquire(self, subject: str) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=self.limit,
            reset_at=self.clock() + self.window_seconds,
        )


def build_rate_limiter(
    config: Optional[AppConfig] = None, redis_client: Optional[redis.Redis] = None
) -> RateLimiter:
    """
    Select the rate limiting strategy for this process.

    A configured store always wins. Without one every call is allowed; the
    in-memory window is only used when constructed directly.
    """
    config = config or get_config()

    if redis_client is None and config.store.enabled:
        redis_client = redis.Redis.from_url(
            config.store.redis_url, socket_timeout=config.store.socket_timeout
        )

    if redis_client is not None:
        limiter: RateLimiter = RedisRateLimiter(redis_client, config.rate_limit)
    else:
        limiter = NullRateLimiter(config.rate_limit)

    get_logger().info(
        "Rate limiter configured",
        extra={
            "strategy": type(limiter).__name__,
            "max_calls": config.rate_limit.max_calls,
            "window_seconds": config.rate_limit.window_seconds,
        },
    )
    return limiter
