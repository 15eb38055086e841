"""
Fixed-window rate limiter.

Each (route, client) key tracks a request count and the time its window
resets. The first request, or the first after the reset time, opens a new
window with count 1. Within a window each request increments the count
until it reaches the route's maximum; further requests are rejected and
leave the entry untouched.

Storage is pluggable:
- InMemoryRateLimitStore: process-local dict, for single-instance deployments
- RedisRateLimitStore: shared counters with TTL, required when more than one
  process or instance serves traffic

Key features:
- Independent limits per route (login, search, export, ...)
- No await between reading and updating an in-memory entry, so concurrent
  requests in one event loop cannot interleave mid-update
- Periodic sweep of expired in-memory entries to bound memory
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from redis.asyncio import Redis

from quizfest.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitEntry:
    """
    Counter state for one key.

    Attributes:
        count: Requests accepted in the current window
        reset_at: Clock value after which the window restarts
    """
    count: int
    reset_at: float


class RateLimitStore(ABC):
    """
    Storage contract for fixed-window counters.

    Implementations must make hit() atomic per key.
    """

    @abstractmethod
    async def hit(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """
        Record a request for key if the window has capacity.

        Args:
            key: Counter key, already namespaced by route and client
            max_requests: Requests allowed per window
            window_seconds: Window length

        Returns:
            True if the request is allowed, False if the limit is reached
        """

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local counter store.

    Example:
        store = InMemoryRateLimitStore()
        limiter = RateLimiter(store)

    Note:
        Counters are not shared between worker processes. Run a single
        worker or switch to RedisRateLimitStore.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 300.0,
    ):
        """
        Args:
            clock: Monotonic time source in seconds (injectable for tests)
            sweep_interval: Seconds between removals of expired entries
        """
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._entries: Dict[str, RateLimitEntry] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    async def hit(self, key: str, max_requests: int, window_seconds: float) -> bool:
        now = self._clock()

        if now - self._last_sweep > self._sweep_interval:
            self._sweep(now)

        entry = self._entries.get(key)
        if entry is None or now > entry.reset_at:
            self._entries[key] = RateLimitEntry(count=1, reset_at=now + window_seconds)
            return True

        if entry.count >= max_requests:
            return False

        entry.count += 1
        return True

    def _sweep(self, now: float) -> None:
        """
        Remove entries whose window has ended.
        """
        expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(
                "Swept expired rate limit entries",
                extra={"count": len(expired)}
            )

        self._last_sweep = now


# Atomic check-and-increment. Returns 1 when allowed, 0 when rejected.
# A rejected request does not touch the counter or its TTL.
_HIT_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[1]) or '0')
if current >= tonumber(ARGV[1]) then
  return 0
end
current = redis.call('INCR', KEYS[1])
if current == 1 then
  redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return 1
"""


class RedisRateLimitStore(RateLimitStore):
    """
    Redis-backed counter store shared by all instances.

    The key's TTL is the window: Redis drops the counter when the window
    ends, which restarts the window on the next request.

    Example:
        store = RedisRateLimitStore(Redis.from_url("redis://localhost:6379/0"))
    """

    def __init__(self, redis: Redis, prefix: str = "quizfest:ratelimit:"):
        self._redis = redis
        self._prefix = prefix
        self._script = redis.register_script(_HIT_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisRateLimitStore":
        return cls(Redis.from_url(url, decode_responses=True, socket_connect_timeout=5.0), **kwargs)

    async def hit(self, key: str, max_requests: int, window_seconds: float) -> bool:
        window_ms = max(1, int(window_seconds * 1000))
        result = await self._script(
            keys=[f"{self._prefix}{key}"],
            args=[max_requests, window_ms],
        )
        return int(result) == 1

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()


class RateLimiter:
    """
    Per-route, per-client fixed-window limiter.

    Example:
        limiter = RateLimiter(InMemoryRateLimitStore())
        if not await limiter.allow("login", client_ip, max_requests=5, window_seconds=900):
            raise RateLimitExceededError()
    """

    def __init__(self, store: RateLimitStore):
        self.store = store

    async def allow(
        self,
        route_key: str,
        client_id: str,
        max_requests: int,
        window_seconds: float,
    ) -> bool:
        """
        Count a request and decide whether it may proceed.

        Raises:
            ValueError: If max_requests or window_seconds is not positive
        """
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        return await self.store.hit(f"{route_key}:{client_id}", max_requests, window_seconds)

    async def close(self) -> None:
        await self.store.close()
