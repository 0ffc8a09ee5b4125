"""
Counter stores for rate limiting

Redis holds the counters when a URL is configured, so every worker process
shares the same windows. Without Redis, or when it cannot be reached at
startup, counters live in process memory.
"""
import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

logger = structlog.get_logger()


class MemoryCounterStore:
    """In-process counters with per-key expiry"""

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 10000):
        self.clock = clock
        self.max_entries = max_entries
        self._counters: Dict[str, Tuple[int, float]] = {}

    async def incr(self, key: str, ttl: int) -> int:
        """Increment ``key``, starting a new ``ttl`` window when it is absent or expired"""
        await asyncio.sleep(0)
        now = self.clock()
        count, expires_at = self._counters.get(key, (0, 0.0))
        if expires_at <= now:
            self._evict_expired(now)
            count, expires_at = 0, now + ttl
        count += 1
        self._counters[key] = (count, expires_at)
        return count

    def _evict_expired(self, now: float) -> None:
        if len(self._counters) < self.max_entries:
            return
        self._counters = {k: v for k, v in self._counters.items() if v[1] > now}

    async def close(self) -> None:
        self._counters.clear()


class RedisCounterStore:
    """
    Redis-backed counters

    Connection checked once at startup, callers fall back to memory when it
    fails. A Redis error on a later request is logged and the request is let
    through rather than failing the caller.
    """

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.client = client
        self.connected = client is not None

    async def connect(self) -> bool:
        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
            )
            await self.client.ping()
            self.connected = True
            logger.info("Redis connection established", url=self.redis_url)
            return True
        except Exception as e:
            logger.error("Failed to connect to Redis", url=self.redis_url, error=str(e))
            self.connected = False
            return False

    async def incr(self, key: str, ttl: int) -> int:
        """Increment ``key`` and start its ``ttl`` window on the first hit

        INCR and EXPIRE NX run in one MULTI block, so a key recreated by INCR
        always gets an expiry. Returns 0 when Redis cannot be reached.
        """
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl, nx=True)
                count, _ = await pipe.execute()
            return int(count)
        except RedisError as e:
            logger.error("Redis counter update failed, request not counted", error=str(e))
            return 0

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.connected = False
            logger.info("Redis connection closed")


async def create_counter_store(redis_url: str):
    """Redis store when configured and reachable, memory store otherwise"""
    if redis_url:
        store = RedisCounterStore(redis_url)
        if await store.connect():
            return store
        logger.warning("Redis unavailable, rate-limit counters kept in memory")
    return MemoryCounterStore()
