"""
Redis-backed state store for multi-instance deployments.

Every rate-limit and quota decision runs as one Lua script, so concurrent
instances see a linearizable history per key. Cache TTL is enforced by Redis
(`SET ... EX`).
"""

import uuid
from typing import Optional

import redis.asyncio as redis

from app.core.logger import get_logger
from app.services.state.base import DailyDecision, StateStore, WindowDecision

logger = get_logger(__name__)

SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local ceiling = tonumber(ARGV[3])
redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
if count >= ceiling then
  local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
  return {0, count, oldest[2] or ARGV[1]}
end
redis.call('ZADD', key, now, ARGV[4])
redis.call('PEXPIRE', key, math.ceil(window * 1000))
return {1, count + 1, ''}
"""

DAILY_COUNTER_SCRIPT = """
local count = tonumber(redis.call('GET', KEYS[1]) or '0')
if count >= tonumber(ARGV[1]) then
  return {0, count}
end
count = redis.call('INCR', KEYS[1])
if count == 1 then
  redis.call('EXPIRE', KEYS[1], ARGV[2])
end
return {1, count}
"""


class RedisStateStore(StateStore):
    def __init__(self, redis_url: str = "redis://localhost:6379", key_prefix: str = "tg:"):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.redis_client: Optional[redis.Redis] = None
        self._window_script = None
        self._daily_script = None

    async def connect(self) -> None:
        """Connect to Redis and register the decision scripts."""
        try:
            self.redis_client = redis.from_url(self.redis_url, encoding="utf8", decode_responses=True)
            await self.redis_client.ping()
            self._window_script = self.redis_client.register_script(SLIDING_WINDOW_SCRIPT)
            self._daily_script = self.redis_client.register_script(DAILY_COUNTER_SCRIPT)
            logger.info(f"[RedisStateStore] Connected to Redis at {self.redis_url}")
        except Exception as e:
            logger.error(f"[RedisStateStore] Failed to connect to Redis: {e}")
            raise

    async def close(self) -> None:
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("[RedisStateStore] Disconnected from Redis")

    def _client(self) -> redis.Redis:
        if self.redis_client is None:
            raise RuntimeError("RedisStateStore is not connected")
        return self.redis_client

    async def admit_sliding_window(self, key: str, now: float, window_seconds: float, ceiling: int) -> WindowDecision:
        self._client()
        member = f"{now:.6f}:{uuid.uuid4().hex}"
        allowed, count, oldest = await self._window_script(
            keys=[f"{self.key_prefix}rl:{key}"],
            args=[now, window_seconds, ceiling, member],
        )
        if int(allowed) == 1:
            return WindowDecision(allowed=True, count=int(count))
        return WindowDecision(allowed=False, count=int(count), oldest=float(oldest))

    async def consume_daily(self, key: str, day: str, ceiling: int, ttl_seconds: int) -> DailyDecision:
        self._client()
        allowed, count = await self._daily_script(
            keys=[f"{self.key_prefix}quota:{key}:{day}"],
            args=[ceiling, ttl_seconds],
        )
        return DailyDecision(allowed=int(allowed) == 1, count=int(count))

    async def get_cached(self, key: str) -> Optional[str]:
        return await self._client().get(f"{self.key_prefix}{key}")

    async def set_cached(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client().set(f"{self.key_prefix}{key}", value, ex=ttl_seconds)
