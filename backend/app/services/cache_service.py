"""Redis cache service for recommendation and trending results."""

import json
import logging
import math
import time
from collections.abc import Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)


class TTLCache:
    """Namespaced Redis cache holding ``{"value", "inserted_at"}`` per key.

    An entry is live while ``clock() - inserted_at < ttl_seconds``. Expiry is
    checked on read against the injected clock; the Redis key expiry only
    reclaims memory. Redis being unreachable reads as a miss.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
        name: str = "cache",
        client: redis.Redis | None = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._redis = client
        self.hits = 0
        self.misses = 0

    async def _get_redis(self) -> redis.Redis | None:
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except (RedisError, OSError) as e:
                logger.warning(f"Redis unavailable, {self.name} disabled: {e}")
                self._redis = None
                return None
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.name}:{key}"

    async def get(self, key: str) -> Any | None:
        """Return the live value for ``key``, or None on miss, expiry or error."""
        try:
            r = await self._get_redis()
            if r is None:
                self.misses += 1
                return None
            raw = await r.get(self._key(key))
            if raw is None:
                self.misses += 1
                return None
            entry = json.loads(raw)
            if self._clock() - entry["inserted_at"] >= self.ttl_seconds:
                await r.delete(self._key(key))
                self.misses += 1
                return None
        except (RedisError, ValueError, KeyError) as e:
            logger.warning(f"{self.name} read failed for {key}: {e}")
            self.misses += 1
            return None
        self.hits += 1
        return entry["value"]

    async def set(self, key: str, value: Any) -> bool:
        """Store ``value`` stamped with the current clock. Returns False on error."""
        entry = {"value": value, "inserted_at": self._clock()}
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(
                self._key(key),
                json.dumps(entry, default=str),
                ex=max(1, math.ceil(self.ttl_seconds)),
            )
            return True
        except RedisError as e:
            logger.warning(f"{self.name} write failed for {key}: {e}")
            return False

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            r = await self._get_redis()
            if r is not None:
                await r.delete(*(self._key(k) for k in keys))
        except RedisError as e:
            logger.warning(f"{self.name} delete failed: {e}")

    async def _keys(self, r: redis.Redis) -> list[str]:
        return [k async for k in r.scan_iter(match=self._key("*"))]

    async def clear(self) -> None:
        """Drop every key in this namespace. Idempotent."""
        try:
            r = await self._get_redis()
            if r is None:
                return
            keys = await self._keys(r)
            if keys:
                await r.delete(*keys)
        except RedisError as e:
            logger.warning(f"{self.name} clear failed: {e}")
            return
        logger.info(f"{self.name} cleared")

    async def size(self) -> int:
        try:
            r = await self._get_redis()
            return len(await self._keys(r)) if r is not None else 0
        except RedisError:
            return 0

    async def stats(self) -> dict:
        return {
            "size": await self.size(),
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None
