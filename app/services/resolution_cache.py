"""
Resolution cache (Redis)
========================

Short-TTL cache of resolved SEO documents keyed by ``(host, path)``.

- Only successful resolutions are cached; fallbacks are retried every time
- A cache outage never fails a request: errors are logged and ignored
- Every call is bounded by ``RESOLUTION_CACHE_TIMEOUT``; a slow read is a miss
- Disabled unless ``RESOLUTION_CACHE_ENABLED``
"""

import asyncio
import hashlib
import logging
from typing import Optional

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.config import settings
from app.schemas.seo import ResolvedContent

logger = logging.getLogger("pageroute.cache")

KEY_PREFIX = "seo:resolve"


def cache_key(host: str, path: str) -> str:
    digest = hashlib.md5(path.encode("utf-8")).hexdigest()[:16]
    return f"{KEY_PREFIX}:{host}:{digest}"


class ResolutionCache:
    def __init__(self, client: aioredis.Redis, ttl: int = 60, timeout: float = 0.25):
        self._redis = client
        self.ttl = ttl
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> Optional["ResolutionCache"]:
        if not settings.RESOLUTION_CACHE_ENABLED:
            return None
        timeout = settings.RESOLUTION_CACHE_TIMEOUT
        client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        logger.info("Resolution cache enabled (ttl=%ss, timeout=%ss)", settings.RESOLUTION_CACHE_TTL, timeout)
        return cls(client, ttl=settings.RESOLUTION_CACHE_TTL, timeout=timeout)

    async def get(self, host: str, path: str) -> Optional[ResolvedContent]:
        try:
            raw = await asyncio.wait_for(self._redis.get(cache_key(host, path)), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Cache get timed out for %s%s after %.2fs", host, path, self.timeout)
            return None
        except RedisError as e:
            logger.warning("Cache get error for %s%s: %s", host, path, e)
            return None
        if not raw:
            return None
        try:
            return ResolvedContent.model_validate_json(raw)
        except ValidationError:
            logger.debug("Discarding unreadable cache entry for %s%s", host, path)
            return None

    async def set(self, host: str, path: str, content: ResolvedContent) -> None:
        try:
            await asyncio.wait_for(
                self._redis.setex(cache_key(host, path), self.ttl, content.model_dump_json()),
                self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Cache set timed out for %s%s after %.2fs", host, path, self.timeout)
        except RedisError as e:
            logger.warning("Cache set error for %s%s: %s", host, path, e)

    async def close(self) -> None:
        await self._redis.aclose()
