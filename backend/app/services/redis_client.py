"""Redis-backed cache for per-user progress statistics.

Stats responses are cheap to rebuild, so every helper here degrades to a
cache miss (or a no-op) when Redis is unreachable.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

STATS_KEY_PREFIX = "progress-stats"

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Shared client; its connection pool is created on first use."""
    global _client

    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
        logger.info("Redis client initialized")
    return _client


async def close_redis() -> None:
    """Close the shared client together with its pool."""
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis client closed")


def stats_cache_key(user_id: str) -> str:
    return f"{STATS_KEY_PREFIX}:{user_id}"


async def get_cached_stats(user_id: str) -> dict[str, Any] | None:
    """Cached stats response for *user_id*, or None."""
    key = stats_cache_key(user_id)
    try:
        client = await get_redis()
        raw = await client.get(key)
        return json.loads(raw) if raw else None
    except (redis.RedisError, ValueError):
        logger.debug("Stats cache read failed for %s", key, exc_info=True)
        return None


async def store_stats(user_id: str, response: dict[str, Any]) -> None:
    """Cache a stats response for ``stats_cache_ttl_seconds``."""
    key = stats_cache_key(user_id)
    try:
        client = await get_redis()
        await client.setex(key, settings.stats_cache_ttl_seconds, json.dumps(response, default=str))
    except redis.RedisError:
        logger.debug("Stats cache write failed for %s", key, exc_info=True)


async def invalidate_stats(user_id: str) -> None:
    """Drop the cached stats after the user's ledger changes."""
    key = stats_cache_key(user_id)
    try:
        client = await get_redis()
        await client.delete(key)
    except redis.RedisError:
        logger.debug("Stats cache invalidation failed for %s", key, exc_info=True)
