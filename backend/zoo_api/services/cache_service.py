"""
Redis caching for the attraction and ride catalogs.

What we cache:
  - GET /atraksi and GET /wahana listings (JSON-serialized)
  - Keys: "facilities:list:atraksi", "facilities:list:wahana"

What we never cache:
  - Remaining capacity. It changes with every booking and a stale figure
    would turn into a rejected or oversold reservation.

Invalidation:
  - Any attraction/ride create, update or delete drops every "facilities:*"
    key after the write has committed
  - TTL as a safety net

Redis is optional. Every failure is logged and the caller falls back to the
database, so a Redis outage degrades latency, not correctness.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from zoo_api.core.config import get_settings
from zoo_api.core.logging import get_logger
from zoo_api.core.metrics import record_cache_operation

logger = get_logger(__name__)

KEY_PREFIX = "facilities:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create the Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client
    settings = get_settings()

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        logger.info("redis_connected", url=settings.REDIS_URL)
        _redis_client = client

    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def _listing_key(facility_type: str) -> str:
    return f"{KEY_PREFIX}list:{facility_type}"


async def get_cached_listing(facility_type: str) -> Optional[list]:
    client = await get_redis()
    if client is None:
        return None

    key = _listing_key(facility_type)
    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        record_cache_operation("get", "error")
        return None

    if data is None:
        record_cache_operation("get", "miss")
        return None
    record_cache_operation("get", "hit")
    return json.loads(data)


async def set_cached_listing(facility_type: str, items: list) -> None:
    client = await get_redis()
    if client is None:
        return

    key = _listing_key(facility_type)
    ttl = get_settings().REDIS_CACHE_TTL
    try:
        await client.setex(key, ttl, json.dumps(items, default=str))
        record_cache_operation("set", "ok")
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))
        record_cache_operation("set", "error")


async def invalidate_facility_cache() -> None:
    client = await get_redis()
    if client is None:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
        record_cache_operation("invalidate", "ok")
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))
        record_cache_operation("invalidate", "error")


async def get_cache_stats() -> dict:
    """Redis statistics for the health endpoint."""
    client = await get_redis()
    if client is None:
        return {"status": "disabled" if not get_settings().REDIS_ENABLED else "unavailable"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
