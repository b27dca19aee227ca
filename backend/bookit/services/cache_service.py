"""
Redis caching service for experience listings.

CACHING STRATEGY
================

What we cache:
  - Experience listing responses (JSON-serialized, keyed by the query params)
  - The category list
  - Key prefix: "experiences:"

What we never cache:
  - Slots, availability, booking or promo data. Capacity and promo usage
    counters are read from the database on every request; the booking
    transaction is their only writer.

Invalidation strategy:
  - Experiences are not edited through the API, so entries expire by TTL
  - The seed script clears the prefix after loading new data

All Redis failures degrade to a cache miss; the database stays authoritative.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from bookit.core.config import get_settings
from bookit.core.logging import get_logger
from bookit.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

CACHE_PREFIX = "experiences:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            # Test connection
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_listing_key(**params: Any) -> str:
    query = "&".join(f"{name}={params[name]}" for name in sorted(params))
    return f"{CACHE_PREFIX}list:{query}"


CATEGORIES_KEY = f"{CACHE_PREFIX}categories"


async def get_cached(key: str) -> Optional[Any]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached(key: str, data: Any) -> None:
    """Cache a JSON-serializable payload with the configured TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_experience_cache() -> None:
    """Delete every cached listing and the category list."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{CACHE_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
