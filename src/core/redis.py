# ruff: noqa: PLW0603
"""Redis connection management and small JSON cache helpers.

Redis is optional: when it is unreachable at startup the app runs without a
cache and every helper here degrades to a no-op.
"""

from typing import Any

import orjson
import redis.asyncio as redis

from src.config import get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)

# Global Redis client
_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection pool."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance."""
    return _redis_client


# =============================================================================
# Cache helpers
# =============================================================================


def external_points_key(item_id: str) -> str:
    """Cache key for the upstream points of an external story or comment."""
    return f"hn:points:{item_id}"


async def cache_get_json(key: str) -> Any | None:
    """Read a JSON value, returning None on miss or when Redis is unavailable."""
    client = get_redis()
    if client is None:
        return None
    try:
        raw = await client.get(key)
    except redis.RedisError as e:
        logger.warning("cache_read_failed", key=key, error=str(e))
        return None
    return orjson.loads(raw) if raw is not None else None


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    """Write a JSON value with a TTL in seconds."""
    client = get_redis()
    if client is None:
        return
    try:
        await client.set(key, orjson.dumps(value).decode(), ex=ttl)
    except redis.RedisError as e:
        logger.warning("cache_write_failed", key=key, error=str(e))
