"""Redis connection pool and pub/sub helpers."""

import json
import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_redis_optional() -> redis.Redis | None:
    """Get the Redis client, or None when Redis is not configured."""
    return _pool


async def publish_event(client: object | None, channel: str, payload: dict) -> None:
    """Publish a JSON payload on a pub/sub channel. Failures are logged, not raised."""
    if client is None:
        return
    try:
        await client.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish %s event", channel, exc_info=True)
