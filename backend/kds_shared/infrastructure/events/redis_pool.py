"""
Process-wide async Redis client used for event publishing.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis
from redis.exceptions import RedisError

from kds_shared.config.settings import settings, REDIS_URL
from kds_shared.config.logging import get_logger

logger = get_logger(__name__)

_client: redis.Redis | None = None
_client_lock = asyncio.Lock()


def _build_client() -> redis.Redis:
    return redis.from_url(
        REDIS_URL,
        decode_responses=True,
        max_connections=settings.redis_pool_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
        health_check_interval=30,
    )


async def get_redis_pool() -> redis.Redis:
    """The shared client, created on first use."""
    global _client
    if _client is None:
        async with _client_lock:
            if _client is None:
                _client = _build_client()
                logger.info("Redis client created", max_connections=settings.redis_pool_max_connections)
    return _client


async def close_redis_pool() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
        logger.info("Redis client closed")


async def check_redis_health(timeout: float = 3.0) -> dict:
    """PING with a deadline. Reports failures in the result instead of raising."""
    try:
        client = await get_redis_pool()
        await asyncio.wait_for(client.ping(), timeout=timeout)
    except asyncio.TimeoutError:
        return {"status": "unhealthy", "error": f"no PONG within {timeout}s"}
    except (RedisError, OSError) as e:
        logger.warning("Redis health check failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "max_connections": settings.redis_pool_max_connections}
