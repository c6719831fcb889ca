"""Connection pool construction."""

from __future__ import annotations

import redis.asyncio as redis

from redisn.config import RedisSettings


def create_connection_pool(settings: RedisSettings) -> redis.ConnectionPool:
    """Build a connection pool for subscription sessions.

    Replies are always decoded to ``str`` and RESP2 is forced, so push
    events arrive as plain arrays. When ``pool_timeout_seconds`` is set a
    blocking pool is used and ``get_connection()`` waits for a free slot
    instead of failing.

    Args:
        settings: Redis settings

    Returns:
        A pool; nothing is connected until the first session acquires
    """
    options = {
        "decode_responses": True,
        "protocol": 2,
        "max_connections": settings.max_connections,
        "socket_timeout": settings.socket_timeout,
        "socket_connect_timeout": settings.socket_connect_timeout,
    }

    if settings.pool_timeout_seconds is not None:
        return redis.BlockingConnectionPool.from_url(
            settings.url,
            timeout=settings.pool_timeout_seconds,
            **options,
        )
    return redis.ConnectionPool.from_url(settings.url, **options)
