"""Redis connection pool.

Redis backs the per-IP rate limit, the per-user chip update cooldown and
achievement announcements. None of these hold balances, so the API keeps
serving when Redis was never configured (local runs, tests).
"""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, *, max_connections: int = 50) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis_or_none() -> redis.Redis | None:
    """The Redis client, or None when Redis is not configured."""
    return _pool
