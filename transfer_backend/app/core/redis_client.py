"""
Route cache connection.

Resolved driving routes are stored in Redis under ``route:driving:*``
keys for ``route_cache_ttl_seconds``. The cache is optional: routing
treats any Redis failure as a miss, and ``/health`` reports it as down
instead of failing.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from transfer_backend.app.core.config import settings

logger = logging.getLogger("transfers.routing")

# Connections are opened lazily on first command
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """Route cache client, as a FastAPI dependency."""
    return redis_client


async def ping_redis() -> bool:
    """True if the route cache answers, False if it is unreachable."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as e:
        logger.warning("Route cache unreachable: %s", e)
        return False


async def close_redis() -> None:
    """Release the route cache connection pool on shutdown."""
    await redis_client.aclose()
