"""
Redis connection for the report cache.

Callers go through `redis_client` at call time (not a bound import) so the
client can be replaced in tests.
"""

import logging
import redis.asyncio as redis
from bizledger.app.core.config import settings

logger = logging.getLogger("bizledger.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_connect_timeout=2,
)


async def ping_redis() -> bool:
    try:
        return bool(await redis_client.ping())
    except redis.RedisError as e:
        logger.warning("Redis unreachable at %s: %s", settings.redis_url, e)
        return False


async def close_redis() -> None:
    await redis_client.aclose()
