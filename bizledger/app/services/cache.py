"""
Caching Service.

Redis-backed cache for heavy ledger reports. Values are strings (callers
serialize); a Redis outage degrades to cache misses.
"""

import logging
from typing import Optional

from redis.exceptions import RedisError

from bizledger.app.core import redis_client as redis_module

logger = logging.getLogger("bizledger.cache")


class CacheService:

    @staticmethod
    async def get(key: str) -> Optional[str]:
        try:
            return await redis_module.redis_client.get(key)
        except RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    @staticmethod
    async def set(key: str, data: str, ttl_seconds: int = 300) -> bool:
        try:
            await redis_module.redis_client.set(key, data, ex=ttl_seconds)
            return True
        except RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            return False

    @staticmethod
    async def delete(key: str) -> bool:
        try:
            await redis_module.redis_client.delete(key)
            return True
        except RedisError as e:
            logger.warning("Cache invalidation failed for %s: %s", key, e)
            return False
