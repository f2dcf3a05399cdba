"""
Redis caching utilities for the application.
"""
from typing import Optional, Dict, Any, Union
import json
import logging
import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis client wrapper with connection pooling and error handling.

    Cache failures are never fatal: reads degrade to a miss and writes
    are dropped, with a warning.
    """

    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        """Initialize the Redis client.

        Args:
            url: Redis connection URL
            client: Optional pre-built client (for testing)
        """
        self._url = url
        self._redis = client or redis.Redis.from_url(
            url,
            password=settings.REDIS_PASSWORD,
            db=settings.REDIS_DB,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
            retry_on_timeout=settings.REDIS_RETRY_ON_TIMEOUT,
            decode_responses=True,
        )

    async def ping(self) -> bool:
        """Check connectivity; raises if Redis is unreachable."""
        return await self._redis.ping()

    async def close(self):
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get a value from Redis.

        Args:
            key: Cache key

        Returns:
            The cached value or None if not found
        """
        try:
            value = await self._redis.get(key)
            return json.loads(value) if value else None
        except Exception as e:
            logger.warning(f"Redis get operation failed for {key}: {str(e)}")
            return None

    async def set(self, key: str, value: Union[Dict[str, Any], Any], expire: int = 3600) -> bool:
        """Set a value in Redis.

        Args:
            key: Cache key
            value: Value to cache (dict or Pydantic model)
            expire: Expiration time in seconds

        Returns:
            True if successful, False otherwise
        """
        try:
            # Handle Pydantic models and dicts
            serialized = json.dumps(value.model_dump() if hasattr(value, 'model_dump') else value)
            return bool(await self._redis.set(key, serialized, ex=expire))
        except Exception as e:
            logger.warning(f"Redis set operation failed for {key}: {str(e)}")
            return False


async def init_redis() -> Optional[RedisCache]:
    """Create the shared cache handle, or None when caching is disabled."""
    if not (settings.ENABLE_REDIS and settings.ENABLE_CACHING):
        return None
    if not settings.REDIS_URL:
        raise RuntimeError("REDIS_URL is not configured in settings")
    cache = RedisCache(settings.REDIS_URL)
    await cache.ping()
    return cache


async def close_redis(cache: Optional[RedisCache]):
    """Close the Redis connection."""
    if cache is not None:
        await cache.close()
