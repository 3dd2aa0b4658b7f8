"""
Redis connection management for realtime alert fan-out.
"""

import os
from typing import Optional
import redis.asyncio as redis
import logging

logger = logging.getLogger(__name__)

# Redis connection URL from environment
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

# Global Redis connection instance
_redis_cache: Optional[redis.Redis] = None


async def get_redis_cache() -> redis.Redis:
    """
    Returns the shared Redis connection instance.

    Creates a new connection pool if one doesn't exist.
    """
    global _redis_cache

    if _redis_cache is None:
        try:
            client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
            )

            # Test the connection
            await client.ping()
            _redis_cache = client
            logger.info("Redis connection established successfully")

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    return _redis_cache


async def close_redis_connection():
    """
    Closes the Redis connection gracefully during application shutdown.
    """
    global _redis_cache

    if _redis_cache:
        await _redis_cache.aclose()
        _redis_cache = None
        logger.info("Redis connection closed")


async def health_check_redis() -> dict:
    """
    Performs a health check on the Redis connection.
    """
    status = {"status": "disconnected", "error": None}

    try:
        client = await get_redis_cache()
        await client.ping()
        status["status"] = "connected"
    except Exception as e:
        status["error"] = str(e)

    return status
