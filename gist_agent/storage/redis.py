"""
Redis cache repository implementation.

This module provides a Redis-based implementation of the CacheRepository
interface. Expiry is enforced by Redis itself, so a read never returns an
entry past its TTL.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from gist_agent.storage.interfaces import (
    BaseCacheRepository,
    ConnectionError,
    StorageError,
)

logger = logging.getLogger(__name__)


class RedisCacheRepository(BaseCacheRepository):
    """Redis implementation of CacheRepository with JSON-encoded values."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        default_ttl: int = 3600,
        max_connections: int = 50,
    ):
        """
        Initialize Redis cache repository.

        Args:
            host: Redis server host
            port: Redis server port
            db: Redis database number (0-15)
            password: Optional authentication password
            default_ttl: Default time-to-live in seconds
            max_connections: Maximum number of connections in the pool
        """
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.default_ttl = default_ttl
        self.max_connections = max_connections
        self._client: Optional[Redis] = None

    async def connect(self) -> Redis:
        """
        Establish connection to Redis.

        Returns:
            Redis client instance

        Raises:
            ConnectionError: If connection fails
        """
        if self._client is not None:
            return self._client

        try:
            self._client = aioredis.from_url(
                f"redis://{self.host}:{self.port}/{self.db}",
                password=self.password,
                encoding="utf-8",
                decode_responses=True,
                max_connections=self.max_connections,
            )

            await self._client.ping()

            logger.info(f"Connected to Redis at {self.host}:{self.port}/{self.db}")
            return self._client

        except (RedisError, OSError) as e:
            self._client = None
            logger.error(f"Failed to connect to Redis: {e}")
            raise ConnectionError(f"Redis connection failed: {e}")

    async def close(self):
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        """Get the Redis client instance."""
        if self._client is None:
            raise StorageError("Redis client not connected. Call connect() first.")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value if found, None otherwise

        Raises:
            StorageError: If retrieval fails
        """
        try:
            data = await self.client.get(key)

            if data is None:
                logger.debug(f"Cache miss: {key}")
                return None

            logger.debug(f"Cache hit: {key}")
            return json.loads(data)

        except json.JSONDecodeError:
            # Unreadable entries are treated like expired ones
            logger.warning(f"Dropping undecodable cache entry '{key}'")
            await self.delete(key)
            return None
        except RedisError as e:
            logger.error(f"Failed to get cache key '{key}': {e}")
            raise StorageError(f"Cache retrieval failed: {e}")

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Set a value in cache.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl_seconds: Time-to-live in seconds (None = use default)

        Returns:
            True if successful

        Raises:
            StorageError: If set operation fails
        """
        try:
            data = json.dumps(value, default=str)
            ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl

            if ttl > 0:
                await self.client.setex(key, ttl, data)
            else:
                await self.client.set(key, data)

            logger.debug(f"Cached key '{key}' with TTL={ttl}s")
            return True

        except RedisError as e:
            logger.error(f"Failed to set cache key '{key}': {e}")
            raise StorageError(f"Cache set failed: {e}")

    async def delete(self, key: str) -> bool:
        """
        Delete a key from cache.

        Returns:
            True if deleted, False if key didn't exist

        Raises:
            StorageError: If deletion fails
        """
        try:
            result = await self.client.delete(key)
            deleted = result > 0

            if deleted:
                logger.debug(f"Deleted cache key: {key}")

            return deleted

        except RedisError as e:
            logger.error(f"Failed to delete cache key '{key}': {e}")
            raise StorageError(f"Cache deletion failed: {e}")
