"""
Storage layer interface definitions.

This module defines the Protocol interfaces that all storage implementations
must follow. Pipeline stages receive these interfaces by injection so tests
can substitute in-memory implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Protocol
from uuid import UUID

from gist_agent.types import PublishedItem, TrendRecord


# ============================================================================
# Repository Interfaces (Protocols)
# ============================================================================


class CacheRepository(Protocol):
    """Interface for key/value caching with TTL expiry."""

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        An entry past its expiry is removed and reported as absent.

        Args:
            key: Cache key

        Returns:
            Cached value if found and unexpired, None otherwise
        """
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Upsert a value in cache; the last write wins.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl_seconds: Time-to-live in seconds

        Returns:
            True if successful
        """
        ...

    async def delete(self, key: str) -> bool:
        """Delete a key from cache."""
        ...


class TrendRecordRepository(Protocol):
    """Interface for reading trend records and flipping their processed flag."""

    async def get(self, trend_id: UUID) -> Optional[TrendRecord]:
        """Retrieve a trend record by ID."""
        ...

    async def list_unpublished(self, limit: int = 10) -> List[TrendRecord]:
        """
        Trend records with ``processed = false`` and no published item.

        Args:
            limit: Maximum number of records

        Returns:
            Candidates, newest first
        """
        ...

    async def mark_processed(self, trend_id: UUID) -> bool:
        """Set ``processed = true`` on a trend record."""
        ...


class PublishedItemRepository(Protocol):
    """Interface for persisting published items."""

    async def insert(self, item: PublishedItem) -> PublishedItem:
        """
        Insert a published item.

        Args:
            item: Item to persist

        Returns:
            The persisted item with its generated ID

        Raises:
            IntegrityError: If the trend already has a published item
            StorageError: If the write fails
        """
        ...

    async def exists_for_trend(self, trend_id: UUID) -> bool:
        """Check whether a published item references the trend."""
        ...


class ObjectStorage(Protocol):
    """Interface for durable binary object storage."""

    async def put(
        self,
        data: bytes,
        key: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Store bytes and return their public URL.

        Raises:
            StorageError: If the upload fails
        """
        ...


# ============================================================================
# Abstract Base Classes
# ============================================================================


class BaseCacheRepository(ABC):
    """Abstract base class for cache implementations."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(
        self, key: str, value: Any, ttl_seconds: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass


# ============================================================================
# Exceptions
# ============================================================================


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConnectionError(StorageError):
    """Exception for connection failures."""

    pass


class IntegrityError(StorageError):
    """Exception for data integrity violations."""

    pass
