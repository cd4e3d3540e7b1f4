"""
Storage layer for the gist pipeline.

This package provides interfaces and implementations for the cache, trend
records, published items and object storage.
"""

from gist_agent.storage.interfaces import (
    CacheRepository,
    ConnectionError,
    IntegrityError,
    ObjectStorage,
    PublishedItemRepository,
    StorageError,
    TrendRecordRepository,
)
from gist_agent.storage.memory import InMemoryCacheRepository

__all__ = [
    # Interfaces
    "CacheRepository",
    "TrendRecordRepository",
    "PublishedItemRepository",
    "ObjectStorage",
    # Exceptions
    "StorageError",
    "ConnectionError",
    "IntegrityError",
    # Implementations
    "InMemoryCacheRepository",
]
