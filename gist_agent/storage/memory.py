"""
In-memory cache repository.

Used as the default cache in tests and for embedded runs without Redis. Entries
carry an absolute expiry. They are removed when read past it, and every
write sweeps out whatever else has expired.
"""

import copy
import logging
import time
from typing import Any, Callable, Dict, Optional

from gist_agent.storage.interfaces import BaseCacheRepository
from gist_agent.types import CacheEntry

logger = logging.getLogger(__name__)


class InMemoryCacheRepository(BaseCacheRepository):
    """Process-local cache with TTL expiry."""

    def __init__(
        self,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            default_ttl: Default time-to-live in seconds
            clock: Returns the current time in seconds; injectable for tests
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            logger.debug(f"Cache entry expired: {key}")
            self._entries.pop(key, None)
            return None

        return copy.deepcopy(entry.value)

    async def set(
        self, key: str, value: Any, ttl_seconds: Optional[int] = None
    ) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        now = self._clock()
        self._sweep(now)
        self._entries[key] = CacheEntry(
            key=key,
            value=copy.deepcopy(value),
            expires_at=now + ttl if ttl > 0 else None,
            created_at=now,
        )
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def _sweep(self, now: float) -> None:
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.expires_at is not None and now >= entry.expires_at
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")

    def __len__(self) -> int:
        return len(self._entries)
