"""
Mock storage implementations for testing.

These mocks provide in-memory implementations of the trend record, published
item and object storage interfaces. The published item mock enforces the
same one-gist-per-trend constraint as the database index.
"""

from typing import Dict, List, Optional
from uuid import UUID, uuid4

from gist_agent.storage.interfaces import IntegrityError, StorageError
from gist_agent.types import PublishedItem, TrendRecord


class MockTrendRecordRepository:
    """In-memory mock implementation of TrendRecordRepository."""

    def __init__(self, trends: Optional[List[TrendRecord]] = None):
        self._trends: Dict[UUID, TrendRecord] = {}
        self._order: List[UUID] = []
        self.items: Optional["MockPublishedItemRepository"] = None
        for trend in trends or []:
            self.add(trend)

    def add(self, trend: TrendRecord) -> TrendRecord:
        self._trends[trend.id] = trend
        self._order.insert(0, trend.id)
        return trend

    def create(self, image_url: Optional[str] = None) -> TrendRecord:
        """Add a new unprocessed trend record."""
        return self.add(TrendRecord(id=uuid4(), image_url=image_url))

    async def get(self, trend_id: UUID) -> Optional[TrendRecord]:
        return self._trends.get(trend_id)

    async def list_unpublished(self, limit: int = 10) -> List[TrendRecord]:
        results = []
        for trend_id in self._order:
            trend = self._trends[trend_id]
            if trend.processed:
                continue
            if self.items is not None and self.items.count_for_trend(trend_id):
                continue
            results.append(trend)
        return results[:limit]

    async def mark_processed(self, trend_id: UUID) -> bool:
        trend = self._trends.get(trend_id)
        if trend is None:
            return False
        self._trends[trend_id] = trend.model_copy(update={"processed": True})
        return True

    def is_processed(self, trend_id: UUID) -> bool:
        return self._trends[trend_id].processed


class MockPublishedItemRepository:
    """In-memory mock implementation of PublishedItemRepository."""

    def __init__(self):
        self.saved: List[PublishedItem] = []
        self.fail_with: Optional[StorageError] = None

    async def insert(self, item: PublishedItem) -> PublishedItem:
        if self.fail_with is not None:
            raise self.fail_with
        if item.trend_id is not None and self.count_for_trend(item.trend_id):
            raise IntegrityError(
                "duplicate key value violates unique constraint", code="23505"
            )
        saved = item.model_copy(update={"id": uuid4()})
        self.saved.append(saved)
        return saved

    async def exists_for_trend(self, trend_id: UUID) -> bool:
        return self.count_for_trend(trend_id) > 0

    def count_for_trend(self, trend_id: UUID) -> int:
        return sum(1 for item in self.saved if item.trend_id == trend_id)


class MockObjectStorage:
    """Object storage that keeps uploads in memory."""

    def __init__(self, base_url: str = "https://cdn.example.com", fail: bool = False):
        self.base_url = base_url
        self.fail = fail
        self.objects: Dict[str, bytes] = {}

    async def put(
        self,
        data: bytes,
        key: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> str:
        if self.fail:
            raise StorageError("upload refused")
        key = key or f"objects/{uuid4().hex}"
        self.objects[key] = data
        return f"{self.base_url}/{key}"
