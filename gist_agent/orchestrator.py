"""
Batch orchestrator.

Finds trend records that have no published gist yet and drives each one
through the publisher. One bad record never aborts the batch; a trend that
already has a gist is a benign skip.
"""

import asyncio
import logging
from typing import Optional

from gist_agent.observability.logging import log_context
from gist_agent.observability.metrics import batch_item_counter, batch_run_counter
from gist_agent.publishing.publisher import Publisher
from gist_agent.storage.interfaces import (
    PublishedItemRepository,
    StorageError,
    TrendRecordRepository,
)
from gist_agent.types import BatchSummary, TrendRecord

logger = logging.getLogger(__name__)

GENERATED = "generated"
SKIPPED = "skipped"
FAILED = "failed"


class BatchOrchestrator:
    """Publishes gists for unprocessed trend records in bounded batches."""

    def __init__(
        self,
        publisher: Publisher,
        trends: TrendRecordRepository,
        items: PublishedItemRepository,
        batch_size: int = 10,
        concurrency: int = 1,
        default_topic: str = "Latest trending news",
    ):
        """
        Args:
            publisher: Publish pipeline
            trends: Trend record repository
            items: Published item repository
            batch_size: Maximum candidates per run
            concurrency: Maximum candidates published at once
            default_topic: Topic used when the caller supplies none
        """
        self.publisher = publisher
        self.trends = trends
        self.items = items
        self.batch_size = batch_size
        self.default_topic = default_topic
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run(
        self,
        topic: Optional[str] = None,
        topic_category: Optional[str] = None,
    ) -> BatchSummary:
        """
        Run one batch.

        Args:
            topic: Topic for every gist in this batch
            topic_category: Category stored on the gists

        Returns:
            Counts of generated gists and candidates considered

        Raises:
            StorageError: If candidates cannot be listed
        """
        batch_run_counter.inc()
        topic = (topic or "").strip() or self.default_topic

        candidates = await self.trends.list_unpublished(limit=self.batch_size)
        logger.info(f"Batch run: {len(candidates)} candidate trends, topic='{topic}'")

        outcomes = await asyncio.gather(
            *(self._process(trend, topic, topic_category) for trend in candidates)
        )

        summary = BatchSummary(
            success=True,
            generated=outcomes.count(GENERATED),
            total_candidates=len(candidates),
            skipped=outcomes.count(SKIPPED),
            failed=outcomes.count(FAILED),
        )
        logger.info(
            f"Batch complete: generated={summary.generated} skipped={summary.skipped} "
            f"failed={summary.failed} of {summary.total_candidates}"
        )
        return summary

    async def _process(
        self,
        trend: TrendRecord,
        topic: str,
        topic_category: Optional[str],
    ) -> str:
        async with self._semaphore:
            with log_context(trend_id=str(trend.id)):
                outcome = await self._publish_one(trend, topic, topic_category)
        batch_item_counter.labels(outcome=outcome).inc()
        return outcome

    async def _publish_one(
        self,
        trend: TrendRecord,
        topic: str,
        topic_category: Optional[str],
    ) -> str:
        try:
            if await self.items.exists_for_trend(trend.id):
                logger.info(f"Trend {trend.id} already has a gist, marking processed")
                await self.trends.mark_processed(trend.id)
                return SKIPPED
        except StorageError as e:
            logger.error(f"Re-check failed for trend {trend.id}: {e}")
            return FAILED

        payload = {"topic": topic, "trend_id": str(trend.id)}
        if topic_category:
            payload["topic_category"] = topic_category

        response = await self.publisher.publish(payload)

        if response.success:
            try:
                await self.trends.mark_processed(trend.id)
            except StorageError as e:
                # The gist exists; the anti-join will exclude this trend next run
                logger.error(f"Failed to mark trend {trend.id} processed: {e}")
            logger.info(f"Published gist {response.gist.id} for trend {trend.id}")
            return GENERATED

        if response.status_code == 409:
            logger.info(f"Trend {trend.id} was published concurrently, skipping")
            return SKIPPED

        logger.error(
            f"Failed to publish trend {trend.id} at stage {response.stage}: "
            f"{response.error}"
        )
        return FAILED
