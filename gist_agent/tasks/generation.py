"""Celery task that runs one batch of gist generation."""

import asyncio
import logging
from typing import Any, Dict, Optional

from gist_agent.factory import PipelineFactory
from gist_agent.tasks import app

logger = logging.getLogger(__name__)


@app.task(name="gist_agent.tasks.generation.generate_pending_gists_task")
def generate_pending_gists_task(
    topic: Optional[str] = None,
    topic_category: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Publish gists for unprocessed trend records.

    Args:
        topic: Topic for the batch; the configured default when omitted
        topic_category: Category stored on the gists

    Returns:
        ``{success, generated, total_candidates}``
    """
    logger.info("Starting scheduled gist generation")
    summary = asyncio.run(_run_batch(topic, topic_category))
    logger.info(
        f"Scheduled generation complete: {summary['generated']} of "
        f"{summary['total_candidates']} candidates"
    )
    return summary


async def _run_batch(
    topic: Optional[str], topic_category: Optional[str]
) -> Dict[str, Any]:
    factory = PipelineFactory()
    try:
        await factory.start()
        summary = await factory.orchestrator.run(topic=topic, topic_category=topic_category)
        return summary.model_dump()
    finally:
        await factory.close()
