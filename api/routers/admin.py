"""
Admin endpoints for cache management.

Requires the admin secret.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_cache_repository, verify_admin_secret
from api.schemas.gists import CacheClearRequest, CacheClearResponse
from gist_agent.collectors.aggregator import SOURCES_CACHE_PREFIX
from gist_agent.generation.generator import GIST_CACHE_PREFIX
from gist_agent.storage.interfaces import CacheRepository, StorageError
from gist_agent.validation import make_cache_key

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_secret)],
)


@router.post("/cache/clear", response_model=CacheClearResponse)
async def clear_topic_cache(
    body: CacheClearRequest,
    cache: Optional[CacheRepository] = Depends(get_cache_repository),
) -> CacheClearResponse:
    """
    Drop the cached sources and gist for a topic.

    The next publish for the topic queries the providers and the model again.
    """
    if cache is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache not available",
        )

    cleared = []
    for prefix in (SOURCES_CACHE_PREFIX, GIST_CACHE_PREFIX):
        key = make_cache_key(prefix, body.topic)
        try:
            if await cache.delete(key):
                cleared.append(key)
        except StorageError as e:
            logger.error(f"Failed to clear cache key {key}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to clear cache: {e}",
            )

    logger.info(f"Cleared {len(cleared)} cache entries for '{body.topic}'")
    return CacheClearResponse(cleared=cleared)
