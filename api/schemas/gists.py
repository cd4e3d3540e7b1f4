"""
Request and response schemas for the gist endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PublishRequestBody(BaseModel):
    """Body of ``POST /admin/publish`` (documentation only; validated by the publisher)."""

    topic: str = Field(..., description="Gist topic, 1-500 characters")
    image_url: Optional[str] = Field(None, description="Fallback image URL (http/https)")
    topic_category: Optional[str] = Field(None, description="Category, defaults to Trending")
    source_url: Optional[str] = Field(None, description="Source article URL (http/https)")
    news_published_at: Optional[datetime] = Field(None, description="Publication time of the news")
    trend_id: Optional[UUID] = Field(None, description="Trend record this gist is about")

    class Config:
        json_schema_extra = {
            "example": {
                "topic": "Drake drops a surprise song",
                "topic_category": "Music",
                "trend_id": "5b0f5c9e-5a55-4d2b-9b0c-3f6a1c3f8e11",
            }
        }


class GistResponse(BaseModel):
    """A published gist."""

    id: Optional[UUID] = None
    topic: str
    topic_category: str
    headline: str
    context: str
    narration: str
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    news_published_at: Optional[datetime] = None
    trend_id: Optional[UUID] = None
    audio_url: str
    status: str
    published_at: datetime
    created_at: datetime
    meta: Dict[str, Any] = Field(default_factory=dict)


class PublishEnvelope(BaseModel):
    """Envelope returned by ``POST /admin/publish`` for every outcome."""

    success: bool = Field(..., description="Whether the gist was published")
    gist: Optional[GistResponse] = Field(None, description="Published gist on success")
    error: Optional[str] = Field(None, description="Error message on failure")
    stage: Optional[str] = Field(None, description="Pipeline stage that failed")
    request_id: Optional[str] = Field(None, description="Correlation ID for logs")


class CronTriggerRequest(BaseModel):
    """Optional body of ``POST /cron/generate``."""

    topic: Optional[str] = Field(None, max_length=500, description="Topic for the batch")
    topic_category: Optional[str] = Field(None, description="Category stored on the gists")


class BatchSummaryResponse(BaseModel):
    """Aggregate result of one batch run."""

    success: bool
    generated: int = Field(..., description="Gists published in this run")
    total_candidates: int = Field(..., description="Trend records considered")
    error: Optional[str] = None


class CacheClearRequest(BaseModel):
    """Body of ``POST /admin/cache/clear``."""

    topic: str = Field(..., min_length=1, max_length=500, description="Topic whose entries to drop")


class CacheClearResponse(BaseModel):
    success: bool = True
    cleared: List[str] = Field(default_factory=list, description="Keys that were deleted")


class HealthResponse(BaseModel):
    """Liveness and component availability."""

    status: str = Field(..., description="healthy or degraded")
    version: str
    uptime_seconds: float
    components: Dict[str, bool] = Field(default_factory=dict)
