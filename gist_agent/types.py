"""
Shared type definitions for the Gist Agent pipeline.

This module contains the data models passed between the aggregation,
generation, publishing and orchestration layers. They are the contract
between components so every stage can be tested in isolation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from gist_agent.validation import is_valid_url


TOPIC_MAX_LENGTH = 500
DEFAULT_TOPIC_CATEGORY = "Trending"


# ============================================================================
# Enums
# ============================================================================


class PipelineStage(str, Enum):
    """Stage of a publish invocation that produced a result or an error."""

    VALIDATE_INPUT = "validate_input"
    TREND_LOOKUP = "trend_lookup"
    AI_GENERATE = "ai_generate"
    VALIDATE = "validate"
    IMAGE_HANDLING = "image_handling"
    DB_INSERT = "db_insert"
    INTERNAL = "internal"


class PublishState(str, Enum):
    """States a single publish invocation moves through."""

    RECEIVED = "received"
    TREND_RESOLVED = "trend_resolved"
    GENERATED = "generated"
    VALIDATED = "validated"
    IMAGE_RESOLVED = "image_resolved"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


class ImageSource(str, Enum):
    """Where the final image of a published item came from."""

    TREND = "trend"
    SOURCE_ARTICLE = "source_article"
    PROVIDED = "provided"
    AI_GENERATED = "ai_generated"
    AI_GENERATED_EPHEMERAL = "ai_generated_ephemeral"
    NONE = "none"


# ============================================================================
# Input Records
# ============================================================================


class TrendRecord(BaseModel):
    """A trend discovered by the external ingestion process."""

    id: UUID
    image_url: Optional[str] = None
    processed: bool = False
    created_at: Optional[datetime] = None

    class Config:
        frozen = True


class CacheEntry(BaseModel):
    """A cached value with its absolute expiry (POSIX seconds)."""

    key: str
    value: Any = None
    expires_at: Optional[float] = None
    created_at: float


# ============================================================================
# Source Aggregation
# ============================================================================


class SourceArticle(BaseModel):
    """A news article normalized from a provider payload."""

    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    image: Optional[str] = None
    source: Optional[str] = None
    published_at: Optional[str] = None

    class Config:
        frozen = True

    @property
    def published_timestamp(self) -> float:
        """Publication time as a POSIX timestamp; missing or bad values are epoch."""
        if not self.published_at:
            return 0.0
        try:
            return datetime.fromisoformat(
                self.published_at.replace("Z", "+00:00")
            ).timestamp()
        except ValueError:
            return 0.0


class ProviderFailure(BaseModel):
    """A provider call that did not yield articles."""

    provider: str
    status: Optional[int] = None
    error: str
    details: Optional[str] = None


class ProviderStats(BaseModel):
    """Per-provider outcome of one aggregation round."""

    provider: str
    items: int = 0
    ok: bool = False
    skipped: bool = False


class AggregationResult(BaseModel):
    """Merged result of querying every configured provider."""

    success: bool
    articles: List[SourceArticle] = Field(default_factory=list)
    failures: List[ProviderFailure] = Field(default_factory=list)
    provider_stats: List[ProviderStats] = Field(default_factory=list)

    @property
    def selected(self) -> Optional[SourceArticle]:
        """Most recent article, used as grounding for generation."""
        return self.articles[0] if self.articles else None


# ============================================================================
# Generation
# ============================================================================


class GeneratedContent(BaseModel):
    """Structured narrated content produced by the generator."""

    headline: Optional[str] = None
    summary: Optional[str] = None
    context: Optional[str] = None
    narration: Optional[str] = None
    image_keyword: Optional[str] = None
    ai_generated_image: Optional[str] = None
    used_grounding: bool = False
    is_celebrity: bool = False
    source_url: Optional[str] = None
    source_title: Optional[str] = None
    source_excerpt: Optional[str] = None
    source_name: Optional[str] = None
    source_published_at: Optional[str] = None
    source_image_url: Optional[str] = None

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = (
        "headline",
        "context",
        "narration",
        "image_keyword",
    )

    def missing_fields(self) -> List[str]:
        """Names of required fields that are not non-empty strings."""
        missing = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                missing.append(name)
        return missing


# ============================================================================
# Publishing
# ============================================================================


class PublishRequest(BaseModel):
    """Validated input of a publish invocation."""

    topic: str = Field(..., min_length=1, max_length=TOPIC_MAX_LENGTH)
    image_url: Optional[str] = None
    topic_category: Optional[str] = None
    source_url: Optional[str] = None
    news_published_at: Optional[datetime] = None
    trend_id: Optional[UUID] = None

    @field_validator("topic", mode="before")
    @classmethod
    def strip_topic(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("image_url", "source_url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not is_valid_url(value):
            raise ValueError("must be a valid http(s) URL")
        return value

    @property
    def category(self) -> str:
        return self.topic_category or DEFAULT_TOPIC_CATEGORY


class PublishedItem(BaseModel):
    """A durable content record produced by the publisher."""

    id: Optional[UUID] = None
    topic: str
    topic_category: str = DEFAULT_TOPIC_CATEGORY
    headline: str
    context: str
    narration: str
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    news_published_at: Optional[datetime] = None
    trend_id: Optional[UUID] = None
    audio_url: str = ""
    status: str = "published"
    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    meta: Dict[str, Any] = Field(default_factory=dict)


class PublishResponse(BaseModel):
    """Wire envelope returned by every publish invocation."""

    success: bool
    gist: Optional[PublishedItem] = None
    error: Optional[str] = None
    stage: Optional[str] = None
    request_id: Optional[str] = None
    status_code: int = Field(default=200, exclude=True)


# ============================================================================
# Batch Orchestration
# ============================================================================


class BatchSummary(BaseModel):
    """Aggregate outcome of one orchestrator run."""

    success: bool
    generated: int = 0
    total_candidates: int = 0
    skipped: int = Field(default=0, exclude=True)
    failed: int = Field(default=0, exclude=True)
