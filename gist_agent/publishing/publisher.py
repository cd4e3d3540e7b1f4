"""
Publisher.

Runs one publish invocation end to end: validate the request, resolve the
linked trend, generate content, validate it, resolve the image and persist
the item. Each stage returns a ``StageResult``; the first failure ends the
run and is converted into the response envelope. ``publish`` never raises.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from gist_agent.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    PersistenceError,
    PipelineError,
    StageResult,
    UpstreamError,
    ValidationError,
    safe_status,
)
from gist_agent.generation.generator import ContentGenerator
from gist_agent.llm.client import LLMError, LLMResponseFormatError
from gist_agent.observability.logging import log_context
from gist_agent.observability.metrics import record_publish, track_publish_duration
from gist_agent.publishing.images import ImageDecision, ImageResolver, resolve_image
from gist_agent.storage.interfaces import (
    IntegrityError,
    PublishedItemRepository,
    StorageError,
    TrendRecordRepository,
)
from gist_agent.types import (
    GeneratedContent,
    PipelineStage,
    PublishedItem,
    PublishRequest,
    PublishResponse,
    PublishState,
    TrendRecord,
)
from gist_agent.validation import is_valid_url

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _describe_validation_error(error: PydanticValidationError) -> str:
    parts = []
    for detail in error.errors():
        field = ".".join(str(loc) for loc in detail["loc"]) or "request"
        parts.append(f"{field}: {detail['msg']}")
    return "Invalid request: " + "; ".join(parts)


class Publisher:
    """Turns a publish request into exactly one persisted item, or a tagged error."""

    def __init__(
        self,
        generator: ContentGenerator,
        trends: TrendRecordRepository,
        items: PublishedItemRepository,
        image_resolver: ImageResolver,
    ):
        self.generator = generator
        self.trends = trends
        self.items = items
        self.image_resolver = image_resolver

    async def publish(
        self, payload: Any, request_id: Optional[str] = None
    ) -> PublishResponse:
        """
        Publish a gist.

        Args:
            payload: Raw request body
            request_id: Correlation ID; generated when omitted

        Returns:
            Envelope with the created item (status 201) or the error and the
            stage that produced it
        """
        request_id = request_id or uuid4().hex
        with log_context(request_id=request_id), track_publish_duration():
            try:
                result = await self._run(payload, request_id)
            except Exception as e:
                logger.exception(f"[stage:{PipelineStage.INTERNAL.value}] Unexpected error")
                result = StageResult.failure(
                    InternalError(f"Unexpected error: {e}", PipelineStage.INTERNAL)
                )

        return self._to_response(result, request_id)

    async def _run(
        self, payload: Any, request_id: str
    ) -> StageResult[PublishedItem]:
        state = PublishState.RECEIVED

        request_result = self._validate_request(payload)
        if not request_result.ok:
            return self._fail(state, request_result)
        request = request_result.value

        trend_result = await self._resolve_trend(request)
        if not trend_result.ok:
            return self._fail(state, trend_result)
        trend = trend_result.value
        if trend is not None:
            state = self._advance(state, PublishState.TREND_RESOLVED)

        with log_context(trend_id=str(trend.id) if trend else None):
            generated = await self._generate(request.topic)
            if not generated.ok:
                return self._fail(state, generated)
            state = self._advance(state, PublishState.GENERATED)
            content = generated.value

            validated = self._validate_content(content)
            if not validated.ok:
                return self._fail(state, validated)
            state = self._advance(state, PublishState.VALIDATED)

            image = await self._resolve_image(content, trend, request.image_url)
            if not image.ok:
                return self._fail(state, image)
            state = self._advance(state, PublishState.IMAGE_RESOLVED)

            item = self._build_item(request, content, image.value, trend, request_id)
            persisted = await self._persist(item, trend)
            if not persisted.ok:
                return self._fail(state, persisted)
            state = self._advance(state, PublishState.PERSISTED)

        self._advance(state, PublishState.DONE)
        return persisted

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate_request(self, payload: Any) -> StageResult[PublishRequest]:
        if not isinstance(payload, dict):
            return StageResult.failure(
                ValidationError("Request body must be a JSON object", PipelineStage.VALIDATE_INPUT)
            )
        try:
            return StageResult.success(PublishRequest(**payload))
        except PydanticValidationError as e:
            return StageResult.failure(
                ValidationError(_describe_validation_error(e), PipelineStage.VALIDATE_INPUT)
            )

    async def _resolve_trend(
        self, request: PublishRequest
    ) -> StageResult[Optional[TrendRecord]]:
        if request.trend_id is None:
            return StageResult.success(None)

        stage = PipelineStage.TREND_LOOKUP
        logger.info(f"[stage:{stage.value}] START trend_id={request.trend_id}")
        try:
            trend = await self.trends.get(request.trend_id)
            if trend is None:
                return StageResult.failure(
                    NotFoundError(f"Trend {request.trend_id} not found", stage)
                )
            if await self.items.exists_for_trend(trend.id):
                return StageResult.failure(
                    ConflictError(f"Trend {trend.id} already has a published gist", stage)
                )
        except StorageError as e:
            return StageResult.failure(PersistenceError(str(e), stage, code=e.code))

        logger.info(f"[stage:{stage.value}] OK image_url={trend.image_url}")
        return StageResult.success(trend)

    async def _generate(self, topic: str) -> StageResult[GeneratedContent]:
        stage = PipelineStage.AI_GENERATE
        logger.info(f"[stage:{stage.value}] START topic='{topic}'")
        try:
            content = await self.generator.generate(topic)
        except LLMResponseFormatError as e:
            return StageResult.failure(
                UpstreamError(str(e), stage, code="invalid_ai_response")
            )
        except LLMError as e:
            return StageResult.failure(UpstreamError(str(e), stage, code="llm_error"))
        except Exception as e:
            logger.exception(f"[stage:{stage.value}] Generation failed unexpectedly")
            return StageResult.failure(
                UpstreamError(f"Content generation failed: {e}", stage, code="generation_error")
            )

        logger.info(
            f"[stage:{stage.value}] OK used_grounding={content.used_grounding} "
            f"ai_image={content.ai_generated_image is not None}"
        )
        return StageResult.success(content)

    def _validate_content(self, content: GeneratedContent) -> StageResult[GeneratedContent]:
        missing = content.missing_fields()
        if missing:
            return StageResult.failure(
                ValidationError(
                    f"Generated content missing required field(s): {', '.join(missing)}",
                    PipelineStage.VALIDATE,
                    status_code=422,
                )
            )
        return StageResult.success(content)

    async def _resolve_image(
        self,
        content: GeneratedContent,
        trend: Optional[TrendRecord],
        provided_image_url: Optional[str],
    ) -> StageResult[ImageDecision]:
        stage = PipelineStage.IMAGE_HANDLING
        decision = await self.image_resolver.resolve(content, trend, provided_image_url)
        logger.info(f"[stage:{stage.value}] OK source={decision.source.value} url={decision.url}")
        return StageResult.success(decision)

    async def _persist(
        self, item: PublishedItem, trend: Optional[TrendRecord]
    ) -> StageResult[PublishedItem]:
        stage = PipelineStage.DB_INSERT

        if trend is not None:
            expected = resolve_image(trend=trend).url
            if item.image_url != expected:
                logger.warning(
                    f"[stage:{stage.value}] Image {item.image_url} does not match trend "
                    f"{trend.id}, using {expected}"
                )
                item = item.model_copy(update={"image_url": expected})

        try:
            saved = await self.items.insert(item)
        except IntegrityError as e:
            return StageResult.failure(
                ConflictError(
                    f"Trend {item.trend_id} already has a published gist",
                    stage,
                    code=e.code,
                )
            )
        except StorageError as e:
            return StageResult.failure(PersistenceError(str(e), stage, code=e.code))

        logger.info(f"[stage:{stage.value}] OK id={saved.id}")
        return StageResult.success(saved)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_item(
        self,
        request: PublishRequest,
        content: GeneratedContent,
        image: ImageDecision,
        trend: Optional[TrendRecord],
        request_id: str,
    ) -> PublishedItem:
        source_url = request.source_url
        if source_url is None and is_valid_url(content.source_url):
            source_url = content.source_url

        return PublishedItem(
            topic=request.topic,
            topic_category=request.category,
            headline=content.headline,
            context=content.context,
            narration=content.narration,
            image_url=image.url,
            source_url=source_url,
            news_published_at=(
                request.news_published_at
                or _parse_timestamp(content.source_published_at)
            ),
            trend_id=trend.id if trend else None,
            meta={
                "summary": content.summary,
                "source_title": content.source_title,
                "source_excerpt": content.source_excerpt,
                "source_name": content.source_name,
                "source_image_url": content.source_image_url,
                "used_grounding": content.used_grounding,
                "is_celebrity": content.is_celebrity,
                "ai_generated_image": content.ai_generated_image,
                "image_source": image.source.value,
                "request_id": request_id,
            },
        )

    @staticmethod
    def _advance(current: PublishState, new: PublishState) -> PublishState:
        logger.debug(f"Publish state {current.value} -> {new.value}")
        return new

    @staticmethod
    def _fail(state: PublishState, result: StageResult) -> StageResult:
        error = result.error
        logger.error(
            f"[stage:{error.stage.value}] ERROR after {state.value}: {error.message}"
        )
        return result

    @staticmethod
    def _to_response(
        result: StageResult[PublishedItem], request_id: str
    ) -> PublishResponse:
        if result.ok:
            record_publish(PipelineStage.DB_INSERT.value, "success")
            return PublishResponse(
                success=True,
                gist=result.value,
                request_id=request_id,
                status_code=201,
            )

        error: PipelineError = result.error
        record_publish(error.stage.value, "failure")
        return PublishResponse(
            success=False,
            error=error.message,
            stage=error.stage.value,
            request_id=request_id,
            status_code=safe_status(error.status_code),
        )
