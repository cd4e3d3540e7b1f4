"""
Content generator.

Turns a topic into a structured, narrated gist: looks up the gist cache,
grounds the request on the most recent news article when one exists, asks the
language model for the four content fields and, only as a last resort,
generates an illustration.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from gist_agent.collectors.aggregator import SourceAggregator
from gist_agent.generation import prompts
from gist_agent.llm.client import LLMError, OpenAIClient
from gist_agent.observability.metrics import record_cache_lookup
from gist_agent.storage.interfaces import CacheRepository, StorageError
from gist_agent.types import GeneratedContent, SourceArticle
from gist_agent.validation import is_usable_source_image, make_cache_key, sanitize_text

logger = logging.getLogger(__name__)

GIST_CACHE_PREFIX = "gist"


def build_article_text(article: SourceArticle, max_length: int = 4000) -> str:
    """Sanitized title, description and content of an article, capped in length."""
    parts = [article.title, article.description, article.content]
    joined = "\n\n".join(part for part in parts if part)
    return sanitize_text(joined)[:max_length]


def summarize_context(context: Optional[str], max_length: int = 150) -> str:
    """Shorten ``context`` to ``max_length`` characters plus an ellipsis."""
    context = context or ""
    if len(context) > max_length:
        return context[:max_length].strip() + "..."
    return context


def _text_field(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    return value if isinstance(value, str) else None


class ContentGenerator:
    """Generates gists with caching and cost-bounded image fallback."""

    def __init__(
        self,
        llm: OpenAIClient,
        aggregator: SourceAggregator,
        cache: Optional[CacheRepository] = None,
        cache_ttl_seconds: int = 3600,
        max_article_length: int = 4000,
        summary_length: int = 150,
    ):
        """
        Args:
            llm: Language and image generation client
            aggregator: Source of grounding articles
            cache: Cache for finished gists
            cache_ttl_seconds: How long generated gists stay cached
            max_article_length: Cap on grounding text sent to the model
            summary_length: Character budget of the short summary
        """
        self.llm = llm
        self.aggregator = aggregator
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_article_length = max_article_length
        self.summary_length = summary_length

    async def generate(self, topic: str) -> GeneratedContent:
        """
        Produce a gist for a topic.

        Args:
            topic: Topic of the gist

        Returns:
            Generated content with provenance

        Raises:
            LLMError: If the language model call fails
            LLMResponseFormatError: If the model output is not valid JSON
        """
        cache_key = make_cache_key(GIST_CACHE_PREFIX, topic)
        cached = await self._read_cache(cache_key)
        if cached is not None:
            logger.info(f"Using cached gist for '{topic}'")
            return cached

        sources = await self.aggregator.gather(topic)
        article = sources.selected
        used_grounding = article is not None

        if used_grounding:
            logger.info(f"Grounding '{topic}' on article from {article.source}")
            article_text = build_article_text(article, self.max_article_length)
        else:
            logger.info(f"No article found for '{topic}', generating ungrounded")
            article_text = ""

        messages = prompts.build_messages(topic, article, article_text)
        data = await self.llm.complete_json(messages)

        has_grounding_image = article is not None and is_usable_source_image(article.image)
        ai_image = None
        if not used_grounding and not has_grounding_image:
            ai_image = await self._generate_fallback_image(
                topic, _text_field(data, "image_keyword")
            )

        context = _text_field(data, "context")
        content = GeneratedContent(
            headline=_text_field(data, "headline"),
            summary=summarize_context(context, self.summary_length),
            context=context,
            narration=_text_field(data, "narration"),
            image_keyword=_text_field(data, "image_keyword"),
            ai_generated_image=ai_image,
            used_grounding=used_grounding,
            is_celebrity=prompts.is_celebrity_topic(topic),
            source_url=article.url if article else None,
            source_title=article.title if article else None,
            source_excerpt=article.description if article else None,
            source_name=article.source if article else None,
            source_published_at=article.published_at if article else None,
            source_image_url=article.image if article else None,
        )

        # Incomplete payloads are rejected downstream and must not be replayed
        if not content.missing_fields():
            await self._write_cache(cache_key, content)
        return content

    async def _generate_fallback_image(
        self, topic: str, image_keyword: Optional[str]
    ) -> Optional[str]:
        """Last-resort illustration; failure means no image."""
        logger.info(f"No grounding or source image for '{topic}', generating an image")
        try:
            return await self.llm.generate_image(
                prompts.build_image_prompt(topic, image_keyword)
            )
        except LLMError as e:
            logger.warning(f"Fallback image generation failed: {e}")
            return None

    async def _read_cache(self, key: str) -> Optional[GeneratedContent]:
        if self.cache is None:
            return None
        try:
            cached = await self.cache.get(key)
        except StorageError as e:
            logger.warning(f"Gist cache read failed, treating as miss: {e}")
            return None

        record_cache_lookup(GIST_CACHE_PREFIX, cached is not None)
        if cached is None:
            return None
        try:
            return GeneratedContent(**cached)
        except (TypeError, PydanticValidationError) as e:
            logger.warning(f"Discarding unreadable cached gist {key}: {e}")
            await self._drop_cache(key)
            return None

    async def _drop_cache(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except StorageError as e:
            logger.warning(f"Gist cache delete failed: {e}")

    async def _write_cache(self, key: str, content: GeneratedContent) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, content.model_dump(), self.cache_ttl_seconds)
        except StorageError as e:
            logger.warning(f"Gist cache write failed: {e}")
