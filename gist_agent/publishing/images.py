"""
Image resolution for published items.

``resolve_image`` picks exactly one image URL from a strict priority chain.
A trend-linked item always takes the trend's image (or none), so the two can
never disagree. ``ImageResolver`` adds the only side effect: re-hosting an
AI-generated image in durable object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from gist_agent.storage.interfaces import ObjectStorage, StorageError
from gist_agent.storage.object.s3 import generate_object_key
from gist_agent.types import GeneratedContent, ImageSource, TrendRecord
from gist_agent.validation import is_usable_source_image, is_valid_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageDecision:
    """The chosen image URL and where it came from."""

    url: Optional[str]
    source: ImageSource


def resolve_image(
    trend: Optional[TrendRecord] = None,
    source_image_url: Optional[str] = None,
    provided_image_url: Optional[str] = None,
    ai_image_url: Optional[str] = None,
) -> ImageDecision:
    """
    Choose the image of a published item.

    Order:
        1. The resolved trend's image. If it is invalid the result is no
           image; later options are never consulted.
        2. The grounding article's image.
        3. The image URL supplied by the caller.
        4. The AI-generated image.
        5. No image.

    Args:
        trend: Trend record the item is linked to, if any
        source_image_url: Image of the grounding article
        provided_image_url: Caller-supplied image URL
        ai_image_url: Vendor-hosted generated image URL

    Returns:
        The decision; ``url`` is None when no image applies
    """
    if trend is not None:
        if is_valid_url(trend.image_url):
            return ImageDecision(trend.image_url, ImageSource.TREND)
        return ImageDecision(None, ImageSource.TREND)

    if is_usable_source_image(source_image_url):
        return ImageDecision(source_image_url, ImageSource.SOURCE_ARTICLE)

    if is_valid_url(provided_image_url):
        return ImageDecision(provided_image_url, ImageSource.PROVIDED)

    if is_valid_url(ai_image_url):
        return ImageDecision(ai_image_url, ImageSource.AI_GENERATED)

    return ImageDecision(None, ImageSource.NONE)


class ImageResolver:
    """Resolves images and re-hosts AI-generated ones."""

    def __init__(
        self,
        storage: Optional[ObjectStorage] = None,
        download_timeout_seconds: float = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            storage: Durable object storage; without it AI images keep
                their vendor URL
            download_timeout_seconds: Bound on fetching the generated image
            session: Shared HTTP session
        """
        self.storage = storage
        self.timeout = aiohttp.ClientTimeout(total=download_timeout_seconds)
        self._session = session

    async def resolve(
        self,
        content: GeneratedContent,
        trend: Optional[TrendRecord] = None,
        provided_image_url: Optional[str] = None,
    ) -> ImageDecision:
        decision = resolve_image(
            trend=trend,
            source_image_url=content.source_image_url,
            provided_image_url=provided_image_url,
            ai_image_url=content.ai_generated_image,
        )
        if decision.source is not ImageSource.AI_GENERATED:
            return decision

        durable_url = await self._rehost(decision.url)
        if durable_url is None:
            return ImageDecision(decision.url, ImageSource.AI_GENERATED_EPHEMERAL)
        return ImageDecision(durable_url, ImageSource.AI_GENERATED)

    async def _rehost(self, url: str) -> Optional[str]:
        """Copy a vendor-hosted image into object storage; None on any failure."""
        if self.storage is None:
            logger.info("No object storage configured, keeping vendor image URL")
            return None

        try:
            data, content_type = await self._download(url)
            durable_url = await self.storage.put(
                data,
                key=generate_object_key(),
                content_type=content_type,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, StorageError, ValueError) as e:
            logger.warning(f"Failed to re-host generated image, using vendor URL: {e}")
            return None

        logger.info(f"Re-hosted generated image at {durable_url}")
        return durable_url

    async def _download(self, url: str):
        if self._session is not None:
            return await self._fetch(self._session, url)
        async with aiohttp.ClientSession() as session:
            return await self._fetch(session, url)

    async def _fetch(self, session: aiohttp.ClientSession, url: str):
        async with session.get(url, timeout=self.timeout) as response:
            response.raise_for_status()
            data = await response.read()
            if not data:
                raise ValueError("Generated image download was empty")
            return data, response.headers.get("Content-Type", "image/png")
