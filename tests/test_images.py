"""
Tests for image resolution and re-hosting.

Run with: pytest tests/test_images.py -v
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import aiohttp
import pytest

from gist_agent.publishing.images import ImageResolver, resolve_image
from gist_agent.types import GeneratedContent, ImageSource, TrendRecord
from tests.mocks import MockObjectStorage


SOURCE_IMAGE = "https://news.example.com/photo.jpg"
PROVIDED_IMAGE = "https://caller.example.com/image.png"
AI_IMAGE = "https://vendor.example.com/generated.png"


def trend(image_url=None) -> TrendRecord:
    return TrendRecord(id=uuid4(), image_url=image_url)


# ============================================================================
# Priority Chain
# ============================================================================


def test_trend_image_wins_over_everything():
    decision = resolve_image(
        trend=trend("https://trends.example.com/t.jpg"),
        source_image_url=SOURCE_IMAGE,
        provided_image_url=PROVIDED_IMAGE,
        ai_image_url=AI_IMAGE,
    )
    assert decision.url == "https://trends.example.com/t.jpg"
    assert decision.source is ImageSource.TREND


@pytest.mark.parametrize("bad_url", [None, "", "null", "ftp://trends.example.com/t.jpg", "not a url"])
def test_invalid_trend_image_means_no_image(bad_url):
    decision = resolve_image(
        trend=trend(bad_url),
        source_image_url=SOURCE_IMAGE,
        provided_image_url=PROVIDED_IMAGE,
        ai_image_url=AI_IMAGE,
    )
    assert decision.url is None
    assert decision.source is ImageSource.TREND


def test_source_image_before_provided():
    decision = resolve_image(source_image_url=SOURCE_IMAGE, provided_image_url=PROVIDED_IMAGE)
    assert decision.url == SOURCE_IMAGE
    assert decision.source is ImageSource.SOURCE_ARTICLE


def test_placeholder_source_image_is_skipped():
    decision = resolve_image(
        source_image_url="https://news.example.com/placeholder.jpg",
        provided_image_url=PROVIDED_IMAGE,
    )
    assert decision.source is ImageSource.PROVIDED


def test_ai_image_is_last_resort():
    decision = resolve_image(ai_image_url=AI_IMAGE)
    assert decision.url == AI_IMAGE
    assert decision.source is ImageSource.AI_GENERATED


def test_no_candidates_means_no_image():
    decision = resolve_image()
    assert decision.url is None
    assert decision.source is ImageSource.NONE


# ============================================================================
# Re-hosting
# ============================================================================


@pytest.mark.asyncio
async def test_ai_image_is_rehosted():
    storage = MockObjectStorage(base_url="https://cdn.example.com")
    resolver = ImageResolver(storage=storage)
    content = GeneratedContent(ai_generated_image=AI_IMAGE)

    with patch.object(
        ImageResolver, "_download", AsyncMock(return_value=(b"png-bytes", "image/png"))
    ):
        decision = await resolver.resolve(content)

    assert decision.source is ImageSource.AI_GENERATED
    assert decision.url.startswith("https://cdn.example.com/gist-images/")
    assert decision.url.endswith(".png")
    assert list(storage.objects.values()) == [b"png-bytes"]


@pytest.mark.asyncio
async def test_failed_upload_keeps_vendor_url():
    resolver = ImageResolver(storage=MockObjectStorage(fail=True))
    content = GeneratedContent(ai_generated_image=AI_IMAGE)

    with patch.object(
        ImageResolver, "_download", AsyncMock(return_value=(b"png-bytes", "image/png"))
    ):
        decision = await resolver.resolve(content)

    assert decision.url == AI_IMAGE
    assert decision.source is ImageSource.AI_GENERATED_EPHEMERAL


@pytest.mark.asyncio
async def test_failed_download_keeps_vendor_url():
    storage = MockObjectStorage()
    resolver = ImageResolver(storage=storage)
    content = GeneratedContent(ai_generated_image=AI_IMAGE)

    with patch.object(
        ImageResolver, "_download", AsyncMock(side_effect=aiohttp.ClientConnectionError("reset"))
    ):
        decision = await resolver.resolve(content)

    assert decision.source is ImageSource.AI_GENERATED_EPHEMERAL
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_without_storage_vendor_url_is_ephemeral():
    resolver = ImageResolver(storage=None)
    decision = await resolver.resolve(GeneratedContent(ai_generated_image=AI_IMAGE))

    assert decision.url == AI_IMAGE
    assert decision.source is ImageSource.AI_GENERATED_EPHEMERAL


@pytest.mark.asyncio
async def test_non_ai_images_are_not_downloaded():
    resolver = ImageResolver(storage=MockObjectStorage())
    content = GeneratedContent(source_image_url=SOURCE_IMAGE, ai_generated_image=AI_IMAGE)

    with patch.object(ImageResolver, "_download", AsyncMock()) as download:
        decision = await resolver.resolve(content)

    assert decision.url == SOURCE_IMAGE
    download.assert_not_awaited()
