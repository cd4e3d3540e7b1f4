"""
Tests for the publisher.

Run with: pytest tests/test_publisher.py -v
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import openai
import pytest

from gist_agent.collectors.aggregator import SourceAggregator
from gist_agent.errors import safe_status
from gist_agent.generation.generator import ContentGenerator
from gist_agent.llm.client import LLMError, LLMResponseFormatError, OpenAIClient
from gist_agent.publishing.images import ImageDecision, ImageResolver
from gist_agent.publishing.publisher import Publisher
from gist_agent.storage.interfaces import StorageError
from gist_agent.types import ImageSource
from tests.mocks import (
    FakeProvider,
    MockLLMClient,
    MockObjectStorage,
    MockPublishedItemRepository,
    MockTrendRecordRepository,
    make_article,
)


def build_publisher(llm=None, articles=None, storage=None):
    llm = llm or MockLLMClient()
    trends = MockTrendRecordRepository()
    items = MockPublishedItemRepository()
    trends.items = items
    aggregator = SourceAggregator(providers=[FakeProvider(articles=articles or [])])
    generator = ContentGenerator(llm=llm, aggregator=aggregator)
    publisher = Publisher(
        generator=generator,
        trends=trends,
        items=items,
        image_resolver=ImageResolver(storage=storage),
    )
    return publisher, llm, trends, items


# ============================================================================
# Input Validation
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"topic": ""},
        {"topic": "   "},
        {"topic": "x" * 501},
        {"topic": "ok", "image_url": "not-a-url"},
        {"topic": "ok", "source_url": "javascript:alert(1)"},
        {"topic": "ok", "trend_id": "not-a-uuid"},
    ],
)
async def test_invalid_input_fails_before_generation(payload):
    publisher, llm, _, items = build_publisher()

    response = await publisher.publish(payload)

    assert response.success is False
    assert response.status_code == 400
    assert response.stage == "validate_input"
    assert llm.completion_calls == []
    assert items.saved == []


@pytest.mark.asyncio
async def test_non_object_body_is_rejected():
    publisher, _, _, _ = build_publisher()

    response = await publisher.publish(["topic"])

    assert response.status_code == 400
    assert response.stage == "validate_input"


@pytest.mark.asyncio
async def test_topic_at_max_length_is_accepted():
    publisher, _, _, _ = build_publisher()

    response = await publisher.publish({"topic": "x" * 500})

    assert response.success is True


# ============================================================================
# Trend Lookup
# ============================================================================


@pytest.mark.asyncio
async def test_unknown_trend_is_not_found():
    publisher, llm, _, _ = build_publisher()

    response = await publisher.publish({"topic": "ok", "trend_id": str(uuid4())})

    assert response.status_code == 404
    assert response.stage == "trend_lookup"
    assert llm.completion_calls == []


@pytest.mark.asyncio
async def test_already_published_trend_conflicts():
    publisher, llm, trends, items = build_publisher()
    record = trends.create(image_url="https://trends.example.com/t.jpg")

    first = await publisher.publish({"topic": "ok", "trend_id": str(record.id)})
    second = await publisher.publish({"topic": "ok", "trend_id": str(record.id)})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.stage == "trend_lookup"
    assert items.count_for_trend(record.id) == 1
    assert len(llm.completion_calls) == 1


@pytest.mark.asyncio
async def test_insert_race_is_reported_as_conflict():
    publisher, _, trends, items = build_publisher()
    record = trends.create()

    # Another writer wins between the trend lookup and the insert
    with patch.object(items, "exists_for_trend", AsyncMock(return_value=False)):
        await publisher.publish({"topic": "ok", "trend_id": str(record.id)})
        response = await publisher.publish({"topic": "ok", "trend_id": str(record.id)})

    assert response.status_code == 409
    assert response.stage == "db_insert"
    assert items.count_for_trend(record.id) == 1


# ============================================================================
# Generation and Validation
# ============================================================================


@pytest.mark.asyncio
async def test_missing_narration_fails_validation():
    llm = MockLLMClient(response={"headline": "H", "context": "C", "image_keyword": "K"})
    publisher, _, _, items = build_publisher(llm=llm)

    response = await publisher.publish({"topic": "ok"})

    assert response.success is False
    assert response.stage == "validate"
    assert response.status_code == 422
    assert "narration" in response.error
    assert items.saved == []


@pytest.mark.asyncio
async def test_invalid_ai_json_is_an_upstream_error():
    llm = MockLLMClient(error=LLMResponseFormatError("AI returned invalid JSON"))
    publisher, _, _, _ = build_publisher(llm=llm)

    response = await publisher.publish({"topic": "ok"})

    assert response.status_code == 502
    assert response.stage == "ai_generate"
    assert response.error == "AI returned invalid JSON"


@pytest.mark.asyncio
async def test_vendor_failure_is_an_upstream_error():
    llm = MockLLMClient(error=LLMError("OpenAI rate limit exceeded", status=429))
    publisher, _, _, _ = build_publisher(llm=llm)

    response = await publisher.publish({"topic": "ok"})

    assert response.status_code == 502
    assert response.stage == "ai_generate"


@pytest.mark.asyncio
async def test_unexpected_generation_failure_is_an_upstream_error():
    publisher, _, _, items = build_publisher()

    with patch.object(publisher.generator, "generate", AsyncMock(side_effect=RuntimeError("boom"))):
        response = await publisher.publish({"topic": "ok"})

    assert response.status_code == 502
    assert response.stage == "ai_generate"
    assert items.saved == []


@pytest.mark.asyncio
async def test_sdk_response_validation_error_is_an_upstream_error():
    client = MagicMock()
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client.chat.completions.create = AsyncMock(
        side_effect=openai.APIResponseValidationError(
            response=httpx.Response(200, request=request), body=None
        )
    )
    publisher, _, _, _ = build_publisher(llm=OpenAIClient(client=client))

    response = await publisher.publish({"topic": "ok"})

    assert response.status_code == 502
    assert response.stage == "ai_generate"


# ============================================================================
# Successful Publishing
# ============================================================================


@pytest.mark.asyncio
async def test_ungrounded_publish_without_image():
    publisher, llm, _, items = build_publisher(llm=MockLLMClient(image_url=None))

    response = await publisher.publish({"topic": "Quiet news day"})

    assert response.success is True
    assert response.status_code == 201
    assert response.gist.image_url is None
    assert response.gist.trend_id is None
    assert response.gist.topic_category == "Trending"
    assert response.gist.audio_url == ""
    assert response.gist.status == "published"
    assert len(llm.image_calls) == 1
    assert len(items.saved) == 1


@pytest.mark.asyncio
async def test_trend_image_overrides_article_and_caller_images():
    publisher, llm, trends, _ = build_publisher(articles=[make_article()])
    record = trends.create(image_url="https://trends.example.com/t.jpg")

    response = await publisher.publish({
        "topic": "Drake drops a surprise song",
        "trend_id": str(record.id),
        "image_url": "https://caller.example.com/image.png",
        "topic_category": "Music",
    })

    assert response.status_code == 201
    assert response.gist.image_url == "https://trends.example.com/t.jpg"
    assert response.gist.trend_id == record.id
    assert response.gist.topic_category == "Music"
    assert response.gist.meta["image_source"] == "trend"
    assert llm.image_calls == []


@pytest.mark.asyncio
async def test_persisted_image_is_reasserted_from_trend():
    publisher, _, trends, items = build_publisher()
    record = trends.create(image_url="https://img.example.com/x.png")
    decision = ImageDecision("https://other.example.com/y.png", ImageSource.SOURCE_ARTICLE)

    with patch.object(publisher.image_resolver, "resolve", AsyncMock(return_value=decision)):
        response = await publisher.publish({"topic": "ok", "trend_id": str(record.id)})

    assert response.status_code == 201
    assert response.gist.image_url == "https://img.example.com/x.png"
    assert items.saved[0].image_url == "https://img.example.com/x.png"


@pytest.mark.asyncio
async def test_trend_with_invalid_image_publishes_without_image():
    publisher, _, trends, _ = build_publisher(articles=[make_article()])
    record = trends.create(image_url="null")

    response = await publisher.publish({
        "topic": "ok",
        "trend_id": str(record.id),
        "image_url": "https://caller.example.com/image.png",
    })

    assert response.status_code == 201
    assert response.gist.image_url is None


@pytest.mark.asyncio
async def test_grounded_publish_records_provenance():
    article = make_article(url="https://news.example.com/story", published_at="2024-05-01T10:00:00Z")
    publisher, _, _, _ = build_publisher(articles=[article])

    response = await publisher.publish({"topic": "Drake drops a surprise song"}, request_id="req-1")

    gist = response.gist
    assert response.request_id == "req-1"
    assert gist.image_url == article.image
    assert gist.source_url == "https://news.example.com/story"
    assert gist.news_published_at.year == 2024
    assert gist.meta["used_grounding"] is True
    assert gist.meta["is_celebrity"] is True
    assert gist.meta["source_name"] == article.source
    assert gist.meta["image_source"] == "source_article"
    assert gist.meta["request_id"] == "req-1"
    assert gist.meta["summary"]


@pytest.mark.asyncio
async def test_generated_image_is_rehosted_before_insert():
    storage = MockObjectStorage(base_url="https://cdn.example.com")
    publisher, _, _, _ = build_publisher(storage=storage)

    with patch.object(ImageResolver, "_download", AsyncMock(return_value=(b"img", "image/png"))):
        response = await publisher.publish({"topic": "Quiet news day"})

    assert response.gist.image_url.startswith("https://cdn.example.com/gist-images/")
    assert response.gist.meta["image_source"] == "ai_generated"
    assert response.gist.meta["ai_generated_image"] == "https://vendor.example.com/generated.png"


# ============================================================================
# Persistence and Envelope
# ============================================================================


@pytest.mark.asyncio
async def test_storage_failure_keeps_code():
    publisher, _, _, items = build_publisher()
    items.fail_with = StorageError("connection reset", code="08006")

    response = await publisher.publish({"topic": "ok"})

    assert response.status_code == 500
    assert response.stage == "db_insert"
    assert "connection reset" in response.error


@pytest.mark.asyncio
async def test_unexpected_error_is_contained():
    publisher, _, _, _ = build_publisher()

    with patch.object(publisher.image_resolver, "resolve", AsyncMock(side_effect=RuntimeError("boom"))):
        response = await publisher.publish({"topic": "ok"})

    assert response.success is False
    assert response.status_code == 500
    assert response.stage == "internal"


@pytest.mark.asyncio
async def test_request_id_is_generated_when_missing():
    publisher, _, _, _ = build_publisher()

    response = await publisher.publish({"topic": ""})

    assert response.request_id


@pytest.mark.asyncio
async def test_envelope_excludes_status_code():
    publisher, _, _, _ = build_publisher()

    response = await publisher.publish({"topic": ""})
    body = response.model_dump(mode="json")

    assert "status_code" not in body
    assert body["success"] is False
    assert body["gist"] is None


@pytest.mark.parametrize(
    "status,expected",
    [(201, 201), (404, 404), (599, 599), (199, 500), (600, 500), (None, 500), ("502", 500)],
)
def test_safe_status_clamps_codes(status, expected):
    assert safe_status(status) == expected
