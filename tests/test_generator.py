"""
Tests for the content generator.

Run with: pytest tests/test_generator.py -v
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from gist_agent.collectors.aggregator import SourceAggregator
from gist_agent.errors import ConfigurationError
from gist_agent.generation.generator import (
    ContentGenerator,
    build_article_text,
    summarize_context,
)
from gist_agent.generation.prompts import build_messages, is_celebrity_topic
from gist_agent.llm.client import LLMError, LLMResponseFormatError, OpenAIClient
from gist_agent.storage.memory import InMemoryCacheRepository
from gist_agent.validation import sanitize_text
from tests.mocks import FakeProvider, MockLLMClient, make_article


def make_generator(llm, articles=None, cache=None):
    providers = [FakeProvider(articles=articles or [])]
    aggregator = SourceAggregator(providers=providers, cache=cache)
    return ContentGenerator(llm=llm, aggregator=aggregator, cache=cache)


# ============================================================================
# Text Helpers
# ============================================================================


def test_sanitize_strips_citations_and_whitespace():
    assert sanitize_text("  Hello [1] world\n\n[citation needed] again ") == "Hello world again"


def test_article_text_is_capped():
    article = make_article(title="T", description="D", content="x" * 5000)
    text = build_article_text(article, max_length=4000)
    assert len(text) == 4000
    assert text.startswith("T D ")


def test_summary_truncates_with_ellipsis():
    context = "word " * 40
    summary = summarize_context(context, 150)
    assert summary.endswith("...")
    assert len(summary) <= 153


def test_short_summary_is_unchanged():
    assert summarize_context("Short.", 150) == "Short."


def test_celebrity_detection():
    assert is_celebrity_topic("Taylor Swift announces tour")
    assert not is_celebrity_topic("Interest rates rise")


def test_grounded_messages_include_article_text():
    article = make_article(source="BBC")
    messages = build_messages("topic", article, "ARTICLE BODY")
    assert "ARTICLE_TEXT:\nARTICLE BODY" in messages[1]["content"]
    assert "SOURCE: BBC" in messages[1]["content"]
    assert "Premier League" in messages[0]["content"]


def test_missing_openai_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        OpenAIClient(api_key="")


# ============================================================================
# Generation
# ============================================================================


@pytest.mark.asyncio
async def test_cached_gist_is_returned_without_second_llm_call():
    llm = MockLLMClient()
    generator = make_generator(llm, articles=[make_article()], cache=InMemoryCacheRepository())

    first = await generator.generate("Drake drops a surprise song")
    second = await generator.generate("Drake drops a surprise song")

    assert len(llm.completion_calls) == 1
    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.asyncio
async def test_grounded_generation_carries_provenance_and_skips_image():
    article = make_article(url="https://news.example.com/story")
    llm = MockLLMClient()
    generator = make_generator(llm, articles=[article])

    content = await generator.generate("Drake drops a surprise song")

    assert content.used_grounding is True
    assert content.source_url == "https://news.example.com/story"
    assert content.source_image_url == article.image
    assert content.source_excerpt == article.description
    assert content.ai_generated_image is None
    assert llm.image_calls == []
    assert "ARTICLE_TEXT" in llm.completion_calls[0][1]["content"]


@pytest.mark.asyncio
async def test_grounded_article_without_image_still_skips_image_generation():
    llm = MockLLMClient()
    generator = make_generator(llm, articles=[make_article(image="https://x.example.com/placeholder.png")])

    content = await generator.generate("topic")

    assert content.used_grounding is True
    assert llm.image_calls == []


@pytest.mark.asyncio
async def test_ungrounded_generation_falls_back_to_image():
    llm = MockLLMClient(image_url="https://vendor.example.com/img.png")
    generator = make_generator(llm)

    content = await generator.generate("Drake drops a surprise song")

    assert content.used_grounding is False
    assert content.is_celebrity is True
    assert content.ai_generated_image == "https://vendor.example.com/img.png"
    assert llm.image_calls == ["Simple music studio illustration, minimal, clean design"]


@pytest.mark.asyncio
async def test_image_failure_degrades_to_no_image():
    llm = MockLLMClient(image_url=None)
    generator = make_generator(llm)

    content = await generator.generate("topic")

    assert content.ai_generated_image is None
    assert content.headline


@pytest.mark.asyncio
async def test_summary_is_derived_from_context():
    llm = MockLLMClient(response={
        "headline": "H",
        "context": "c" * 200,
        "narration": "N",
        "image_keyword": "K",
    })
    generator = make_generator(llm)

    content = await generator.generate("topic")

    assert content.summary == "c" * 150 + "..."
    assert content.context == "c" * 200


@pytest.mark.asyncio
async def test_malformed_output_is_raised_distinctly():
    llm = MockLLMClient(error=LLMResponseFormatError("AI returned invalid JSON"))
    generator = make_generator(llm)

    with pytest.raises(LLMResponseFormatError):
        await generator.generate("topic")


@pytest.mark.asyncio
async def test_vendor_failure_propagates():
    llm = MockLLMClient(error=LLMError("OpenAI rate limit exceeded", status=429))
    generator = make_generator(llm)

    with pytest.raises(LLMError):
        await generator.generate("topic")


@pytest.mark.asyncio
async def test_incomplete_payload_is_not_cached():
    cache = InMemoryCacheRepository()
    llm = MockLLMClient(response={"headline": "H", "context": "C", "image_keyword": "K"})
    generator = make_generator(llm, cache=cache)

    content = await generator.generate("topic")

    assert content.missing_fields() == ["narration"]
    assert await cache.get("gist:topic") is None


@pytest.mark.asyncio
async def test_unreadable_cached_gist_is_regenerated():
    cache = InMemoryCacheRepository()
    await cache.set("gist:topic", {"headline": ["not", "text"], "used_grounding": "maybe"})
    llm = MockLLMClient()
    generator = make_generator(llm, cache=cache)

    content = await generator.generate("topic")

    assert len(llm.completion_calls) == 1
    assert content.missing_fields() == []
    assert (await cache.get("gist:topic"))["headline"] == content.headline


@pytest.mark.asyncio
async def test_non_string_fields_are_treated_as_missing():
    llm = MockLLMClient(response={"headline": 42, "context": "C", "narration": "N", "image_keyword": "K"})
    generator = make_generator(llm)

    content = await generator.generate("topic")

    assert content.missing_fields() == ["headline"]


# ============================================================================
# OpenAI Client
# ============================================================================


def completion_client(content):
    client = MagicMock()
    message = MagicMock(content=content)
    client.chat.completions.create = AsyncMock(
        return_value=MagicMock(choices=[MagicMock(message=message)])
    )
    return client


@pytest.mark.asyncio
async def test_client_decodes_json_object():
    llm = OpenAIClient(client=completion_client('{"headline": "H"}'))

    assert await llm.complete_json([{"role": "user", "content": "x"}]) == {"headline": "H"}


@pytest.mark.asyncio
async def test_client_rejects_invalid_json():
    llm = OpenAIClient(client=completion_client("Sure! Here is your gist"))

    with pytest.raises(LLMResponseFormatError) as exc_info:
        await llm.complete_json([{"role": "user", "content": "x"}])
    assert str(exc_info.value) == "AI returned invalid JSON"


@pytest.mark.asyncio
async def test_client_empty_content_is_vendor_error():
    llm = OpenAIClient(client=completion_client(None))

    with pytest.raises(LLMError) as exc_info:
        await llm.complete_json([{"role": "user", "content": "x"}])
    assert not isinstance(exc_info.value, LLMResponseFormatError)


@pytest.mark.asyncio
async def test_client_response_validation_error_is_vendor_error():
    client = MagicMock()
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client.chat.completions.create = AsyncMock(
        side_effect=openai.APIResponseValidationError(
            response=httpx.Response(200, request=request), body=None
        )
    )
    llm = OpenAIClient(client=client)

    with pytest.raises(LLMError) as exc_info:
        await llm.complete_json([{"role": "user", "content": "x"}])
    assert not isinstance(exc_info.value, LLMResponseFormatError)
    assert str(exc_info.value).startswith("OpenAI request failed")
