"""
OpenAI client for structured text and image generation.

Wraps ``AsyncOpenAI`` with the conventions the generator relies on: JSON mode
completions, no internal retries, bounded timeouts and a distinct error for
responses that are not valid JSON.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from gist_agent.errors import ConfigurationError
from gist_agent.observability.metrics import record_llm_request

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Language and image generation through the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: OpenAI API key
            model: Chat completion model
            image_model: Image generation model
            image_size: Requested image size; keep it at the model's smallest
            timeout: Per-request timeout in seconds
            client: Pre-built SDK client (tests)

        Raises:
            ConfigurationError: If no API key is available
        """
        if client is None and not api_key:
            raise ConfigurationError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.model = model
        self.image_model = image_model
        self.image_size = image_size
        # Retrying is the caller's decision
        self._client = client or AsyncOpenAI(
            api_key=api_key, timeout=timeout, max_retries=0
        )

        logger.info(f"Initialized OpenAIClient (model={model}, image_model={image_model})")

    async def complete_json(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        """
        Run a JSON-mode chat completion.

        Args:
            messages: Chat messages

        Returns:
            Decoded JSON object

        Raises:
            LLMError: If the vendor call fails or returns no content
            LLMResponseFormatError: If the content is not a JSON object
        """
        start_time = time.time()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            record_llm_request("completion", "error")
            raise LLMError(_describe_status(e.status_code), status=e.status_code) from e
        except openai.APITimeoutError as e:
            record_llm_request("completion", "timeout")
            raise LLMError("OpenAI request timed out", status=504) from e
        except openai.APIConnectionError as e:
            record_llm_request("completion", "error")
            raise LLMError(f"Could not reach OpenAI: {e}") from e
        except openai.OpenAIError as e:
            record_llm_request("completion", "error")
            raise LLMError(f"OpenAI request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            record_llm_request("completion", "error")
            raise LLMError("OpenAI returned no content")

        content = response.choices[0].message.content
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            record_llm_request("completion", "invalid_json")
            raise LLMResponseFormatError("AI returned invalid JSON") from e

        if not isinstance(data, dict):
            record_llm_request("completion", "invalid_json")
            raise LLMResponseFormatError("AI returned a non-object JSON value")

        record_llm_request("completion", "success")
        logger.debug(f"Completion finished in {time.time() - start_time:.2f}s")
        return data

    async def generate_image(self, prompt: str) -> str:
        """
        Generate one image and return its vendor-hosted URL.

        The URL is short-lived; callers re-host it if they need it to last.

        Raises:
            LLMError: If generation fails or returns no URL
        """
        try:
            response = await self._client.images.generate(
                model=self.image_model,
                prompt=prompt,
                n=1,
                size=self.image_size,
                quality="standard",
                response_format="url",
            )
        except openai.OpenAIError as e:
            record_llm_request("image", "error")
            raise LLMError(f"Image generation failed: {e}") from e

        url = response.data[0].url if response.data else None
        if not url:
            record_llm_request("image", "error")
            raise LLMError("Image generation returned no URL")

        record_llm_request("image", "success")
        return url

    async def close(self):
        await self._client.close()


def _describe_status(status: int) -> str:
    if status == 401:
        return "OpenAI authentication failed (check API key)"
    if status == 429:
        return "OpenAI rate limit exceeded"
    if status >= 500:
        return f"OpenAI server error ({status})"
    return f"OpenAI API error: {status}"


# ============================================================================
# Exceptions
# ============================================================================


class LLMError(Exception):
    """Language or image generation vendor failure."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LLMResponseFormatError(LLMError):
    """The vendor answered but the output is not the expected JSON."""

    pass
