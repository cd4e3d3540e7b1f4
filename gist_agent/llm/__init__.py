"""Language and image generation clients."""

from gist_agent.llm.client import LLMError, LLMResponseFormatError, OpenAIClient

__all__ = ["OpenAIClient", "LLMError", "LLMResponseFormatError"]
