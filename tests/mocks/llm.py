"""
Scripted language model client for testing.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional

from gist_agent.llm.client import LLMError


DEFAULT_GIST = {
    "headline": "Drake just dropped a surprise track",
    "context": "Drake released a new song overnight with no warning and fans are already dissecting every line.",
    "narration": (
        "Okay so quick take: Drake did the surprise drop thing again. "
        "The track landed overnight with zero promo and people are already quoting it everywhere. "
        "Honestly it feels like he wanted to remind everyone he can still shift the conversation in one night. "
        "You should give it a spin before your group chat spoils the best lines for you."
    ),
    "image_keyword": "music studio",
}


class MockLLMClient:
    """
    Stand-in for ``OpenAIClient``.

    ``response`` is returned by every completion unless ``error`` is set.
    Image generation returns ``image_url`` or raises when it is None.
    """

    def __init__(
        self,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        image_url: Optional[str] = "https://vendor.example.com/generated.png",
        delay: float = 0.0,
    ):
        self.response = copy.deepcopy(DEFAULT_GIST) if response is None else response
        self.error = error
        self.image_url = image_url
        self.delay = delay
        self.completion_calls: List[List[Dict[str, str]]] = []
        self.image_calls: List[str] = []

    async def complete_json(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        self.completion_calls.append(messages)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.response)

    async def generate_image(self, prompt: str) -> str:
        self.image_calls.append(prompt)
        if self.image_url is None:
            raise LLMError("Image generation failed: stubbed")
        return self.image_url

    async def close(self):
        pass
