"""
Mock implementations for testing.

In-memory storage, a scripted language model and fake news providers let
every pipeline stage run without network or database access.
"""

from tests.mocks.llm import MockLLMClient
from tests.mocks.providers import FakeProvider, make_article
from tests.mocks.storage import (
    MockObjectStorage,
    MockPublishedItemRepository,
    MockTrendRecordRepository,
)

__all__ = [
    "MockLLMClient",
    "FakeProvider",
    "make_article",
    "MockObjectStorage",
    "MockPublishedItemRepository",
    "MockTrendRecordRepository",
]
