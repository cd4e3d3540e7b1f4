"""
Base classes for news provider plugins.

Each provider knows how to query one news API for a topic and normalize its
JSON payload into ``SourceArticle`` records. The aggregator owns the HTTP
session, timeouts and failure bookkeeping.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

import aiohttp

from gist_agent.types import SourceArticle

logger = logging.getLogger(__name__)


class NewsProvider(ABC):
    """
    Abstract base class for news provider plugins.

    Subclasses define ``name``, ``endpoint`` and the parameter/payload
    mapping. A provider without an API key is reported as not configured
    and skipped by the aggregator.
    """

    name: str
    endpoint: str

    def __init__(self, api_key: Optional[str] = None, page_size: int = 5):
        """
        Args:
            api_key: Provider API key; empty or None disables the provider
            page_size: Maximum number of articles requested
        """
        if not getattr(self, "name", None) or not getattr(self, "endpoint", None):
            raise NotImplementedError(
                f"{self.__class__.__name__} must define 'name' and 'endpoint'"
            )
        self.api_key = api_key or None
        self.page_size = page_size

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def build_params(self, topic: str) -> Dict[str, Any]:
        """Query parameters for a topic search, including credentials."""
        pass

    @abstractmethod
    def parse(self, payload: Dict[str, Any]) -> List[SourceArticle]:
        """
        Normalize a provider payload.

        Args:
            payload: Decoded JSON body of a successful response

        Returns:
            Articles in provider order; entries without a title are dropped
        """
        pass

    def error_message(self, payload: Any, status: int) -> str:
        """Best-effort error text from a non-success response body."""
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error")
            if isinstance(message, dict):
                message = message.get("message") or message.get("info")
            if message:
                return str(message)
        return f"HTTP {status}"

    async def fetch(
        self,
        session: aiohttp.ClientSession,
        topic: str,
        timeout: aiohttp.ClientTimeout,
    ) -> List[SourceArticle]:
        """
        Query the provider for a topic.

        Raises:
            ProviderError: If the provider answers with a non-success status
                or an unreadable body
            asyncio.TimeoutError: If the request exceeds ``timeout``
            aiohttp.ClientError: On network failures
        """
        async with session.get(
            self.endpoint, params=self.build_params(topic), timeout=timeout
        ) as response:
            try:
                payload = await response.json(content_type=None)
            except ValueError:
                payload = None

            if response.status < 200 or response.status >= 300:
                raise ProviderError(
                    self.error_message(payload, response.status),
                    status=response.status,
                )
            if not isinstance(payload, dict):
                raise ProviderError("Invalid JSON response", status=response.status)

        articles = self.parse(payload)
        logger.debug(f"{self.name} returned {len(articles)} articles for '{topic}'")
        return articles

    @staticmethod
    def _article(**fields: Any) -> Optional[SourceArticle]:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            return None
        cleaned = {
            key: (value if isinstance(value, str) and value else None)
            for key, value in fields.items()
        }
        return SourceArticle(**cleaned)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} ({self.name})>"


class ProviderRegistry:
    """Registry of available news provider classes."""

    _providers: Dict[str, Type[NewsProvider]] = {}

    @classmethod
    def register(cls, provider_class: Type[NewsProvider]) -> None:
        """
        Register a provider class.

        Raises:
            ValueError: If the provider name is already registered
        """
        name = provider_class.name
        if name in cls._providers and cls._providers[name] is not provider_class:
            raise ValueError(f"Provider '{name}' is already registered")
        cls._providers[name] = provider_class

    @classmethod
    def get(cls, name: str) -> Optional[Type[NewsProvider]]:
        return cls._providers.get(name)

    @classmethod
    def get_all(cls) -> List[Type[NewsProvider]]:
        return list(cls._providers.values())

    @classmethod
    def get_names(cls) -> List[str]:
        return list(cls._providers.keys())


def register_provider(provider_class: Type[NewsProvider]) -> Type[NewsProvider]:
    """
    Decorator for registering news provider plugins.

    Usage:
        @register_provider
        class MyProvider(NewsProvider):
            ...
    """
    ProviderRegistry.register(provider_class)
    return provider_class


class ProviderError(Exception):
    """A provider answered but did not return usable articles."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
