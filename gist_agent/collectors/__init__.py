"""
News provider plugins and the source aggregator.

Importing this package registers the built-in providers.
"""

from typing import Dict, List, Optional

from gist_agent import config
from gist_agent.collectors.base import (
    NewsProvider,
    ProviderError,
    ProviderRegistry,
    register_provider,
)
from gist_agent.collectors.guardian import GuardianProvider
from gist_agent.collectors.mediastack import MediastackProvider
from gist_agent.collectors.newsapi import NewsAPIProvider


def build_default_providers(
    api_keys: Optional[Dict[str, str]] = None,
) -> List[NewsProvider]:
    """
    Instantiate every built-in provider with its configured API key.

    Args:
        api_keys: Provider name to key overrides; falls back to config

    Returns:
        Providers in query order (unconfigured ones included, they are skipped)
    """
    keys = {
        NewsAPIProvider.name: config.NEWSAPI_KEY,
        GuardianProvider.name: config.GUARDIAN_API_KEY,
        MediastackProvider.name: config.MEDIASTACK_KEY,
    }
    keys.update(api_keys or {})
    return [
        provider_class(
            api_key=keys.get(provider_class.name),
            page_size=config.PROVIDER_PAGE_SIZE,
        )
        for provider_class in ProviderRegistry.get_all()
    ]


__all__ = [
    "NewsProvider",
    "ProviderError",
    "ProviderRegistry",
    "register_provider",
    "NewsAPIProvider",
    "GuardianProvider",
    "MediastackProvider",
    "build_default_providers",
]
