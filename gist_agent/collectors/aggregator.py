"""
Source aggregator.

Fans out one topic search to every configured news provider, merges the
normalized articles newest first and degrades gracefully: provider failures
are returned as data and never raised.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

import aiohttp

from gist_agent.collectors.base import NewsProvider, ProviderError
from gist_agent.observability.metrics import (
    record_cache_lookup,
    record_provider_request,
)
from gist_agent.storage.interfaces import CacheRepository, StorageError
from gist_agent.types import (
    AggregationResult,
    ProviderFailure,
    ProviderStats,
    SourceArticle,
)
from gist_agent.validation import make_cache_key

logger = logging.getLogger(__name__)

SOURCES_CACHE_PREFIX = "sources"


class SourceAggregator:
    """Queries news providers concurrently and merges their articles."""

    def __init__(
        self,
        providers: List[NewsProvider],
        cache: Optional[CacheRepository] = None,
        timeout_seconds: float = 10.0,
        cache_ttl_seconds: int = 3600,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            providers: Providers to query; unconfigured ones are skipped
            cache: Cache for merged article lists
            timeout_seconds: Total time allowed per provider request
            cache_ttl_seconds: How long merged results stay cached
            session: Shared HTTP session; a private one is opened per call
                when omitted
        """
        self.providers = providers
        self.cache = cache
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.cache_ttl_seconds = cache_ttl_seconds
        self._session = session

    async def gather(self, topic: str) -> AggregationResult:
        """
        Collect articles about a topic from every configured provider.

        Args:
            topic: Search topic

        Returns:
            Merged result; ``success`` is true when at least one article
            was found
        """
        cache_key = make_cache_key(SOURCES_CACHE_PREFIX, topic)
        cached = await self._read_cache(cache_key)
        if cached is not None:
            logger.info(f"Using cached sources for '{topic}' ({len(cached)} articles)")
            return AggregationResult(success=bool(cached), articles=cached)

        active = [p for p in self.providers if p.configured]
        stats = [
            ProviderStats(provider=p.name, skipped=True)
            for p in self.providers
            if not p.configured
        ]
        for skipped in stats:
            logger.debug(f"Skipping {skipped.provider}: no API key configured")

        failures: List[ProviderFailure] = []
        articles: List[SourceArticle] = []

        if active:
            if self._session is not None:
                outcomes = await self._query_all(self._session, active, topic)
            else:
                async with aiohttp.ClientSession() as session:
                    outcomes = await self._query_all(session, active, topic)

            for provider, (items, failure) in zip(active, outcomes):
                stats.append(
                    ProviderStats(
                        provider=provider.name,
                        items=len(items),
                        ok=failure is None,
                    )
                )
                if failure is not None:
                    failures.append(failure)
                articles.extend(items)

        merged = self._merge(articles)
        logger.info(
            f"Gathered {len(merged)} articles for '{topic}' "
            f"({len(failures)} provider failures)"
        )

        if merged:
            await self._write_cache(cache_key, merged)

        return AggregationResult(
            success=len(merged) > 0,
            articles=merged,
            failures=failures,
            provider_stats=stats,
        )

    async def _query_all(
        self,
        session: aiohttp.ClientSession,
        providers: List[NewsProvider],
        topic: str,
    ) -> List[Tuple[List[SourceArticle], Optional[ProviderFailure]]]:
        return await asyncio.gather(
            *(self._query(session, provider, topic) for provider in providers)
        )

    async def _query(
        self,
        session: aiohttp.ClientSession,
        provider: NewsProvider,
        topic: str,
    ) -> Tuple[List[SourceArticle], Optional[ProviderFailure]]:
        """Run one provider call, converting every failure into a record."""
        try:
            items = await provider.fetch(session, topic, self.timeout)
            record_provider_request(provider.name, "success")
            return items, None

        except asyncio.TimeoutError:
            logger.warning(f"{provider.name} timed out for '{topic}'")
            record_provider_request(provider.name, "timeout")
            return [], ProviderFailure(
                provider=provider.name, status=408, error="Request timeout"
            )
        except ProviderError as e:
            logger.warning(f"{provider.name} failed ({e.status}): {e}")
            record_provider_request(provider.name, "error")
            return [], ProviderFailure(
                provider=provider.name, status=e.status, error=str(e)
            )
        except aiohttp.ClientError as e:
            logger.warning(f"{provider.name} network error: {e}")
            record_provider_request(provider.name, "error")
            return [], ProviderFailure(
                provider=provider.name,
                error="Network error",
                details=str(e),
            )
        except Exception as e:
            logger.error(f"{provider.name} raised unexpectedly: {e}", exc_info=True)
            record_provider_request(provider.name, "error")
            return [], ProviderFailure(
                provider=provider.name,
                error="Unexpected error",
                details=str(e),
            )

    @staticmethod
    def _merge(articles: List[SourceArticle]) -> List[SourceArticle]:
        """Sort newest first and drop repeated URLs, keeping the first."""
        ordered = sorted(articles, key=lambda a: a.published_timestamp, reverse=True)
        seen = set()
        merged = []
        for article in ordered:
            if article.url:
                if article.url in seen:
                    continue
                seen.add(article.url)
            merged.append(article)
        return merged

    async def _read_cache(self, key: str) -> Optional[List[SourceArticle]]:
        if self.cache is None:
            return None
        try:
            cached = await self.cache.get(key)
        except StorageError as e:
            logger.warning(f"Source cache read failed, treating as miss: {e}")
            return None

        record_cache_lookup(SOURCES_CACHE_PREFIX, cached is not None)
        if cached is None:
            return None
        return [SourceArticle(**entry) for entry in cached]

    async def _write_cache(self, key: str, articles: List[SourceArticle]) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(
                key,
                [a.model_dump() for a in articles],
                self.cache_ttl_seconds,
            )
        except StorageError as e:
            logger.warning(f"Source cache write failed: {e}")
