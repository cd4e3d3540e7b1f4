"""
Pipeline wiring.

Builds the connected storage backends and the aggregator, generator,
publisher and orchestrator from configuration, and closes them again.
"""

import logging
from typing import Optional

from gist_agent import config
from gist_agent.collectors import build_default_providers
from gist_agent.collectors.aggregator import SourceAggregator
from gist_agent.generation.generator import ContentGenerator
from gist_agent.llm.client import OpenAIClient
from gist_agent.orchestrator import BatchOrchestrator
from gist_agent.publishing.images import ImageResolver
from gist_agent.publishing.publisher import Publisher
from gist_agent.storage.interfaces import CacheRepository, ConnectionError
from gist_agent.storage.object.s3 import S3ObjectStorage
from gist_agent.storage.postgres import (
    PostgreSQLCacheRepository,
    PostgreSQLConnectionPool,
    PostgreSQLPublishedItemRepository,
    PostgreSQLTrendRecordRepository,
)
from gist_agent.storage.redis import RedisCacheRepository

logger = logging.getLogger(__name__)


class PipelineFactory:
    """Owns the connections behind one running pipeline."""

    def __init__(self):
        self.db_pool: Optional[PostgreSQLConnectionPool] = None
        self.redis_cache: Optional[RedisCacheRepository] = None
        self.llm: Optional[OpenAIClient] = None

        self.cache: Optional[CacheRepository] = None
        self.publisher: Optional[Publisher] = None
        self.orchestrator: Optional[BatchOrchestrator] = None

    async def start(self) -> "PipelineFactory":
        """
        Connect storage and build the pipeline.

        Redis is optional: when it cannot be reached the pipeline caches in
        the PostgreSQL ``gist_cache`` table instead.

        Raises:
            ConfigurationError: If the OpenAI API key is missing
            ConnectionError: If PostgreSQL is unreachable
        """
        # Fails fast on missing credentials before any connection is opened
        self.llm = OpenAIClient(
            api_key=config.OPENAI_API_KEY,
            model=config.MODEL,
            image_model=config.IMAGE_MODEL,
            image_size=config.IMAGE_SIZE,
            timeout=config.LLM_TIMEOUT_SECONDS,
        )

        self.db_pool = PostgreSQLConnectionPool(**config.get_postgres_settings())
        pool = await self.db_pool.connect()
        await self.db_pool.init_schema()

        self.cache = await self._connect_cache(pool)

        trends = PostgreSQLTrendRecordRepository(pool)
        items = PostgreSQLPublishedItemRepository(pool)

        aggregator = SourceAggregator(
            providers=build_default_providers(),
            cache=self.cache,
            timeout_seconds=config.PROVIDER_TIMEOUT_SECONDS,
            cache_ttl_seconds=config.CACHE_TTL_SECONDS,
        )
        generator = ContentGenerator(
            llm=self.llm,
            aggregator=aggregator,
            cache=self.cache,
            cache_ttl_seconds=config.CACHE_TTL_SECONDS,
            max_article_length=config.MAX_ARTICLE_TEXT_LENGTH,
            summary_length=config.SUMMARY_MAX_LENGTH,
        )
        image_resolver = ImageResolver(
            storage=S3ObjectStorage(**config.get_s3_settings()),
            download_timeout_seconds=config.IMAGE_DOWNLOAD_TIMEOUT_SECONDS,
        )

        self.publisher = Publisher(generator, trends, items, image_resolver)
        self.orchestrator = BatchOrchestrator(
            publisher=self.publisher,
            trends=trends,
            items=items,
            batch_size=config.BATCH_SIZE,
            concurrency=config.BATCH_CONCURRENCY,
            default_topic=config.BATCH_DEFAULT_TOPIC,
        )
        logger.info("Pipeline ready")
        return self

    async def _connect_cache(self, pool) -> CacheRepository:
        self.redis_cache = RedisCacheRepository(**config.get_redis_settings())
        try:
            await self.redis_cache.connect()
            return self.redis_cache
        except ConnectionError as e:
            logger.warning(f"Redis unavailable, caching in PostgreSQL: {e}")
            self.redis_cache = None
            return PostgreSQLCacheRepository(pool, default_ttl=config.CACHE_TTL_SECONDS)

    async def close(self):
        if self.llm is not None:
            await self.llm.close()
        if self.redis_cache is not None:
            await self.redis_cache.close()
        if self.db_pool is not None:
            await self.db_pool.close()
        logger.info("Pipeline closed")
