"""
PostgreSQL repository implementations.

This module provides asyncpg-based implementations of the storage interfaces:
the TTL cache table, the read side of trend records and the published item
store. A partial unique index on ``gists.raw_trend_id`` backs the rule that a
trend yields at most one published item.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
from uuid import UUID

import asyncpg
from asyncpg import Pool

from gist_agent.storage.interfaces import (
    BaseCacheRepository,
    ConnectionError,
    IntegrityError,
    StorageError,
)
from gist_agent.types import PublishedItem, TrendRecord

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS gist_cache (
    cache_key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS raw_trends (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    image_url TEXT,
    processed BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS gists (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    topic TEXT NOT NULL,
    topic_category TEXT NOT NULL DEFAULT 'Trending',
    headline TEXT NOT NULL,
    context TEXT NOT NULL,
    narration TEXT NOT NULL,
    image_url TEXT,
    source_url TEXT,
    news_published_at TIMESTAMPTZ,
    raw_trend_id UUID REFERENCES raw_trends(id),
    audio_url TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'published',
    published_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    meta JSONB NOT NULL DEFAULT '{}'::jsonb
);

CREATE UNIQUE INDEX IF NOT EXISTS gists_raw_trend_id_unique
    ON gists (raw_trend_id) WHERE raw_trend_id IS NOT NULL;
"""


# ============================================================================
# Connection Pool Management
# ============================================================================


class PostgreSQLConnectionPool:
    """
    Manages PostgreSQL connection pool lifecycle.

    This class handles the creation and cleanup of the asyncpg pool shared by
    all repository instances.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "gists",
        user: str = "gist_user",
        password: str = "",
        min_size: int = 2,
        max_size: int = 10,
    ):
        """
        Initialize connection pool configuration.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[Pool] = None

    async def connect(self) -> Pool:
        """
        Create and return a connection pool.

        Raises:
            ConnectionError: If connection fails
        """
        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
            )
            logger.info(
                f"PostgreSQL connection pool created: {self.host}:{self.port}/{self.database}"
            )
            return self._pool
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to create connection pool: {e}")
            raise ConnectionError(f"Database connection failed: {e}")

    async def init_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        pool = await self.connect()
        try:
            await pool.execute(SCHEMA_SQL)
            logger.info("Database schema ensured")
        except asyncpg.PostgresError as e:
            raise StorageError(f"Schema creation failed: {e}", code=e.sqlstate)

    async def close(self):
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @property
    def pool(self) -> Optional[Pool]:
        """Get the connection pool instance."""
        return self._pool


# ============================================================================
# Helper Functions
# ============================================================================


def _row_to_trend_record(row: asyncpg.Record) -> TrendRecord:
    return TrendRecord(
        id=row["id"],
        image_url=row["image_url"],
        processed=row["processed"],
        created_at=row["created_at"],
    )


def _row_to_published_item(row: asyncpg.Record) -> PublishedItem:
    meta = row["meta"]
    if isinstance(meta, str):
        meta = json.loads(meta)
    return PublishedItem(
        id=row["id"],
        topic=row["topic"],
        topic_category=row["topic_category"],
        headline=row["headline"],
        context=row["context"],
        narration=row["narration"],
        image_url=row["image_url"],
        source_url=row["source_url"],
        news_published_at=row["news_published_at"],
        trend_id=row["raw_trend_id"],
        audio_url=row["audio_url"],
        status=row["status"],
        published_at=row["published_at"],
        created_at=row["created_at"],
        meta=meta or {},
    )


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Repositories
# ============================================================================


class PostgreSQLCacheRepository(BaseCacheRepository):
    """CacheRepository backed by the ``gist_cache`` table."""

    def __init__(self, pool: Pool, default_ttl: int = 3600):
        """
        Args:
            pool: asyncpg connection pool
            default_ttl: Default time-to-live in seconds
        """
        self.pool = pool
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value; an expired row is deleted and reported as absent.

        Raises:
            StorageError: If the query fails
        """
        try:
            row = await self.pool.fetchrow(
                "SELECT value, expires_at FROM gist_cache WHERE cache_key = $1",
                key,
            )
            if row is None:
                return None

            if row["expires_at"] <= datetime.now(timezone.utc):
                await self.pool.execute(
                    "DELETE FROM gist_cache WHERE cache_key = $1", key
                )
                logger.debug(f"Cache entry expired: {key}")
                return None

            return json.loads(row["value"])

        except asyncpg.PostgresError as e:
            logger.error(f"Failed to get cache key '{key}': {e}")
            raise StorageError(f"Cache retrieval failed: {e}", code=e.sqlstate)

    async def set(
        self, key: str, value: Any, ttl_seconds: Optional[int] = None
    ) -> bool:
        """
        Upsert a value with a fresh expiry.

        Raises:
            StorageError: If the write fails
        """
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        now = datetime.now(timezone.utc)
        try:
            await self.pool.execute(
                """
                INSERT INTO gist_cache (cache_key, value, expires_at, created_at)
                VALUES ($1, $2::jsonb, $3, $4)
                ON CONFLICT (cache_key) DO UPDATE SET
                    value = EXCLUDED.value,
                    expires_at = EXCLUDED.expires_at,
                    created_at = EXCLUDED.created_at
                """,
                key,
                json.dumps(value, default=str),
                now + timedelta(seconds=ttl),
                now,
            )
            return True
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to set cache key '{key}': {e}")
            raise StorageError(f"Cache set failed: {e}", code=e.sqlstate)

    async def delete(self, key: str) -> bool:
        try:
            result = await self.pool.execute(
                "DELETE FROM gist_cache WHERE cache_key = $1", key
            )
            return result.split()[-1] != "0"
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to delete cache key '{key}': {e}")
            raise StorageError(f"Cache deletion failed: {e}", code=e.sqlstate)


class PostgreSQLTrendRecordRepository:
    """PostgreSQL implementation of TrendRecordRepository."""

    def __init__(self, pool: Pool):
        """
        Initialize repository with a connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def get(self, trend_id: UUID) -> Optional[TrendRecord]:
        """
        Retrieve a trend record by ID.

        Returns:
            The trend record if found, None otherwise
        """
        try:
            row = await self.pool.fetchrow(
                "SELECT id, image_url, processed, created_at FROM raw_trends WHERE id = $1",
                trend_id,
            )
            return _row_to_trend_record(row) if row else None
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to get trend record {trend_id}: {e}")
            raise StorageError(f"Failed to get trend record: {e}", code=e.sqlstate)

    async def list_unpublished(self, limit: int = 10) -> List[TrendRecord]:
        """
        Unprocessed trend records that no published item references.

        Args:
            limit: Maximum number of records

        Returns:
            Candidates ordered newest first
        """
        query = """
            SELECT t.id, t.image_url, t.processed, t.created_at
            FROM raw_trends t
            WHERE t.processed = FALSE
              AND NOT EXISTS (
                  SELECT 1 FROM gists g WHERE g.raw_trend_id = t.id
              )
            ORDER BY t.created_at DESC
            LIMIT $1
        """
        try:
            rows = await self.pool.fetch(query, limit)
            return [_row_to_trend_record(row) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list unpublished trends: {e}")
            raise StorageError(f"Failed to list trends: {e}", code=e.sqlstate)

    async def mark_processed(self, trend_id: UUID) -> bool:
        try:
            result = await self.pool.execute(
                "UPDATE raw_trends SET processed = TRUE WHERE id = $1", trend_id
            )
            return result.split()[-1] != "0"
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to mark trend {trend_id} processed: {e}")
            raise StorageError(f"Failed to update trend: {e}", code=e.sqlstate)


class PostgreSQLPublishedItemRepository:
    """PostgreSQL implementation of PublishedItemRepository."""

    def __init__(self, pool: Pool):
        self.pool = pool

    async def insert(self, item: PublishedItem) -> PublishedItem:
        """
        Insert a published item.

        Returns:
            The persisted row

        Raises:
            IntegrityError: If the trend already has a published item
            StorageError: If the write fails
        """
        query = """
            INSERT INTO gists (
                topic, topic_category, headline, context, narration,
                image_url, source_url, news_published_at, raw_trend_id,
                audio_url, status, published_at, created_at, meta
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14::jsonb
            )
            RETURNING *
        """
        try:
            row = await self.pool.fetchrow(
                query,
                item.topic,
                item.topic_category,
                item.headline,
                item.context,
                item.narration,
                item.image_url,
                item.source_url,
                _utc(item.news_published_at),
                item.trend_id,
                item.audio_url,
                item.status,
                _utc(item.published_at),
                _utc(item.created_at),
                json.dumps(item.meta, default=str),
            )
            saved = _row_to_published_item(row)
            logger.debug(f"Inserted published item {saved.id}")
            return saved

        except asyncpg.UniqueViolationError as e:
            logger.warning(f"Trend {item.trend_id} already has a published item")
            raise IntegrityError(str(e), code=e.sqlstate)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to insert published item: {e}")
            raise StorageError(str(e), code=e.sqlstate)

    async def exists_for_trend(self, trend_id: UUID) -> bool:
        try:
            return await self.pool.fetchval(
                "SELECT EXISTS (SELECT 1 FROM gists WHERE raw_trend_id = $1)",
                trend_id,
            )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to check published items for {trend_id}: {e}")
            raise StorageError(f"Failed to check published items: {e}", code=e.sqlstate)
