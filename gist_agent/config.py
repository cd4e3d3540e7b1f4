import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# OpenAI API Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
MODEL = os.getenv("MODEL", "gpt-4o-mini")
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "dall-e-3")
# Smallest size dall-e-3 accepts
IMAGE_SIZE = os.getenv("IMAGE_SIZE", "1024x1024")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# News provider credentials (each optional)
NEWSAPI_KEY = os.getenv("NEWSAPI_KEY", "")
GUARDIAN_API_KEY = os.getenv("GUARDIAN_API_KEY", "")
MEDIASTACK_KEY = os.getenv("MEDIASTACK_KEY", "")
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))
PROVIDER_PAGE_SIZE = int(os.getenv("PROVIDER_PAGE_SIZE", "5"))

# Pipeline
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "3600"))
MAX_ARTICLE_TEXT_LENGTH = int(os.getenv("MAX_ARTICLE_TEXT_LENGTH", "4000"))
SUMMARY_MAX_LENGTH = int(os.getenv("SUMMARY_MAX_LENGTH", "150"))
IMAGE_DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("IMAGE_DOWNLOAD_TIMEOUT_SECONDS", "15"))

# Batch orchestration
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "10"))
BATCH_CONCURRENCY = int(os.getenv("BATCH_CONCURRENCY", "1"))
BATCH_DEFAULT_TOPIC = os.getenv("BATCH_DEFAULT_TOPIC", "Latest trending news")
GENERATE_SCHEDULE_MINUTE = os.getenv("GENERATE_SCHEDULE_MINUTE", "0")

# Trigger secrets
ADMIN_SECRET = os.getenv("ADMIN_SECRET", "")
CRON_SECRET = os.getenv("CRON_SECRET", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() == "true"
LOG_FILE = os.getenv("LOG_FILE") or None


# ============================================================================
# Connection Settings
# ============================================================================


def get_postgres_settings() -> Dict[str, Any]:
    """Connection settings for the PostgreSQL pool."""
    return {
        "host": os.getenv("POSTGRES_HOST", "localhost"),
        "port": int(os.getenv("POSTGRES_PORT", "5432")),
        "database": os.getenv("POSTGRES_DB", "gists"),
        "user": os.getenv("POSTGRES_USER", "gist_user"),
        "password": os.getenv("POSTGRES_PASSWORD", ""),
        "min_size": int(os.getenv("POSTGRES_POOL_MIN", "2")),
        "max_size": int(os.getenv("POSTGRES_POOL_MAX", "10")),
    }


def get_redis_settings() -> Dict[str, Any]:
    """Connection settings for the Redis cache."""
    return {
        "host": os.getenv("REDIS_HOST", "localhost"),
        "port": int(os.getenv("REDIS_PORT", "6379")),
        "db": int(os.getenv("REDIS_DB", "0")),
        "password": os.getenv("REDIS_PASSWORD") or None,
        "default_ttl": CACHE_TTL_SECONDS,
    }


def get_s3_settings() -> Dict[str, Optional[str]]:
    """Settings for the object store holding re-hosted images."""
    return {
        "bucket_name": os.getenv("S3_BUCKET", "gist-images"),
        "endpoint_url": os.getenv("S3_ENDPOINT_URL") or None,
        "public_base_url": os.getenv("S3_PUBLIC_BASE_URL") or None,
        "aws_access_key_id": os.getenv("S3_ACCESS_KEY_ID") or None,
        "aws_secret_access_key": os.getenv("S3_SECRET_ACCESS_KEY") or None,
        "region_name": os.getenv("S3_REGION", "us-east-1"),
    }


def get_celery_settings() -> Dict[str, str]:
    """Broker and result backend URLs for the scheduler."""
    return {
        "broker_url": os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1"),
        "result_backend": os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/2"),
    }
