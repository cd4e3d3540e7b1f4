"""
FastAPI dependency injection providers.

This module provides the pipeline components held in application state and
the shared-secret checks guarding the admin and cron endpoints.
"""

import base64
import hashlib
import hmac
from typing import Annotated, Optional

from fastapi import Header, HTTPException, Request, status

from gist_agent import config
from gist_agent.orchestrator import BatchOrchestrator
from gist_agent.publishing.publisher import Publisher
from gist_agent.storage.interfaces import CacheRepository


# Shared-secret authentication


def _secrets_match(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def sign_body(secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 signature of a request body."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


async def verify_admin_secret(
    x_admin_secret: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Verify the admin secret header.

    Raises:
        HTTPException: 503 if no admin secret is configured, 401 if the
            header is missing or wrong
    """
    if not config.ADMIN_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin secret not configured",
        )

    if not _secrets_match(x_admin_secret, config.ADMIN_SECRET):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin secret",
        )


async def verify_cron_trigger(
    request: Request,
    x_cron_secret: Annotated[Optional[str], Header()] = None,
    x_cron_signature: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Authenticate a batch trigger.

    Accepts either the shared secret in ``x-cron-secret`` or a base64
    HMAC-SHA256 signature of the raw body in ``x-cron-signature``.

    Raises:
        HTTPException: 503 if no cron secret is configured, 401 otherwise
    """
    secret = config.CRON_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cron secret not configured",
        )

    if _secrets_match(x_cron_secret, secret):
        return

    if x_cron_signature:
        body = await request.body()
        if _secrets_match(x_cron_signature, sign_body(secret, body)):
            return

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing cron credentials",
    )


# Pipeline dependencies


async def get_publisher() -> Publisher:
    """
    Get the publisher from application state.

    Raises:
        HTTPException: If the pipeline failed to start
    """
    from api.main import app_state

    if app_state.pipeline is None or app_state.pipeline.publisher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline not initialized",
        )
    return app_state.pipeline.publisher


async def get_orchestrator() -> BatchOrchestrator:
    """
    Get the batch orchestrator from application state.

    Raises:
        HTTPException: If the pipeline failed to start
    """
    from api.main import app_state

    if app_state.pipeline is None or app_state.pipeline.orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline not initialized",
        )
    return app_state.pipeline.orchestrator


async def get_cache_repository() -> Optional[CacheRepository]:
    """Get the cache from application state, or None if not initialized."""
    from api.main import app_state

    if app_state.pipeline is None:
        return None
    return app_state.pipeline.cache
