"""
FastAPI main application for the gist pipeline API.

This module initializes the FastAPI app, configures logging, error handlers
and the pipeline lifecycle, and includes all API routers.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.routers import admin, cron, health, publish
from api.schemas.common import ErrorResponse
from gist_agent import config
from gist_agent.factory import PipelineFactory
from gist_agent.observability.logging import setup_logging
from gist_agent.storage.interfaces import ConnectionError, StorageError

setup_logging(level=config.LOG_LEVEL, log_file=config.LOG_FILE, json_format=config.LOG_JSON)
logger = logging.getLogger(__name__)


class AppState:
    """Application state container."""

    def __init__(self):
        self.pipeline: Optional[PipelineFactory] = None
        self.started_at: Optional[datetime] = None


app_state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Missing OpenAI credentials abort startup. An unreachable database leaves
    the API running in degraded mode: pipeline endpoints answer 503.
    """
    logger.info("Starting gist pipeline API...")
    app_state.started_at = datetime.now(timezone.utc)

    factory = PipelineFactory()
    try:
        await factory.start()
        app_state.pipeline = factory
        logger.info("Pipeline initialized")
    except (ConnectionError, StorageError) as e:
        logger.warning(f"Pipeline unavailable, storage connection failed: {e}")
        await factory.close()

    yield

    logger.info("Shutting down gist pipeline API...")
    if app_state.pipeline is not None:
        await app_state.pipeline.close()
        app_state.pipeline = None
    logger.info("API shutdown complete")


app = FastAPI(
    title="Gist Pipeline API",
    description="""
    ## AI-narrated news gists

    Turns trend records into short narrated gists grounded on current news.

    - **Publish**: `POST /admin/publish` (header `x-admin-secret`)
    - **Batch**: `POST /cron/generate` (header `x-cron-secret` or `x-cron-signature`)
    - **Cache**: `POST /admin/cache/clear`
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# Exception handlers


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent error response format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            detail=str(exc.detail),
            code=f"HTTP_{exc.status_code}",
            timestamp=_timestamp(),
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="Validation Error",
            detail=str(exc),
            code="VALIDATION_ERROR",
            timestamp=_timestamp(),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal Server Error",
            detail="An unexpected error occurred",
            code="INTERNAL_ERROR",
            timestamp=_timestamp(),
        ).model_dump(),
    )


@app.get("/", tags=["Root"])
async def root() -> Dict[str, Any]:
    """API root endpoint providing basic information."""
    return {
        "name": "Gist Pipeline API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "publish": "/admin/publish",
            "generate": "/cron/generate",
            "cache_clear": "/admin/cache/clear",
            "health": "/health",
            "metrics": "/metrics",
        },
    }


app.include_router(health.router)
app.include_router(publish.router)
app.include_router(cron.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
    )
