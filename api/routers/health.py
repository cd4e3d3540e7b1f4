"""
Health and metrics endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Response

from api import __version__
from api.schemas.gists import HealthResponse
from gist_agent.observability.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report whether the pipeline and its backends came up."""
    from api.main import app_state

    pipeline = app_state.pipeline
    components = {
        "pipeline": pipeline is not None and pipeline.publisher is not None,
        "database": pipeline is not None and pipeline.db_pool is not None
        and pipeline.db_pool.pool is not None,
        "redis": pipeline is not None and pipeline.redis_cache is not None,
    }
    started_at = app_state.started_at or datetime.now(timezone.utc)

    return HealthResponse(
        status="healthy" if components["pipeline"] else "degraded",
        version=__version__,
        uptime_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
        components=components,
    )


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus exposition."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
