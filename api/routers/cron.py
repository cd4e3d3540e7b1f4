"""
Batch trigger endpoint.

Called by an external scheduler; authenticated with the cron shared secret
or an HMAC signature of the body.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.dependencies import get_orchestrator, verify_cron_trigger
from api.schemas.common import ErrorResponse
from api.schemas.gists import BatchSummaryResponse, CronTriggerRequest
from gist_agent.orchestrator import BatchOrchestrator
from gist_agent.storage.interfaces import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])


async def _parse_trigger(request: Request) -> CronTriggerRequest:
    raw = await request.body()
    if not raw.strip():
        return CronTriggerRequest()
    try:
        return CronTriggerRequest.model_validate_json(raw)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid trigger body: {e.errors()[0]['msg']}",
        )


@router.post(
    "/generate",
    response_model=BatchSummaryResponse,
    dependencies=[Depends(verify_cron_trigger)],
    responses={
        401: {"model": ErrorResponse, "description": "Missing or wrong credentials"},
        500: {"model": BatchSummaryResponse, "description": "Candidates could not be read"},
    },
)
async def generate_pending(
    request: Request,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Publish gists for trend records that do not have one yet."""
    trigger = await _parse_trigger(request)

    try:
        summary = await orchestrator.run(
            topic=trigger.topic, topic_category=trigger.topic_category
        )
    except StorageError as e:
        logger.error(f"Batch run failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=BatchSummaryResponse(
                success=False, generated=0, total_candidates=0, error=str(e)
            ).model_dump(),
        )

    return BatchSummaryResponse(**summary.model_dump())
