"""
Publish endpoint.

Runs the publish pipeline for one request and returns its envelope with the
pipeline's status code.
"""

import json
import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_publisher, verify_admin_secret
from api.schemas.common import ErrorResponse
from api.schemas.gists import PublishEnvelope, PublishRequestBody
from gist_agent.publishing.publisher import Publisher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Publish"])


@router.post(
    "/publish",
    response_model=PublishEnvelope,
    status_code=201,
    dependencies=[Depends(verify_admin_secret)],
    responses={
        400: {"model": PublishEnvelope, "description": "Invalid request or unknown trend"},
        401: {"model": ErrorResponse, "description": "Missing or wrong admin secret"},
        409: {"model": PublishEnvelope, "description": "Trend already has a gist"},
        422: {"model": PublishEnvelope, "description": "Generated content incomplete"},
        502: {"model": PublishEnvelope, "description": "Generation vendor failed"},
    },
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {
                    "schema": PublishRequestBody.model_json_schema(),
                }
            }
        }
    },
)
async def publish_gist(
    request: Request,
    publisher: Publisher = Depends(get_publisher),
    x_request_id: Annotated[Optional[str], Header()] = None,
) -> JSONResponse:
    """
    Generate and publish a gist.

    The body is read raw and validated by the pipeline, so every failure,
    including an empty body or one that is not a JSON object, comes back in
    the same envelope with the stage that produced it.
    """
    payload = _decode_body(await request.body())
    response = await publisher.publish(payload, request_id=x_request_id)
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(mode="json"),
    )


def _decode_body(body: bytes) -> Any:
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        logger.info(f"Publish body is not valid JSON: {e}")
        return None
