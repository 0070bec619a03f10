"""
LECRM Backend — Storage Route Handler
======================================

What:  GET /api/storage/getSignedUrl?path=<objectKey>
       Issues a one-hour signed URL for a file in the private
       task-attachments bucket so the browser can display it without
       holding Supabase credentials.
Who:   Called by the task attachment list in the frontend.

Request Flow:
    1. OPTIONS is answered by AllowListCORSMiddleware (never reaches here)
    2. POST/PUT/PATCH/DELETE/HEAD → 405 {"success": false, "error": "Method not allowed"}
    3. get_storage_service dependency → 500 if credentials are missing
    4. `path` missing or empty → 400
    5. One create_signed_url call → 200 with url, or 500 with the upstream message
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from lecrm.dependencies import get_storage_service
from lecrm.exceptions import MethodNotAllowedError, ValidationError
from lecrm.middleware.logging import record_outcome
from lecrm.schemas.storage import SignedUrlResponse
from lecrm.services.storage_service import StorageFailure, StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage", tags=["Storage"])

SIGNED_URL_PATH = "/getSignedUrl"


@router.get(
    SIGNED_URL_PATH,
    response_model=SignedUrlResponse,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Signed URL issued", "model": SignedUrlResponse},
        400: {"description": "Missing path query parameter", "model": SignedUrlResponse},
        500: {"description": "Missing credentials or storage failure", "model": SignedUrlResponse},
    },
    summary="Get a signed URL for a task attachment",
)
async def get_signed_url(
    request: Request,
    path: Optional[str] = Query(
        default=None,
        description="Object key inside the bucket, e.g. jobs/123/photo.jpg",
    ),
    service: StorageService = Depends(get_storage_service),
) -> JSONResponse:
    """
    Issue a signed URL for one storage object.

    Returns:
        200 {"success": true, "url": ...}
        500 {"success": false, "error": <upstream message>}

    Raises:
        ValidationError: `path` is absent or empty (400 via global handler).
    """
    if not path:
        raise ValidationError("path query parameter is required", field="path")

    result = await service.create_signed_url(path)

    if isinstance(result, StorageFailure):
        record_outcome(request, result.kind.value)
        body = SignedUrlResponse.failure(result.message)
        return JSONResponse(status_code=500, content=body.to_body())

    record_outcome(request, "issued")
    return JSONResponse(status_code=200, content=SignedUrlResponse.ok(result.url).to_body())


@router.api_route(
    SIGNED_URL_PATH,
    methods=["POST", "PUT", "PATCH", "DELETE", "HEAD"],
    include_in_schema=False,
)
async def reject_other_methods(request: Request) -> None:
    raise MethodNotAllowedError(request.method)
