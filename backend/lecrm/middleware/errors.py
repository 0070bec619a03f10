"""
LECRM Backend — Unhandled Error Middleware
===========================================

What:  Turns any exception that escapes a route into the standard
       `{"success": false, "error": "<message>"}` 500 response.
How:   Innermost middleware. The response it builds travels back out through
       CORS, logging and request-ID middleware like any other response, so
       allow-listed browsers can still read the error body.
"""

import logging
from typing import Optional

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lecrm.middleware.logging import record_outcome
from lecrm.middleware.request_id import request_id_var
from lecrm.schemas.storage import SignedUrlResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    body = SignedUrlResponse.failure(message or GENERIC_ERROR_MESSAGE).to_body()
    return JSONResponse(status_code=status_code, content=body, headers=headers)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Catches what the exception handlers did not and answers 500."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "[%s] Unexpected error: %s",
                request_id_var.get(""),
                exc,
                exc_info=True,
            )
            record_outcome(request, "unhandled_error")
            return error_response(500, str(exc))
