"""
LECRM Backend — Request Logging Middleware
===========================================

What:  One access-log line per HTTP request, tagged with what the request
       amounted to (`issued`, `invalid_path`, `storage_error`, ...).
How:   Routes and exception handlers tag the request with record_outcome();
       the middleware reads the tag back from request.state once the
       response is ready, or when the downstream call raised.

Line format:
    GET /api/storage/getSignedUrl -> 200 issued 84.2ms [a1b2c3d4]

Not logged: query strings (object keys can name customer files), headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lecrm.middleware.request_id import request_id_var

logger = logging.getLogger("lecrm.access")

# Probed every few seconds by the platform
QUIET_PATHS = frozenset({"/health"})

NO_OUTCOME = "-"


def record_outcome(request: Request, outcome: str) -> None:
    """Tag the request for the access log. Last call wins."""
    request.state.outcome = outcome


def level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs status, outcome tag and latency of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            outcome = getattr(request.state, "outcome", NO_OUTCOME)
            logger.log(
                level_for(status),
                "%s %s -> %d %s %.1fms [%s]",
                request.method,
                request.url.path,
                status,
                outcome,
                (time.perf_counter() - started) * 1000,
                request_id_var.get(""),
                extra={"outcome": outcome, "status": status},
            )
