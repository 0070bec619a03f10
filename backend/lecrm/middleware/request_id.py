"""
LECRM Backend — Request ID Middleware
======================================

What:  Tags each request with a short correlation ID and echoes it back.
How:   Reuses a client-sent X-Request-ID or generates one, stores it in a
       ContextVar (for loggers and exception handlers) and in request.state,
       then sets X-Request-ID on the response.
When:  Outermost middleware; runs before logging and CORS.

The ID is only ever returned as a header. Response bodies keep the
`{success, url?, error?}` shape.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns (or propagates) an X-Request-ID for every request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
