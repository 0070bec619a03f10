"""
LECRM Backend — Allow-List CORS Middleware
===========================================

What:  Sets CORS headers for a fixed list of browser origins and answers
       preflight (OPTIONS) requests.
How:   If the request's Origin is in the allow-list it is echoed back in
       Access-Control-Allow-Origin; otherwise that header is left off and the
       browser blocks the response. Allowed methods/headers are always sent.
       Every OPTIONS request is answered here with 200 and an empty body.

Unlike Starlette's CORSMiddleware, OPTIONS from an unknown origin still gets 200.
"""

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOW_METHODS = "GET, OPTIONS"
ALLOW_HEADERS = "Content-Type"


class AllowListCORSMiddleware(BaseHTTPMiddleware):
    """Echoes allow-listed origins and short-circuits preflight requests."""

    def __init__(
        self,
        app: ASGIApp,
        allow_origins: Iterable[str] = (),
        allow_methods: str = ALLOW_METHODS,
        allow_headers: str = ALLOW_HEADERS,
    ):
        super().__init__(app)
        self.allow_origins = frozenset(allow_origins)
        self.allow_methods = allow_methods
        self.allow_headers = allow_headers

    def apply_headers(self, request: Request, response: Response) -> None:
        origin = request.headers.get("origin")
        if origin and origin in self.allow_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = self.allow_methods
        response.headers["Access-Control-Allow-Headers"] = self.allow_headers

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        self.apply_headers(request, response)
        return response
