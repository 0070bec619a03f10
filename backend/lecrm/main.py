"""
LECRM Backend — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles settings, the storage service, middleware,
       exception handlers and routes, and returns the app.
Who:   uvicorn (`uvicorn lecrm.main:app`) and the test suite, which builds
       its own app around test settings and a fake Supabase client factory.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                        │
    │                                                       │
    │  Middleware Chain:                                    │
    │  ┌────────────┐ ┌─────────┐ ┌──────────┐ ┌────────┐  │
    │  │ Request ID │→│ Logging │→│   CORS   │→│ Errors │  │
    │  └────────────┘ └─────────┘ └──────────┘ └────────┘  │
    │                                                       │
    │  Routes:                                              │
    │  ┌──────────────────────────┐ ┌────────┐ ┌─────────┐ │
    │  │ GET /api/storage/        │ │ /health│ │/loading │ │
    │  │     getSignedUrl         │ └────────┘ └─────────┘ │
    │  └──────────────────────────┘                         │
    │                                                       │
    │  Exception Handlers → {"success": false, "error": …}  │
    │  Validation→400 │ Method→405 │ Config/Upstream→500    │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate credentials (logged, not fatal:
              requests report the problem as 500s), log startup complete.
    Shutdown: log shutdown. No pooled resources to release; Supabase
              clients are created per request.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from lecrm import __version__
from lecrm.config import Settings
from lecrm.exceptions import (
    ConfigurationError,
    LecrmError,
    MethodNotAllowedError,
    UpstreamServiceError,
    ValidationError,
)
from lecrm.middleware.cors import ALLOW_METHODS, AllowListCORSMiddleware
from lecrm.middleware.errors import UnhandledErrorMiddleware, error_response
from lecrm.middleware.logging import RequestLoggingMiddleware, record_outcome
from lecrm.middleware.request_id import RequestIDMiddleware, request_id_var
from lecrm.routes import health, storage
from lecrm.services.storage_service import StorageService
from lecrm.services.supabase_client import ClientFactory
from lecrm.views import loading

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, on stdout
    (the hosting platform collects stdout).
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party request chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    setup_logging(settings.log_level)
    logger.info("LECRM backend %s starting up...", __version__)

    try:
        settings.validate_required()
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e.message)
        logger.error("Signed-URL requests will fail with 500 until this is fixed.")

    logger.info(
        "Storage bucket=%s, signed URL lifetime=%ds, CORS origins=%s",
        settings.storage_bucket,
        settings.signed_url_expires_in,
        ", ".join(settings.cors_origins_list),
    )

    yield

    logger.info("LECRM backend shutting down.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes, all with the same body shape.

    Handler hierarchy:
        ValidationError         → 400
        MethodNotAllowedError   → 405
        ConfigurationError      → 500
        UpstreamServiceError    → 500 (upstream message passed through)
        LecrmError (base)       → 500
        StarletteHTTPException  → its own status; any 405 reads "Method not allowed"
        Exception (fallback)    → 500 with the exception's message

    Route-level surprises are answered by UnhandledErrorMiddleware; the
    Exception handler only sees failures raised inside the middleware chain.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        record_outcome(request, "invalid_path" if exc.field == "path" else "invalid_request")
        return error_response(400, exc.message)

    @app.exception_handler(MethodNotAllowedError)
    async def handle_method_not_allowed(request: Request, exc: MethodNotAllowedError):
        record_outcome(request, "method_not_allowed")
        return error_response(405, exc.message, headers={"Allow": ALLOW_METHODS})

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(request: Request, exc: ConfigurationError):
        logger.error(
            "[%s] Configuration error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        record_outcome(request, "missing_credentials")
        return error_response(500, exc.message)

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        logger.error("[%s] Upstream error: %s", request_id_var.get(""), exc.message)
        record_outcome(request, "upstream_error")
        return error_response(500, exc.message)

    @app.exception_handler(LecrmError)
    async def handle_app_error(request: Request, exc: LecrmError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Router-level 405s (TRACE, PROPFIND, ...) never reach the catch-all route
        if exc.status_code == 405:
            return await handle_method_not_allowed(request, MethodNotAllowedError(request.method))
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return error_response(500, str(exc))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[ClientFactory] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:        Explicit configuration; read from the environment when omitted.
        client_factory:  Builds Supabase clients; defaults to create_supabase_client.

    Returns: Fully configured FastAPI instance.
    """
    settings = settings or Settings()

    app = FastAPI(
        title="LECRM API",
        description="Signed URLs for private task attachments stored in Supabase.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage_service = StorageService(settings, client_factory)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → CORS → Errors → routes
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(AllowListCORSMiddleware, allow_origins=settings.cors_origins_list)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(storage.router)
    app.include_router(health.router)
    app.include_router(loading.router)

    return app


# uvicorn expects `lecrm.main:app` to be importable
app = create_app()
