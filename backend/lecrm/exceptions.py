"""
LECRM Backend — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the error kinds the backend knows about.
How:   Each exception carries a message and optional context dict. Global
       exception handlers (registered in main.py) translate them into the
       `{"success": false, "error": "<message>"}` body with the right status.
Who:   Raised by settings, the client factory, routes and operator scripts.

Exception Hierarchy:
    LecrmError (base)                → 500
    ├── ConfigurationError           → 500 (missing credentials)
    ├── ValidationError              → 400 (client can fix the request)
    ├── MethodNotAllowedError        → 405
    └── UpstreamServiceError         → 500 (Supabase or internal API failed)

Upstream failures of the signed-URL call are NOT raised: the storage service
returns a `StorageFailure` result and the route turns it into a response.
"""

from typing import Any, Dict, Optional


class LecrmError(Exception):
    """
    Base exception for all LECRM backend errors.

    Attributes:
        message:  Human-readable description, returned to the caller as `error`
        context:  Extra debug info (logged, not returned)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Internal server error",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(LecrmError):
    """
    Raised when required configuration is missing.

    When:  SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset or empty.
    HTTP:  500 Internal Server Error
    """


class ValidationError(LecrmError):
    """
    Raised when a request fails validation before any upstream call.

    When:  Required query parameter is missing or empty.
    HTTP:  400 Bad Request

    Example response:
        {"success": false, "error": "path query parameter is required"}
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MethodNotAllowedError(LecrmError):
    """Raised for HTTP methods an endpoint does not serve. HTTP 405."""

    status_code = 405

    def __init__(
        self,
        method: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if method:
            ctx["method"] = method
        super().__init__(message="Method not allowed", context=ctx)
        self.method = method


class UpstreamServiceError(LecrmError):
    """
    Raised when a call to Supabase or to the deployed API fails.

    When:  Query errors, non-2xx responses, or payloads missing expected data.
    HTTP:  500 Internal Server Error (message passed through verbatim)
    """

    def __init__(
        self,
        message: str = "Upstream service request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
