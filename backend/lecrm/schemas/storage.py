"""
LECRM Backend — Pydantic Response Schemas
==========================================

What:  Pydantic models defining the JSON bodies the API returns.
How:   Routes build these models and serialize them with `exclude_none=True`
       so absent fields are omitted from the body rather than sent as null.

Body contract (every endpoint under /api):
    success=true  → `url` present and non-empty, no `error`
    success=false → `error` present and non-empty, no `url`
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SignedUrlResponse(BaseModel):
    """
    What:  Result of GET /api/storage/getSignedUrl, and the error body
           shared by the exception handlers.

    Example:
        {"success": true, "url": "https://xyz.supabase.co/storage/v1/object/sign/task-attachments/jobs/123/photo.jpg?token=..."}
        {"success": false, "error": "path query parameter is required"}
    """
    success: bool = Field(description="Whether a signed URL was issued")
    url: Optional[str] = Field(default=None, description="Time-limited signed URL")
    error: Optional[str] = Field(default=None, description="Human-readable failure reason")

    @model_validator(mode="after")
    def check_outcome(self) -> "SignedUrlResponse":
        if self.success:
            if not self.url:
                raise ValueError("a successful response requires a non-empty url")
            if self.error is not None:
                raise ValueError("a successful response cannot carry an error")
        else:
            if not self.error:
                raise ValueError("a failed response requires a non-empty error")
            if self.url is not None:
                raise ValueError("a failed response cannot carry a url")
        return self

    @classmethod
    def ok(cls, url: str) -> "SignedUrlResponse":
        return cls(success=True, url=url)

    @classmethod
    def failure(cls, error: str) -> "SignedUrlResponse":
        return cls(success=False, error=error)

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)


class HealthResponse(BaseModel):
    """
    What:  Health check response for monitoring and the hosting platform.

    `supabase` only reports whether credentials are configured; the health
    check never calls Supabase.
    """
    status: str = Field(description="Overall service status: healthy or degraded")
    version: str = Field(description="Application version")
    supabase: str = Field(description="configured or missing_credentials")
    uptime_seconds: float = Field(description="Seconds since service started")
