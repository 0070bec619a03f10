"""
LECRM Backend — Storage Service (Signed URLs)
==============================================

What:  Issues time-limited signed URLs for objects in the private
       task-attachments bucket.
How:   Builds a Supabase client from the configured credentials, then runs
       `storage.from_(bucket).create_signed_url(path, expires_in)` in the
       threadpool (the Supabase storage client is synchronous).
Who:   GET /api/storage/getSignedUrl.
When:  Once per request. The client handle is recreated per call; nothing
       is cached and nothing is retried.

Result type:
    create_signed_url() never raises for upstream failures. It returns
    either IssuedUrl(url) or StorageFailure(kind, message) and the route
    branches on which one it got. Configuration errors still raise
    ConfigurationError because no upstream call was attempted.

        IssuedUrl        → 200 {"success": true,  "url": ...}
        StorageFailure   → 500 {"success": false, "error": ...}
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx
from starlette.concurrency import run_in_threadpool
from supabase import StorageException

from lecrm.config import Settings
from lecrm.services.supabase_client import ClientFactory, create_supabase_client

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to generate signed URL"


class FailureKind(str, enum.Enum):
    """Why an upstream signed-URL call did not produce a URL."""

    STORAGE_ERROR = "storage_error"        # Supabase answered with an error payload
    TRANSPORT_ERROR = "transport_error"    # network / HTTP failure before an answer
    EMPTY_RESPONSE = "empty_response"      # answered, but without a signed URL


@dataclass(frozen=True)
class IssuedUrl:
    url: str


@dataclass(frozen=True)
class StorageFailure:
    kind: FailureKind
    message: str


SignedUrlResult = Union[IssuedUrl, StorageFailure]


def _upstream_message(exc: Exception) -> str:
    """
    Pull the human-readable message out of a storage exception.

    storage3 raises either StorageApiError (with a `.message` attribute) or a
    bare StorageException wrapping the decoded JSON error body.
    """
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    if exc.args and isinstance(exc.args[0], dict):
        payload = exc.args[0]
        return str(payload.get("message") or payload.get("error") or DEFAULT_FAILURE_MESSAGE)
    return str(exc) or DEFAULT_FAILURE_MESSAGE


def _signed_url_from(data: Any) -> Optional[str]:
    # storage3 has returned both spellings across releases
    if isinstance(data, dict):
        return data.get("signedUrl") or data.get("signedURL")
    return None


class StorageService:
    """
    Signed-URL issuance against one bucket.

    Attributes:
        settings:        Application settings (credentials, bucket, expiry)
        client_factory:  Callable building a Supabase client; swapped in tests
    """

    def __init__(self, settings: Settings, client_factory: Optional[ClientFactory] = None):
        self.settings = settings
        self.client_factory = client_factory or create_supabase_client

    def ensure_configured(self) -> None:
        """Raise ConfigurationError before any request-level validation."""
        self.settings.supabase_credentials()

    async def create_signed_url(self, path: str) -> SignedUrlResult:
        """
        Ask Supabase for a signed URL for `path`.

        Args:
            path: Object key inside the bucket, e.g. "jobs/123/photo.jpg".

        Returns:
            IssuedUrl on success, StorageFailure otherwise.

        Raises:
            ConfigurationError: Credentials are missing.
        """
        project_url, service_key = self.settings.supabase_credentials()
        client = self.client_factory(project_url, service_key)
        bucket = client.storage.from_(self.settings.storage_bucket)

        try:
            data = await run_in_threadpool(
                bucket.create_signed_url, path, self.settings.signed_url_expires_in
            )
        except StorageException as exc:
            message = _upstream_message(exc)
            logger.error("Error creating signed URL for %s: %s", path, message)
            return StorageFailure(FailureKind.STORAGE_ERROR, message)
        except httpx.HTTPError as exc:
            logger.error("Storage request failed for %s: %s", path, exc)
            return StorageFailure(FailureKind.TRANSPORT_ERROR, str(exc) or DEFAULT_FAILURE_MESSAGE)

        url = _signed_url_from(data)
        if not url:
            logger.error("Storage returned no signed URL for %s: %r", path, data)
            return StorageFailure(FailureKind.EMPTY_RESPONSE, DEFAULT_FAILURE_MESSAGE)

        logger.info(
            "Issued signed URL for %s/%s (expires in %ds)",
            self.settings.storage_bucket,
            path,
            self.settings.signed_url_expires_in,
        )
        return IssuedUrl(url)
