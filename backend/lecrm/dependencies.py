"""
FastAPI dependencies shared by the routes.

Settings and the storage service live on `app.state` (set by create_app),
so tests can build an app around their own Settings and client factory.
"""

from fastapi import Request

from lecrm.config import Settings
from lecrm.services.storage_service import StorageService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_service(request: Request) -> StorageService:
    """
    Return the app's StorageService after checking credentials.

    Raises ConfigurationError while SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY
    are unset, so every GET fails with 500 before request validation runs.
    """
    service: StorageService = request.app.state.storage_service
    service.ensure_configured()
    return service
