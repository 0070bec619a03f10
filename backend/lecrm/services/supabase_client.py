"""
LECRM Backend — Supabase Client Factory
========================================

What:  Builds a Supabase client bound to a project URL and service key.
How:   supabase.create_client() with token auto-refresh and session
       persistence disabled. Every call made through the handle is
       authenticated by the static service key alone.
Who:   StorageService (per request) and every operator script.

Construction is purely in-memory: no request reaches Supabase until a
query or storage method is called on the returned handle.
"""

import logging
from typing import Callable, Optional

from supabase import Client, ClientOptions, create_client

from lecrm.config import MISSING_CREDENTIALS_MESSAGE
from lecrm.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Signature shared by the real factory and test doubles
ClientFactory = Callable[[str, str], Client]


def create_supabase_client(
    project_url: Optional[str],
    service_key: Optional[str],
) -> Client:
    """
    Create a stateless Supabase client.

    Args:
        project_url: Supabase project URL (SUPABASE_URL).
        service_key: Service role or anon key (SUPABASE_SERVICE_ROLE_KEY).

    Returns:
        A `supabase.Client` with auto_refresh_token=False and persist_session=False.

    Raises:
        ConfigurationError: Either argument is missing or blank.
    """
    if not project_url or not project_url.strip() or not service_key or not service_key.strip():
        raise ConfigurationError(MISSING_CREDENTIALS_MESSAGE)

    options = ClientOptions(auto_refresh_token=False, persist_session=False)
    logger.debug("Creating Supabase client for %s", project_url)
    return create_client(project_url.strip(), service_key.strip(), options=options)
