"""
Supabase access shared by the diagnostic scripts.
"""

import logging
from typing import Any, Dict, List

from supabase import Client, PostgrestAPIError

from lecrm.exceptions import UpstreamServiceError
from lecrm.scripts.env import load_local_env, resolve_credentials
from lecrm.services.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)


def connect() -> Client:
    """
    Load ./.env, resolve credentials (with VITE_* fallbacks) and build a client.

    Raises:
        ConfigurationError: No usable URL/key pair was found.
    """
    load_local_env()
    project_url, key = resolve_credentials()
    return create_supabase_client(project_url, key)


def fetch_rows(query: Any, description: str) -> List[Dict[str, Any]]:
    """
    Execute a PostgREST query builder and return its rows.

    Raises:
        UpstreamServiceError: Supabase rejected the query.
    """
    try:
        response = query.execute()
    except PostgrestAPIError as exc:
        logger.debug("Query failed (%s): %s", description, exc)
        raise UpstreamServiceError(
            f"Error querying {description}: {exc.message or exc}",
            context={"code": getattr(exc, "code", None)},
        ) from exc
    return list(response.data or [])
