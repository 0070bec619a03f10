"""
Credential loading for operator scripts.

Scripts run on a developer machine, outside the hosting platform, so they
read a local `.env` (via python-dotenv) on top of the process environment.
Values already in the environment win over the file.

Lookup order for each credential:
    project URL:  SUPABASE_URL,              then VITE_SUPABASE_URL
    key:          SUPABASE_SERVICE_ROLE_KEY, then VITE_SUPABASE_ANON_KEY
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

from dotenv import load_dotenv

from lecrm.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

URL_VARS = ("SUPABASE_URL", "VITE_SUPABASE_URL")
KEY_VARS = ("SUPABASE_SERVICE_ROLE_KEY", "VITE_SUPABASE_ANON_KEY")


def load_local_env(path: Optional[Union[str, Path]] = None) -> bool:
    """
    Load KEY=VALUE pairs from `path` (default: ./.env) without overriding
    variables that are already set. Returns True if a file was loaded.
    """
    env_path = Path(path) if path is not None else Path.cwd() / ".env"
    if not env_path.is_file():
        return False
    loaded = load_dotenv(env_path, override=False)
    logger.debug("Loaded environment from %s", env_path)
    return loaded


def _first_set(environ: Mapping[str, str], names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


def resolve_project_url(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    return _first_set(os.environ if environ is None else environ, URL_VARS)


def resolve_credentials(environ: Optional[Mapping[str, str]] = None) -> Tuple[str, str]:
    """
    Return (project_url, key) using the fallbacks above.

    Raises:
        ConfigurationError: Either value is missing everywhere.
    """
    environ = os.environ if environ is None else environ
    project_url = _first_set(environ, URL_VARS)
    key = _first_set(environ, KEY_VARS)
    if not project_url or not key:
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in "
            "environment variables or .env file."
        )
    return project_url, key
