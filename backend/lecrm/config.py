"""
LECRM Backend — Application Configuration
==========================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and yields one `Settings` object per process.
Who:   Built once by `create_app()` and stored on `app.state.settings`;
       routes receive it through a dependency.
When:  Constructed at process start; credentials are checked eagerly in the
       lifespan and again on every signed-URL request.

Required in production:
    SUPABASE_URL               Project URL, e.g. https://abcd.supabase.co
    SUPABASE_SERVICE_ROLE_KEY  Privileged service key (server-side only)
"""

from typing import List, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lecrm.exceptions import ConfigurationError

# Origins allowed to call the API from a browser: local dev servers plus the
# three Vercel deployments.
DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173,"
    "http://localhost:3000,"
    "https://lecrm-dev.vercel.app,"
    "https://lecrm-stg.vercel.app,"
    "https://lecrm.vercel.app"
)

MISSING_CREDENTIALS_MESSAGE = (
    "Supabase environment variables not configured. "
    "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Credentials default to empty strings so the server can still boot and
    report the misconfiguration through its responses instead of crashing
    on import.
    """

    # ── Supabase ──────────────────────────────────────────────────────────
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_role_key: str = Field(
        default="",
        description="Service role key; grants admin access, never ship to browsers",
    )

    # ── Storage ───────────────────────────────────────────────────────────
    # What: Private bucket holding task attachments
    storage_bucket: str = Field(default="task-attachments")

    # What: Lifetime of issued signed URLs in seconds (one hour by default)
    # Valid range: 1 minute to 7 days (Supabase's own upper bound)
    signed_url_expires_in: int = Field(default=3600, ge=60, le=604_800)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated origins (parsed by the property below)
    cors_origins: str = Field(default=DEFAULT_CORS_ORIGINS)

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list, dropping blanks."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ── Loading view ──────────────────────────────────────────────────────
    loading_logo_url: str = Field(default="/logo.png")

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def has_supabase_credentials(self) -> bool:
        return bool(self.supabase_url.strip() and self.supabase_service_role_key.strip())

    def supabase_credentials(self) -> Tuple[str, str]:
        """
        Return the (project_url, service_key) pair.

        Raises:
            ConfigurationError: If either value is missing. The message names
                both environment variables so the operator knows what to set.
        """
        if not self.has_supabase_credentials:
            raise ConfigurationError(
                MISSING_CREDENTIALS_MESSAGE,
                context={
                    "supabase_url_set": bool(self.supabase_url.strip()),
                    "service_key_set": bool(self.supabase_service_role_key.strip()),
                },
            )
        return self.supabase_url.strip(), self.supabase_service_role_key.strip()

    def validate_required(self) -> None:
        """Fail-fast check run during app startup (lifespan)."""
        self.supabase_credentials()
