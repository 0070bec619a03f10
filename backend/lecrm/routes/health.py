"""
LECRM Backend — Health Check Route
===================================

What:  GET /health for uptime monitors and the hosting platform.
How:   Reports whether Supabase credentials are configured. No upstream
       request is made.

Status levels:
    - healthy:   credentials configured
    - degraded:  credentials missing (signed-URL requests will fail with 500)
"""

import logging
import time

from fastapi import APIRouter, Depends

from lecrm import __version__
from lecrm.config import Settings
from lecrm.dependencies import get_settings
from lecrm.schemas.storage import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    if settings.has_supabase_credentials:
        supabase_status, overall = "configured", "healthy"
    else:
        supabase_status, overall = "missing_credentials", "degraded"
        logger.warning("Health check: Supabase credentials are not configured")

    return HealthResponse(
        status=overall,
        version=__version__,
        supabase=supabase_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
