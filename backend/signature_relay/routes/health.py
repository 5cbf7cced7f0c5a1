"""
Signature Relay — Health Check Route
====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Reports whether ServiceM8 credentials are configured. No vendor call is
       made: probing ServiceM8 on every check would spend API quota.

Status levels:
    - healthy:  API key configured
    - degraded: API key missing; every upload would fail with 500
"""

import logging
import time

from fastapi import APIRouter

from signature_relay import __version__
from signature_relay.config import settings
from signature_relay.schemas.signature import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    if settings.servicem8_configured:
        overall, servicem8_status = "healthy", "configured"
    else:
        overall, servicem8_status = "degraded", "not_configured"
        logger.warning("Health check: SERVICEM8_API_KEY is not configured")

    return HealthResponse(
        status=overall,
        version=__version__,
        servicem8=servicem8_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
