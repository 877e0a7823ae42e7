"""
Tasting Notes Proxy — Health Check Route
=========================================

What:  GET /health for container and load balancer probes.
How:   Reports version, uptime and whether Shopify credentials are present.
       It does not call Shopify: a probe every few seconds would spend the
       shop's API rate limit on nothing.
"""

import time

from fastapi import APIRouter, Request

from tasting_proxy import __version__
from tasting_proxy.schemas.tasting import HealthResponse

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    configured = request.app.state.settings.shopify_configured
    return HealthResponse(
        status="ok" if configured else "misconfigured",
        version=__version__,
        shopify_configured=configured,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
