"""
Tasting Notes Proxy — Request Logging Middleware
=================================================

What:  One access-log line per request: method, path, status, duration.
Why:   Platform logs are the only record of what happened to a save.
When:  Runs inside RequestIDMiddleware so the request ID is available.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, IP, request ID, Origin
    ❌ Don't log: request body (customer email, tasting notes), access token
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tasting_proxy.middleware.request_id import request_id_var

logger = logging.getLogger("tasting_proxy.access")

QUIET_PATHS = {"/health", "/proxy/test"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each HTTP request with its outcome.

    Level by status: 5xx → ERROR, 4xx → WARNING, otherwise INFO.
    Probe and health paths are not logged; they are polled constantly.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        origin = request.headers.get("origin", "-")
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s origin=%s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            origin,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
