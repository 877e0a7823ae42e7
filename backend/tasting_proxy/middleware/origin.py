"""
Tasting Notes Proxy — Storefront Origin Guard
==============================================

What:  Allow-list check and CORS headers for the browser-facing proxy routes.
Why:   The routes act with an Admin API token; only our own storefront pages
       may call them. Starlette's CORSMiddleware only decorates responses and
       answers a bad preflight with a plain-text 400, while the storefront
       expects a JSON 401 and expects non-allowed POSTs to be refused outright.
How:   For guarded paths:
         OPTIONS  → 204 with CORS headers, or 401 "Origin not allowed (preflight)"
         other    → 401 "Origin not allowed" unless Origin is allowed;
                    otherwise the route runs and CORS headers are added.
                    An exception escaping the route becomes the 500 envelope
                    here, so the browser can still read it.
       Unguarded paths (probe, health) pass straight through.

Response headers on guarded paths:
    Access-Control-Allow-Origin:  <the request's Origin>
    Access-Control-Allow-Methods: POST, OPTIONS
    Access-Control-Allow-Headers: Content-Type
    Vary: Origin
"""

import logging
from typing import Dict, Iterable, Optional, Set

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from tasting_proxy.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

GUARDED_PATHS = frozenset({"/proxy/save", "/proxy/delete"})


def cors_headers(origin: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Vary": "Origin",
    }


class OriginGuardMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests from origins outside the allow-list on guarded paths.

    Args:
        allowed_origins: Exact origins (scheme + host), e.g. https://famelia.com.au
        guarded_paths:   Paths the guard applies to.
    """

    def __init__(
        self,
        app,
        allowed_origins: Iterable[str] = (),
        guarded_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.allowed_origins: Set[str] = set(allowed_origins)
        self.guarded_paths = frozenset(guarded_paths) if guarded_paths else GUARDED_PATHS

    def _reject(self, message: str, origin: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={
                "ok": False,
                "error": message,
                "request_id": request_id_var.get(""),
            },
            headers=cors_headers(origin or "*"),
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path not in self.guarded_paths:
            return await call_next(request)

        origin = request.headers.get("origin", "")
        allowed = origin in self.allowed_origins

        if request.method == "OPTIONS":
            if not allowed:
                logger.warning("Preflight from disallowed origin %r", origin)
                return self._reject("Origin not allowed (preflight)", origin)
            return Response(status_code=204, headers=cors_headers(origin))

        if not allowed:
            logger.warning(
                "%s %s from disallowed origin %r", request.method, request.url.path, origin
            )
            return self._reject("Origin not allowed", origin)

        try:
            response = await call_next(request)
        except Exception as e:
            # 500s on guarded paths still carry CORS headers and X-Request-ID
            logger.error(
                "[%s] Unexpected error: %s", request_id_var.get(""), str(e), exc_info=True
            )
            response = JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "error": f"Server error: {e}",
                    "request_id": request_id_var.get(""),
                },
            )
        response.headers.update(cors_headers(origin))
        return response
