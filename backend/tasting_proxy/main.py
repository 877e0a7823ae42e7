"""
Tasting Notes Proxy — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) wires Settings → ShopifyAdminClient →
       MetafieldDocumentStore → TastingService, stores them on app.state,
       registers middleware, exception handlers and routes.
Who:   uvicorn (`uvicorn tasting_proxy.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware:  Request ID → Logging → Origin Guard   │
    │                                                     │
    │  Routes:                                            │
    │    POST /proxy/save   POST /proxy/delete            │
    │    GET  /proxy/test   GET  /health                  │
    │                                                     │
    │  Exception Handlers:                                │
    │    Validation→400  Verification→401                 │
    │    Upstream→502    Rejected/Config/other→500        │
    └─────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from tasting_proxy import __version__
from tasting_proxy.config import Settings, settings as default_settings
from tasting_proxy.exceptions import (
    TastingProxyError,
    UpstreamError,
    ValidationError,
)
from tasting_proxy.middleware.logging import RequestLoggingMiddleware
from tasting_proxy.middleware.origin import OriginGuardMiddleware
from tasting_proxy.middleware.request_id import RequestIDMiddleware, request_id_var
from tasting_proxy.routes import health, proxy
from tasting_proxy.services.document_store import MetafieldDocumentStore
from tasting_proxy.services.shopify_client import ShopifyAdminClient
from tasting_proxy.services.tasting_service import TastingService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout
    (the hosting platform captures stdout).
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # httpx logs every request URL at INFO, which is noise next to our access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, check credentials.
    Shutdown: close the pooled Shopify HTTP client.
    """
    app_settings: Settings = app.state.settings
    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("Tasting Notes Proxy %s starting up...", __version__)

    # Don't exit: /health and /proxy/test should still answer, and the
    # proxy routes report the missing configuration per request.
    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Shop: %s (API %s), metafield %s.%s",
        app_settings.shopify_shop or "<unset>",
        app_settings.shopify_api_version,
        app_settings.metafield_namespace,
        app_settings.metafield_key,
    )
    logger.info("Allowed origins: %s", ", ".join(app_settings.allowed_origins_list))
    logger.info("=" * 60)

    yield

    logger.info("Tasting Notes Proxy shutting down...")
    await app.state.shopify.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(status_code: int, message: str, detail: Optional[str] = None) -> JSONResponse:
    """The `{ok: false, error}` envelope every failure uses."""
    content = {"ok": False, "error": message, "request_id": request_id_var.get("")}
    if detail is not None:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to status codes and the error envelope.

    Handler hierarchy:
        RequestValidationError   → 400 (bad JSON / wrong types / no body)
        ValidationError          → 400
        UpstreamError            → 502, upstream body in `detail`
        TastingProxyError (base) → exc.status_code (401 / 500)
        Exception (fallback)     → 500 "Server error: ..."
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        types = {e.get("type") for e in errors}
        if "json_invalid" in types:
            message = "Invalid JSON"
        elif types <= {"missing"}:
            message = "Missing required fields"
        else:
            message = "Invalid request body"
        logger.warning(
            "[%s] %s: %s",
            request_id_var.get(""),
            message,
            [(e.get("loc"), e.get("type")) for e in errors],
        )
        return error_response(400, message)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s %s", request_id_var.get(""), exc.message, exc.fields)
        return error_response(400, exc.message)

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        logger.error(
            "[%s] Upstream error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return error_response(502, exc.message, exc.detail)

    @app.exception_handler(TastingProxyError)
    async def handle_app_error(request: Request, exc: TastingProxyError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return error_response(exc.status_code, exc.message, exc.detail)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all; the stack trace goes to the log only."""
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return error_response(500, f"Server error: {exc}")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:  Configuration for this instance; defaults to the
                   environment-loaded singleton.
        transport: httpx transport for Shopify calls. Tests pass
                   httpx.MockTransport; production uses the default.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Tasting Notes Proxy",
        description=(
            "Storefront proxy that saves and removes a customer's wine tasting notes "
            "in a Shopify customer metafield."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # ── Wire services ─────────────────────────────────────────────────────
    shopify = ShopifyAdminClient(settings, transport=transport)
    store = MetafieldDocumentStore(
        shopify,
        namespace=settings.metafield_namespace,
        key=settings.metafield_key,
    )
    app.state.settings = settings
    app.state.shopify = shopify
    app.state.document_store = store
    app.state.tasting_service = TastingService(
        store,
        shopify,
        text_max_length=settings.text_max_length,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → GZip → OriginGuard
    app.add_middleware(
        OriginGuardMiddleware,
        allowed_origins=settings.allowed_origins_set,
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(proxy.router)
    app.include_router(health.router)

    return app


# uvicorn expects `tasting_proxy.main:app` to be importable
app = create_app()
