"""
Tasting Notes Proxy — Storefront Proxy Routes
==============================================

What:  POST /proxy/save, POST /proxy/delete and GET /proxy/test.
Why:   The storefront's tasting journal posts here from the browser.
How:   Bodies are validated into schemas, handed to TastingService, and the
       result is returned as-is. Origin checks and preflights are handled by
       OriginGuardMiddleware before these handlers run.

Design Principle:
    Routes stay THIN: they resolve the service from app state and return its
    response. Required-field checks and all document changes live in the
    service.
"""

import logging

from fastapi import APIRouter, Depends, Request

from tasting_proxy.schemas.tasting import (
    DeleteRequest,
    DeleteResponse,
    ErrorResponse,
    ProbeResponse,
    SaveRequest,
    SaveResponse,
)
from tasting_proxy.services.tasting_service import TastingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proxy", tags=["Proxy"])


def get_tasting_service(request: Request) -> TastingService:
    """The service built by create_app() for this application instance."""
    return request.app.state.tasting_service


@router.post(
    "/save",
    response_model=SaveResponse,
    responses={
        400: {"description": "Invalid JSON or missing fields", "model": ErrorResponse},
        401: {"description": "Origin or customer not allowed", "model": ErrorResponse},
        500: {"description": "Shopify rejected the document", "model": ErrorResponse},
        502: {"description": "Shopify unreachable", "model": ErrorResponse},
    },
    summary="Save a tasting note",
    description=(
        "Create or update the customer's notes for one wine in one tasting event. "
        "The customer's email must match Shopify's record."
    ),
)
async def save_note(
    payload: SaveRequest,
    service: TastingService = Depends(get_tasting_service),
) -> SaveResponse:
    return await service.save_note(payload)


@router.post(
    "/delete",
    response_model=DeleteResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Missing shop or customer_id", "model": ErrorResponse},
        401: {"description": "Origin not allowed", "model": ErrorResponse},
        502: {"description": "Shopify unreachable", "model": ErrorResponse},
    },
    summary="Delete a tasting note",
    description=(
        "Remove a wine (matched by product_id or handle) from one of the customer's "
        "tasting events. Returns the number removed, or `empty` / `notFound` markers."
    ),
)
async def delete_note(
    payload: DeleteRequest,
    service: TastingService = Depends(get_tasting_service),
) -> DeleteResponse:
    return await service.delete_note(payload)


@router.get(
    "/test",
    response_model=ProbeResponse,
    summary="Deployment probe",
)
async def probe() -> ProbeResponse:
    """Constant payload; proves the proxy is deployed and routing."""
    return ProbeResponse()
