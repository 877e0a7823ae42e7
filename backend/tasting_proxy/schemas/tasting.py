"""
Tasting Notes Proxy — Pydantic Request/Response Schemas
========================================================

What:  The API contract between the storefront and the proxy.
Why:   FastAPI validates bodies against these models and serializes responses.
How:   Every request field is optional at the schema level. Required-field
       checks live in TastingService so they produce the storefront's
       historical messages ("Missing required fields") instead of a 422.

Design Decision:
    Schemas are separate from the document models in models/tasting.py:
    the request carries a *patch* (which fields were supplied matters),
    the document carries *state*.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tasting_proxy.models.tasting import normalize_product_id


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the storefront sends
# ══════════════════════════════════════════════════════════════════════════


class ProductPayload(BaseModel):
    """
    What:  The wine being saved or removed, plus any notes for it.
    Why optional everywhere: On save, an omitted field keeps its stored value;
           `model_fields_set` tells TastingService what was actually sent.
    """

    model_config = ConfigDict(extra="ignore")

    product_id: Optional[int] = Field(default=None, description="Shopify product ID")
    handle: Optional[str] = Field(default=None, description="Product handle")
    title: Optional[str] = Field(default=None, description="Product title")
    rating: Optional[Union[int, float]] = Field(
        default=None, description="Rating; only numbers overwrite the stored value"
    )
    nose: Optional[str] = None
    palate: Optional[str] = None
    note: Optional[str] = None

    @field_validator("product_id", mode="before")
    @classmethod
    def lenient_product_id(cls, v):
        """
        Liquid renders a missing id as "" and ids often arrive as strings.
        Anything that is not a positive whole number counts as absent.
        """
        return normalize_product_id(v)

    @field_validator("rating", mode="before")
    @classmethod
    def numeric_rating_only(cls, v):
        """Ratings that are not JSON numbers are ignored, not rejected."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v


class SaveRequest(BaseModel):
    """Body of POST /proxy/save."""

    model_config = ConfigDict(extra="ignore")

    shop: Optional[str] = None
    customer_id: Optional[Union[int, str]] = None
    customer_email: Optional[str] = None
    event_handle: Optional[str] = None
    event_name: Optional[str] = None
    product: Optional[ProductPayload] = None


class DeleteRequest(BaseModel):
    """Body of POST /proxy/delete. The event is found by handle, else by name."""

    model_config = ConfigDict(extra="ignore")

    shop: Optional[str] = None
    customer_id: Optional[Union[int, str]] = None
    event_handle: Optional[str] = None
    event_name: Optional[str] = None
    product: ProductPayload = Field(default_factory=ProductPayload)

    @field_validator("product", mode="before")
    @classmethod
    def null_product(cls, v):
        return {} if v is None else v


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the proxy returns
# ══════════════════════════════════════════════════════════════════════════


class SaveResponse(BaseModel):
    ok: bool = True


class DeleteResponse(BaseModel):
    """
    Exactly one of `removed`, `empty`, `not_found` is present.

    Examples:
        {"ok": true, "removed": 1}
        {"ok": true, "empty": true}        customer has no tasting metafield
        {"ok": true, "notFound": "event"}  no event with that handle / name
    """

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    removed: Optional[int] = None
    empty: Optional[bool] = None
    not_found: Optional[str] = Field(default=None, alias="notFound")


class ProbeResponse(BaseModel):
    ok: bool = True
    where: str = "proxy/test"


class ErrorResponse(BaseModel):
    """
    Standardized error envelope for every failure.

    Example:
        {"ok": false, "error": "Customer verification failed", "request_id": "a1b2c3d4"}
    """

    ok: bool = False
    error: str = Field(description="Human-readable error description")
    detail: Optional[str] = Field(default=None, description="Upstream response body, if any")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="ok, or misconfigured when credentials are missing")
    version: str
    shopify_configured: bool
    uptime_seconds: float
