"""
Tasting Notes Proxy — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for each failure the proxy can report.
Why:   Services raise; global handlers in main.py turn them into the
       `{ok: false, error}` envelope with the right status code.
How:   Each exception carries a client-safe message, an optional `detail`
       (returned to the client, e.g. the upstream response body) and a
       `context` dict that is logged but never returned.

Exception Hierarchy:
    TastingProxyError (base)                 → 500
    ├── ValidationError                      → 400 Bad Request
    ├── CustomerVerificationError            → 401 Unauthorized
    ├── ConfigurationError                   → 500 (credentials missing)
    ├── MetafieldWriteRejectedError          → 500 (upstream userErrors)
    └── UpstreamError                        → 502 Bad Gateway
        ├── UpstreamFetchError
        └── UpstreamWriteError

Origin rejection (401) is answered directly by the origin middleware and has
no exception class; it never reaches a route.
"""

from typing import Any, Dict, List, Optional


class TastingProxyError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (returned as `error`)
        detail:   Optional extra text returned to the client as `detail`
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.detail = detail
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TastingProxyError):
    """
    Raised when the request body is unusable.

    When:    Invalid JSON, missing shop / customer_id / event_handle / product_id.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Missing required fields",
        fields: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if fields:
            ctx["fields"] = fields
        super().__init__(message=message, context=ctx)
        self.fields = fields or []


class CustomerVerificationError(TastingProxyError):
    """
    Raised when the email the storefront sent does not match Shopify's record.

    HTTP:    401 Unauthorized
    Why:     customer_id alone is guessable; the email proves the caller is
             rendering the page for that logged-in customer.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Customer verification failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(TastingProxyError):
    """Raised when the shop domain or Admin API token is not configured."""

    def __init__(
        self,
        message: str = "Server missing Shopify env vars",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MetafieldWriteRejectedError(TastingProxyError):
    """
    Raised when `metafieldsSet` answers with userErrors.

    The upstream messages are returned verbatim, joined with "; ", so the
    storefront can show what Shopify objected to.
    HTTP:    500
    """

    def __init__(
        self,
        messages: List[str],
        context: Optional[Dict[str, Any]] = None,
    ):
        self.messages = list(messages)
        super().__init__(message="; ".join(self.messages), context=context)


class UpstreamError(TastingProxyError):
    """
    Raised when a Shopify Admin API call fails at the HTTP or GraphQL level.

    What:    Transport error, non-2xx status, or a top-level `errors` array.
    HTTP:    502 Bad Gateway
    No retry: the request fails and the storefront decides what to do.
    """

    status_code = 502

    def __init__(
        self,
        message: str = "Shopify request failed",
        detail: Optional[str] = None,
        status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status is not None:
            ctx["upstream_status"] = status
        super().__init__(message=message, detail=detail, context=ctx)
        self.status = status


class UpstreamFetchError(UpstreamError):
    """Reading the customer or its metafield failed."""

    def __init__(
        self,
        message: str = "Shopify metafield fetch failed",
        detail: Optional[str] = None,
        status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, detail=detail, status=status, context=context)


class UpstreamWriteError(UpstreamError):
    """Writing the metafield failed."""

    def __init__(
        self,
        message: str = "Shopify metafield update failed",
        detail: Optional[str] = None,
        status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, detail=detail, status=status, context=context)
