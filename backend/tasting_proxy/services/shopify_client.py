"""
Tasting Notes Proxy — Shopify Admin GraphQL Client
===================================================

What:  Thin async wrapper around the Shopify Admin GraphQL endpoint.
Why:   Every upstream call needs the same URL, token header and error
       translation; routes and services should only see typed results.
How:   One pooled httpx.AsyncClient per application. Each call POSTs
       `{query, variables}` and raises UpstreamError on transport failure,
       non-2xx status or a top-level `errors` array.
Who:   Used by TastingService (customer verification) and by
       MetafieldDocumentStore (read / write the tasting document).

No retry or backoff: a failed call fails the request. The only limit is the
transport timeout from settings.upstream_timeout.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from tasting_proxy.config import Settings
from tasting_proxy.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

CUSTOMER_EMAIL_QUERY = """
query($id: ID!) {
  customer(id: $id) { id email }
}
"""

CUSTOMER_METAFIELD_QUERY = """
query($id: ID!, $namespace: String!, $key: String!) {
  customer(id: $id) {
    metafield(namespace: $namespace, key: $key) { id type value }
  }
}
"""

METAFIELDS_SET_MUTATION = """
mutation($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields { id }
    userErrors { field message }
  }
}
"""


def customer_gid(customer_id: Union[int, str]) -> str:
    """
    Build the GraphQL global id for a customer.

    >>> customer_gid(7012345)
    'gid://shopify/Customer/7012345'
    """
    value = str(customer_id).strip()
    if value.startswith("gid://"):
        return value
    return f"gid://shopify/Customer/{value}"


class ShopifyAdminClient:
    """
    Shopify Admin GraphQL client bound to one shop and one access token.

    Args:
        settings:  Supplies shop domain, token, API version and timeout.
        transport: Optional httpx transport; tests pass httpx.MockTransport.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = httpx.AsyncClient(
            timeout=settings.upstream_timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def endpoint(self) -> str:
        return (
            f"https://{self.settings.shopify_shop}"
            f"/admin/api/{self.settings.shopify_api_version}/graphql.json"
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def graphql(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        error_cls: type = UpstreamError,
        error_message: str = "Shopify request failed",
    ) -> Dict[str, Any]:
        """
        Execute one GraphQL operation and return its `data` object.

        Raises:
            ConfigurationError: shop or token is not configured.
            error_cls (an UpstreamError subclass): the call failed. `detail`
                carries the upstream body or the GraphQL `errors` array.
        """
        if not self.settings.shopify_configured:
            raise ConfigurationError()

        try:
            response = await self._client.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={"X-Shopify-Access-Token": self.settings.shopify_admin_token},
            )
        except httpx.HTTPError as e:
            logger.error("Shopify request error: %s", e)
            raise error_cls(
                message=error_message,
                detail=str(e) or type(e).__name__,
                context={"error_type": type(e).__name__},
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error or body is None:
            logger.error("Shopify returned HTTP %d", response.status_code)
            raise error_cls(
                message=error_message,
                detail=response.text,
                status=response.status_code,
            )

        if not isinstance(body, dict) or body.get("errors"):
            errors = body.get("errors") if isinstance(body, dict) else body
            logger.error("Shopify GraphQL errors: %s", errors)
            raise error_cls(
                message=error_message,
                detail=json.dumps(errors),
                status=response.status_code,
            )

        logger.debug("Shopify GraphQL call succeeded (HTTP %d)", response.status_code)
        return body.get("data") or {}

    async def fetch_customer_email(
        self,
        customer_id: Union[int, str],
        error_cls: type = UpstreamError,
    ) -> Optional[str]:
        """Return the customer's email on record, or None if unknown."""
        data = await self.graphql(
            CUSTOMER_EMAIL_QUERY,
            {"id": customer_gid(customer_id)},
            error_cls=error_cls,
            error_message="Shopify customer lookup failed",
        )
        customer = data.get("customer") or {}
        return customer.get("email")

    async def fetch_metafield(
        self,
        customer_id: Union[int, str],
        namespace: str,
        key: str,
        error_cls: type = UpstreamError,
    ) -> Optional[Dict[str, Any]]:
        """
        Read one customer metafield.

        Returns:
            `{"id", "type", "value"}` or None when the metafield (or the
            customer) does not exist.
        """
        data = await self.graphql(
            CUSTOMER_METAFIELD_QUERY,
            {"id": customer_gid(customer_id), "namespace": namespace, "key": key},
            error_cls=error_cls,
            error_message="Shopify metafield fetch failed",
        )
        customer = data.get("customer") or {}
        return customer.get("metafield")

    async def set_metafield(
        self,
        customer_id: Union[int, str],
        namespace: str,
        key: str,
        value: str,
        error_cls: type = UpstreamError,
    ) -> List[Dict[str, Any]]:
        """
        Create or replace a `json` customer metafield.

        Returns:
            The mutation's userErrors list (empty on success).
        """
        data = await self.graphql(
            METAFIELDS_SET_MUTATION,
            {
                "metafields": [
                    {
                        "ownerId": customer_gid(customer_id),
                        "namespace": namespace,
                        "key": key,
                        "type": "json",
                        "value": value,
                    }
                ]
            },
            error_cls=error_cls,
            error_message="Shopify metafield update failed",
        )
        result = data.get("metafieldsSet") or {}
        return result.get("userErrors") or []
