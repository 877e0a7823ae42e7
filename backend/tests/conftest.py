"""
Tasting Notes Proxy — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Shopify is replaced by FakeShopify, an httpx.MockTransport handler that
       answers the three GraphQL operations the proxy uses and records every
       call. Endpoint tests drive the app through httpx's ASGITransport.

Fixture Hierarchy:
    ├── test_settings: Settings with a fake shop/token and a known origin
    ├── fake_shopify: In-memory Shopify Admin API
    ├── shopify_client: ShopifyAdminClient talking to fake_shopify
    ├── memory_store: In-memory DocumentStore (no HTTP at all)
    ├── test_app: create_app() wired to fake_shopify
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

# Set before any tasting_proxy import so the module-level settings singleton
# never picks up real credentials from the developer's environment.
os.environ["SHOPIFY_SHOP"] = "test-shop.myshopify.com"
os.environ["SHOPIFY_ADMIN_TOKEN"] = "shpat_test_not_real"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tasting_proxy.config import Settings
from tasting_proxy.models.tasting import TastingDocument
from tasting_proxy.services.document_store import DocumentStore
from tasting_proxy.services.shopify_client import ShopifyAdminClient

ALLOWED_ORIGIN = "https://famelia.com.au"
CUSTOMER_ID = 7012345
CUSTOMER_EMAIL = "Jane.Doe@example.com"


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class FakeShopify:
    """
    Minimal stand-in for the Shopify Admin GraphQL endpoint.

    State:
        customers:   {gid: email}
        metafields:  {gid: raw metafield value string}
        user_errors: returned by the next metafieldsSet calls when set
        fail_status: when set, every request answers with this HTTP status
    """

    def __init__(self):
        self.customers: Dict[str, str] = {}
        self.metafields: Dict[str, str] = {}
        self.user_errors: List[Dict[str, Any]] = []
        self.fail_status: Optional[int] = None
        self.fail_on: Optional[str] = None
        self.requests: List[Dict[str, Any]] = []

    def add_customer(self, customer_id, email, document: Optional[Any] = None):
        gid = f"gid://shopify/Customer/{customer_id}"
        self.customers[gid] = email
        if document is not None:
            self.metafields[gid] = document if isinstance(document, str) else json.dumps(document)

    def document(self, customer_id) -> Dict[str, Any]:
        return json.loads(self.metafields[f"gid://shopify/Customer/{customer_id}"])

    def operations(self) -> List[str]:
        return [r["operation"] for r in self.requests]

    @staticmethod
    def _operation(query: str) -> str:
        if "metafieldsSet" in query:
            return "write"
        if "metafield(" in query:
            return "read"
        return "customer"

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        operation = self._operation(body["query"])
        self.requests.append(
            {
                "operation": operation,
                "url": str(request.url),
                "token": request.headers.get("X-Shopify-Access-Token"),
                "variables": body.get("variables") or {},
            }
        )

        if self.fail_status and self.fail_on in (None, operation):
            return httpx.Response(self.fail_status, text="upstream exploded")

        variables = body.get("variables") or {}
        if operation == "customer":
            email = self.customers.get(variables["id"])
            customer = {"id": variables["id"], "email": email} if email else None
            return httpx.Response(200, json={"data": {"customer": customer}})

        if operation == "read":
            gid = variables["id"]
            value = self.metafields.get(gid)
            metafield = (
                {"id": "gid://shopify/Metafield/1", "type": "json", "value": value}
                if value is not None
                else None
            )
            return httpx.Response(200, json={"data": {"customer": {"metafield": metafield}}})

        if self.user_errors:
            return httpx.Response(
                200,
                json={"data": {"metafieldsSet": {"metafields": [], "userErrors": self.user_errors}}},
            )
        entry = variables["metafields"][0]
        self.metafields[entry["ownerId"]] = entry["value"]
        return httpx.Response(
            200,
            json={
                "data": {
                    "metafieldsSet": {
                        "metafields": [{"id": "gid://shopify/Metafield/1"}],
                        "userErrors": [],
                    }
                }
            },
        )


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore backed by a dict; counts puts for assertions."""

    def __init__(self, documents: Optional[Dict[str, Any]] = None):
        self.documents: Dict[str, Any] = dict(documents or {})
        self.put_count = 0

    async def get(self, customer_id):
        raw = self.documents.get(str(customer_id))
        if raw is None:
            return None
        return TastingDocument.from_metafield_value(raw)

    async def put(self, customer_id, document):
        self.put_count += 1
        self.documents[str(customer_id)] = document.to_metafield_value()

    def stored(self, customer_id) -> Dict[str, Any]:
        return json.loads(self.documents[str(customer_id)])


class StepClock:
    """Returns a fixed start time, advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 9, 14, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        shopify_shop="test-shop.myshopify.com",
        shopify_admin_token="shpat_test_not_real",
        allowed_origins=f"{ALLOWED_ORIGIN},https://www.famelia.com.au",
        log_level="WARNING",
    )


@pytest.fixture
def fake_shopify() -> FakeShopify:
    shop = FakeShopify()
    shop.add_customer(CUSTOMER_ID, CUSTOMER_EMAIL)
    return shop


@pytest_asyncio.fixture
async def shopify_client(test_settings, fake_shopify):
    client = ShopifyAdminClient(test_settings, transport=httpx.MockTransport(fake_shopify.handler))
    yield client
    await client.close()


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest_asyncio.fixture
async def test_app(test_settings, fake_shopify):
    """A fresh app instance whose Shopify calls go to fake_shopify."""
    from tasting_proxy.main import create_app

    app = create_app(test_settings, transport=httpx.MockTransport(fake_shopify.handler))
    yield app
    await app.state.shopify.close()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient routed straight into test_app.

    Usage:
        async def test_probe(test_client):
            response = await test_client.get("/proxy/test")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
