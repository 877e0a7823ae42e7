"""
Tasting Notes Proxy — Document Store
=====================================

What:  Where a customer's tasting document lives, behind a two-method interface.
Why:   TastingService only needs "give me the document" and "store this
       document". Keeping that behind an abstract class lets tests use an
       in-memory store and leaves room for a transactional backend.
How:   MetafieldDocumentStore keeps the document as a `json` customer
       metafield (default `tasting.events`) via ShopifyAdminClient.

Concurrency:
    get → mutate → put is not atomic. Two simultaneous writes for the same
    customer race and the last `put` wins for the whole document. Nothing
    here locks or compares versions; a replacement store is the place to add
    that.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from tasting_proxy.exceptions import (
    MetafieldWriteRejectedError,
    UpstreamFetchError,
    UpstreamWriteError,
)
from tasting_proxy.models.tasting import TastingDocument
from tasting_proxy.services.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)

CustomerId = Union[int, str]


class DocumentStore(ABC):
    """
    Abstract per-customer document store.

    Contract:
        - get() returns None when the customer has no document at all, and a
          (possibly empty) TastingDocument otherwise. Malformed stored data is
          reported as an empty document, not as an error.
        - put() replaces the whole document.
        - Implementations raise UpstreamFetchError / UpstreamWriteError for
          backend failures and MetafieldWriteRejectedError when the backend
          refuses the value.
    """

    @abstractmethod
    async def get(self, customer_id: CustomerId) -> Optional[TastingDocument]:
        ...

    @abstractmethod
    async def put(self, customer_id: CustomerId, document: TastingDocument) -> None:
        ...


class MetafieldDocumentStore(DocumentStore):
    """Tasting documents stored as a JSON customer metafield in Shopify."""

    def __init__(
        self,
        client: ShopifyAdminClient,
        namespace: str = "tasting",
        key: str = "events",
    ):
        self.client = client
        self.namespace = namespace
        self.key = key

    async def get(self, customer_id: CustomerId) -> Optional[TastingDocument]:
        metafield = await self.client.fetch_metafield(
            customer_id, self.namespace, self.key, error_cls=UpstreamFetchError
        )
        if not metafield:
            logger.debug(
                "Customer %s has no %s.%s metafield", customer_id, self.namespace, self.key
            )
            return None
        return TastingDocument.from_metafield_value(metafield.get("value"))

    async def put(self, customer_id: CustomerId, document: TastingDocument) -> None:
        value = document.to_metafield_value()
        user_errors = await self.client.set_metafield(
            customer_id, self.namespace, self.key, value, error_cls=UpstreamWriteError
        )
        if user_errors:
            messages = [e.get("message") or str(e) for e in user_errors]
            logger.warning(
                "metafieldsSet rejected document for customer %s: %s",
                customer_id,
                messages,
            )
            raise MetafieldWriteRejectedError(
                messages,
                context={"customer_id": str(customer_id), "user_errors": user_errors},
            )
        logger.info(
            "Stored %s.%s for customer %s (%d bytes)",
            self.namespace,
            self.key,
            customer_id,
            len(value),
        )
