"""
Tasting Notes Proxy — Tasting Service (Business Logic)
=======================================================

What:  Save and delete a customer's tasting notes.
Why:   Keeps the read-merge-write rules out of the route handlers so they can
       be tested with an in-memory store and a mocked Shopify client.
How:   Each operation validates the request, reads the whole document from the
       DocumentStore, changes it in memory and writes it back.

Save flow (POST /proxy/save):
    ┌──────────┐   ┌──────────────┐   ┌──────────┐   ┌─────────┐   ┌──────────┐
    │ Validate │──▶│ Verify email │──▶│ Read doc │──▶│  Merge  │──▶│ Write doc│
    └──────────┘   └──────────────┘   └──────────┘   └─────────┘   └──────────┘

Delete flow (POST /proxy/delete):
    Validate → Read doc (None → empty) → find event (None → notFound)
             → filter wines → Write doc

Error Handling Strategy:
    Application exceptions propagate unchanged. Anything else is wrapped in a
    TastingProxyError("Server error: ...") so the client always gets the
    JSON envelope.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from tasting_proxy.exceptions import (
    CustomerVerificationError,
    TastingProxyError,
    UpstreamFetchError,
    ValidationError,
)
from tasting_proxy.models.tasting import TastingDocument, TastingEntry, TastingEvent
from tasting_proxy.schemas.tasting import (
    DeleteRequest,
    DeleteResponse,
    ProductPayload,
    SaveRequest,
    SaveResponse,
)
from tasting_proxy.services.document_store import DocumentStore
from tasting_proxy.services.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("nose", "palate", "note")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """
    ISO 8601 UTC with milliseconds and a Z suffix, the format the storefront
    already stores (JavaScript's Date.toISOString).

    >>> format_timestamp(datetime(2024, 9, 14, 9, 12, 3, 120500, tzinfo=timezone.utc))
    '2024-09-14T09:12:03.120Z'
    """
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def clip(text: Any, limit: int) -> str:
    if text is None:
        return ""
    return str(text)[:limit]


class TastingService:
    """
    Orchestrates saves and deletes against a DocumentStore.

    Args:
        store:           Where documents are read from and written to.
        shopify:         Used to look up the customer's email for verification.
        text_max_length: Limit applied to nose / palate / note.
        clock:           Returns "now" as an aware datetime; injectable for tests.
    """

    def __init__(
        self,
        store: DocumentStore,
        shopify: ShopifyAdminClient,
        text_max_length: int = 2000,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.shopify = shopify
        self.text_max_length = text_max_length
        self.clock = clock

    # ── Save ──────────────────────────────────────────────────────────────

    async def save_note(self, request: SaveRequest) -> SaveResponse:
        """
        Upsert one wine's notes into the customer's event.

        Raises:
            ValidationError: a required field is missing (400)
            CustomerVerificationError: email does not match Shopify (401)
            UpstreamError / MetafieldWriteRejectedError: upstream failed
        """
        product = request.product
        missing = [
            name for name, value in (
                ("shop", request.shop),
                ("customer_id", request.customer_id),
                ("customer_email", request.customer_email),
                ("event_handle", request.event_handle),
                ("product.product_id", product.product_id if product else None),
            )
            if not value
        ]
        if missing:
            raise ValidationError("Missing required fields", fields=missing)

        try:
            await self.verify_customer(request.customer_id, request.customer_email)

            document = await self.store.get(request.customer_id)
            if document is None:
                document = TastingDocument.empty()

            now = format_timestamp(self.clock())
            event = self._ensure_event(
                document, request.event_handle, request.event_name, now
            )
            self._upsert_wine(event, product, now)
            event.backfill_created_at(now)

            await self.store.put(request.customer_id, document)
        except TastingProxyError:
            raise
        except Exception as e:
            logger.error("Unexpected error in save_note: %s", e, exc_info=True)
            raise TastingProxyError(
                message=f"Server error: {e}",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Saved product %s in event %r for customer %s",
            product.product_id,
            request.event_handle,
            request.customer_id,
        )
        return SaveResponse()

    async def verify_customer(self, customer_id, customer_email: str) -> None:
        """Case-insensitive comparison against the email Shopify has on file."""
        real_email = await self.shopify.fetch_customer_email(
            customer_id, error_cls=UpstreamFetchError
        )
        if not real_email or real_email.lower() != str(customer_email).lower():
            logger.warning("Customer verification failed for customer %s", customer_id)
            raise CustomerVerificationError(context={"customer_id": str(customer_id)})

    @staticmethod
    def _ensure_event(
        document: TastingDocument,
        handle: str,
        name: Optional[str],
        now: str,
    ) -> TastingEvent:
        event = document.find_event(handle)
        if event is None:
            event = TastingEvent(
                id=handle,
                name=name or handle,
                date=now[:10],
                collection_handle=handle,
                wines=[],
            )
            document.add_event(event)
            logger.debug("Created event %r", handle)
        return event

    def _upsert_wine(self, event: TastingEvent, product: ProductPayload, now: str) -> None:
        limit = self.text_max_length
        existing = event.find_wine(product.product_id)

        if existing is None:
            event.add_wine(
                TastingEntry(
                    product_id=product.product_id,
                    handle=product.handle or "",
                    title=product.title or "",
                    rating=product.rating,
                    nose=clip(product.nose, limit),
                    palate=clip(product.palate, limit),
                    note=clip(product.note, limit),
                    created_at=now,
                    updated_at=now,
                )
            )
            return

        # Overlay: handle/title only when non-empty, text whenever supplied
        # (an empty string clears it), rating only when a number was sent.
        existing.handle = product.handle or existing.handle or ""
        existing.title = product.title or existing.title or ""
        if product.rating is not None:
            existing.rating = product.rating
        elif "rating" not in existing.model_fields_set:
            existing.rating = None
        for field in TEXT_FIELDS:
            supplied = getattr(product, field)
            current = getattr(existing, field)
            setattr(existing, field, clip(supplied if supplied is not None else current, limit))
        existing.created_at = existing.created_at or existing.updated_at or now
        existing.updated_at = now

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_note(self, request: DeleteRequest) -> DeleteResponse:
        """
        Remove every wine in the event matching product_id OR handle.

        Emptied events are left in place. The document is written back even
        when nothing was removed, as long as the event exists.
        """
        if not request.shop or not request.customer_id:
            raise ValidationError(
                "Missing shop or customer_id", fields=["shop", "customer_id"]
            )

        try:
            document = await self.store.get(request.customer_id)
            if document is None:
                return DeleteResponse(empty=True)

            event = document.locate_event(request.event_handle, request.event_name)
            if event is None:
                logger.info(
                    "Delete for customer %s: no event %r",
                    request.customer_id,
                    request.event_handle or request.event_name,
                )
                return DeleteResponse(not_found="event")

            removed = event.remove_wines(
                product_id=request.product.product_id,
                handle=request.product.handle or None,
            )
            await self.store.put(request.customer_id, document)
        except TastingProxyError:
            raise
        except Exception as e:
            logger.error("Unexpected error in delete_note: %s", e, exc_info=True)
            raise TastingProxyError(
                message=f"Server error: {e}",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Removed %d wine(s) from event %r for customer %s",
            removed,
            event.collection_handle or event.handle or event.name,
            request.customer_id,
        )
        return DeleteResponse(removed=removed)
