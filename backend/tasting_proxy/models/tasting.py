"""
Tasting Notes Proxy — Tasting Document Model
=============================================

What:  Pydantic models for the JSON document stored in the customer metafield.
Why:   The document is read, changed and rewritten in full on every request.
       Typed models make the merge logic readable; everything the request did
       not change must still be written back exactly as it was read.
Who:   Built by MetafieldDocumentStore; mutated by TastingService.

Document shape:
    {
      "events": [
        {
          "id": "spring-tasting",
          "name": "Spring Tasting",
          "date": "2024-09-14",
          "collection_handle": "spring-tasting",
          "wines": [
            {"product_id": 42, "handle": "shiraz-2019", "title": "Shiraz 2019",
             "rating": 4, "nose": "...", "palate": "...", "note": "...",
             "created_at": "2024-09-14T09:12:03.120Z",
             "updated_at": "2024-09-14T09:40:55.002Z"}
          ]
        }
      ]
    }

Legacy tolerance:
    Older documents were written by hand-rolled scripts: ids as strings,
    `handle` instead of `collection_handle`, missing `created_at`, stray
    non-object items in lists. Values are kept exactly as stored and only
    normalised when comparing (see normalize_product_id).

Write-back fidelity:
    Records parsed from storage remember their source dict. A record that has
    not been assigned to since (and whose children are unchanged) serializes
    as that dict, key order included. Lists are always reassigned, never
    mutated in place, so assignment tracking sees every change.
"""

import json
import logging
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_serializer,
)

logger = logging.getLogger(__name__)


def normalize_product_id(value: Any) -> Optional[int]:
    """
    Shopify product ids as a positive int, or None.

    Accepts ints, integral floats and numeric strings ("42", " 42 ", "42.0").
    Zero, negatives, booleans and anything non-numeric are None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer() or number <= 0:
        return None
    return int(number)


class StoredRecord(BaseModel):
    """Base for records that round-trip untouched when nothing changed them."""

    model_config = ConfigDict(extra="allow")

    _source: Optional[dict] = PrivateAttr(default=None)
    _assigned: bool = PrivateAttr(default=False)

    @classmethod
    def from_stored(cls, data: dict):
        record = cls.model_validate(data)
        record._source = data
        return record

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_"):
            self._assigned = True
        super().__setattr__(name, value)

    def is_modified(self) -> bool:
        return self._source is None or self._assigned

    @model_serializer(mode="wrap")
    def _serialize(self, handler):
        if not self.is_modified():
            return self._source
        return handler(self)


class TastingEntry(StoredRecord):
    """One customer's notes and rating for one wine in one event."""

    # Any: stored values are written back as found ("7" stays "7")
    product_id: Any = None
    handle: Any = None
    title: Any = None
    rating: Any = None
    nose: Any = None
    palate: Any = None
    note: Any = None
    created_at: Any = None
    updated_at: Any = None

    @property
    def product_key(self) -> Optional[int]:
        return normalize_product_id(self.product_id)


class TastingEvent(StoredRecord):
    """A tasting session, keyed by the handle of its Shopify collection."""

    id: Any = None
    name: Any = None
    date: Any = None
    collection_handle: Any = None
    # Written by early versions of the storefront instead of collection_handle
    handle: Any = None
    # TastingEntry for objects; anything else is carried through untouched
    wines: List[Any] = Field(default_factory=list)

    @field_validator("wines", mode="before")
    @classmethod
    def _wines(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [TastingEntry.from_stored(w) if isinstance(w, dict) else w for w in v]

    def is_modified(self) -> bool:
        return super().is_modified() or any(w.is_modified() for w in self.entries())

    def entries(self) -> List[TastingEntry]:
        return [w for w in self.wines if isinstance(w, TastingEntry)]

    def matches_handle(self, handle: Optional[str]) -> bool:
        return bool(handle) and handle in (self.collection_handle, self.handle)

    def find_wine(self, product_id: Optional[int]) -> Optional[TastingEntry]:
        if product_id is None:
            return None
        for wine in self.entries():
            if wine.product_key == product_id:
                return wine
        return None

    def add_wine(self, entry: TastingEntry) -> None:
        self.wines = self.wines + [entry]

    def remove_wines(
        self, product_id: Optional[int] = None, handle: Optional[str] = None
    ) -> int:
        """
        Drop every wine matching `product_id` OR `handle`.

        Empty keys never match, so a call with neither key removes nothing.
        Returns the number of wines removed; the event is only reassigned
        when that number is non-zero.
        """
        def matches(w: Any) -> bool:
            if not isinstance(w, TastingEntry):
                return False
            if product_id and w.product_key == product_id:
                return True
            return bool(handle) and bool(w.handle) and w.handle == handle

        kept = [w for w in self.wines if not matches(w)]
        removed = len(self.wines) - len(kept)
        if removed:
            self.wines = kept
        return removed

    def backfill_created_at(self, now: str) -> None:
        """Legacy repair: wines saved before created_at existed get one."""
        for wine in self.entries():
            if not wine.created_at:
                wine.created_at = wine.updated_at or now


class TastingDocument(StoredRecord):
    """The whole `tasting.events` metafield value for one customer."""

    # TastingEvent for objects; anything else is carried through untouched
    events: List[Any] = Field(default_factory=list)

    @field_validator("events", mode="before")
    @classmethod
    def _events(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [TastingEvent.from_stored(e) if isinstance(e, dict) else e for e in v]

    def is_modified(self) -> bool:
        return super().is_modified() or any(e.is_modified() for e in self.tasting_events())

    def tasting_events(self) -> List[TastingEvent]:
        return [e for e in self.events if isinstance(e, TastingEvent)]

    @classmethod
    def empty(cls) -> "TastingDocument":
        return cls(events=[])

    @classmethod
    def from_metafield_value(cls, value: Any) -> "TastingDocument":
        """
        Parse a metafield value (JSON string or already-decoded dict).

        Anything unparseable yields an empty document. The caller will write
        that empty document back on its next save, so this is logged loudly.
        """
        if value is None or value == "":
            return cls.empty()
        data = value
        if isinstance(value, (str, bytes)):
            try:
                data = json.loads(value)
            except ValueError:
                logger.warning("Metafield value is not valid JSON; using empty document")
                return cls.empty()
        if not isinstance(data, dict):
            logger.warning(
                "Metafield value is a %s, not an object; using empty document",
                type(data).__name__,
            )
            return cls.empty()
        try:
            document = cls.from_stored(data)
        except ValidationError as e:
            logger.warning("Metafield value failed validation (%s); using empty document", e)
            return cls.empty()
        if not isinstance(data.get("events"), list):
            document.events = []
        return document

    def to_metafield_value(self) -> str:
        """Serialize compactly, keeping only keys that were read or written."""
        payload = dict(self.model_dump(mode="json", exclude_unset=True))
        payload.setdefault("events", [])
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

    def find_event(self, handle: Optional[str]) -> Optional[TastingEvent]:
        """Event for `handle`, matching `collection_handle` or legacy `handle`."""
        for event in self.tasting_events():
            if event.matches_handle(handle):
                return event
        return None

    def locate_event(
        self, handle: Optional[str] = None, name: Optional[str] = None
    ) -> Optional[TastingEvent]:
        """Find an event for deletion: by handle when given, else by name."""
        if handle:
            return self.find_event(handle)
        if not name:
            return None
        for event in self.tasting_events():
            if event.name == name:
                return event
        return None

    def add_event(self, event: TastingEvent) -> None:
        self.events = self.events + [event]
