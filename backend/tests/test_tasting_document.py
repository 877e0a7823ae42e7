"""
Tasting Notes Proxy — Tasting Document Model Tests
===================================================

What we test:
    ✅ Parsing tolerates malformed and legacy metafield values
    ✅ Unknown keys survive a read/write cycle
    ✅ Records nothing changed are written back byte for byte
    ✅ Event lookup by handle, legacy handle and name
    ✅ Wine removal matches product_id OR handle
"""

import json

import pytest

from tasting_proxy.models.tasting import (
    TastingDocument,
    TastingEntry,
    TastingEvent,
    normalize_product_id,
)


class TestFromMetafieldValue:

    def test_none_and_blank_give_empty_document(self):
        assert TastingDocument.from_metafield_value(None).events == []
        assert TastingDocument.from_metafield_value("").events == []

    def test_invalid_json_gives_empty_document(self):
        doc = TastingDocument.from_metafield_value("{not json")
        assert doc.events == []
        assert json.loads(doc.to_metafield_value()) == {"events": []}

    def test_non_object_gives_empty_document(self):
        assert TastingDocument.from_metafield_value("[1, 2, 3]").events == []

    def test_missing_events_key_gives_empty_list(self):
        doc = TastingDocument.from_metafield_value('{"version": 2}')
        assert doc.events == []
        assert json.loads(doc.to_metafield_value()) == {"version": 2, "events": []}

    def test_accepts_already_decoded_dict(self):
        doc = TastingDocument.from_metafield_value(
            {"events": [{"collection_handle": "spring", "wines": []}]}
        )
        assert doc.find_event("spring") is not None

    def test_legacy_values_are_kept_as_stored(self):
        raw = {
            "events": [
                {
                    "id": 7,
                    "handle": "autumn",
                    "wines": [
                        {"product_id": "42", "rating": "4.5", "updated_at": "2023-01-01T00:00:00.000Z"},
                        {"product_id": "not-a-number", "rating": "great"},
                        "garbage",
                    ],
                }
            ]
        }
        doc = TastingDocument.from_metafield_value(json.dumps(raw))
        event = doc.events[0]
        assert event.id == 7
        assert event.wines[2] == "garbage"
        assert [w.product_id for w in event.entries()] == ["42", "not-a-number"]
        assert [w.product_key for w in event.entries()] == [42, None]
        assert event.find_wine(42).rating == "4.5"
        assert json.loads(doc.to_metafield_value()) == raw

    def test_unknown_keys_round_trip(self):
        raw = {
            "owner": "jane",
            "events": [
                {
                    "id": "spring",
                    "collection_handle": "spring",
                    "location": "Cellar door",
                    "wines": [{"product_id": 1, "vintage": 2019}],
                }
            ],
        }
        doc = TastingDocument.from_metafield_value(json.dumps(raw))
        assert json.loads(doc.to_metafield_value()) == raw


class TestEventLookup:

    def setup_method(self):
        self.doc = TastingDocument.from_metafield_value(
            {
                "events": [
                    {"collection_handle": "spring", "name": "Spring", "wines": []},
                    {"handle": "legacy", "name": "Legacy Night", "wines": []},
                ]
            }
        )

    def test_find_event_matches_either_handle_key(self):
        assert self.doc.find_event("spring").name == "Spring"
        assert self.doc.find_event("legacy").name == "Legacy Night"
        assert self.doc.find_event("nope") is None
        assert self.doc.find_event("") is None

    def test_locate_event_accepts_legacy_handle(self):
        assert self.doc.locate_event(handle="legacy").name == "Legacy Night"

    def test_locate_event_by_name_only_without_handle(self):
        assert self.doc.locate_event(name="Spring").collection_handle == "spring"
        assert self.doc.locate_event(handle="nope", name="Spring") is None

    def test_locate_event_with_no_keys(self):
        assert self.doc.locate_event() is None


class TestRemoveWines:

    def make_event(self):
        return TastingEvent(
            collection_handle="spring",
            wines=[
                TastingEntry(product_id=1, handle="shiraz"),
                TastingEntry(product_id=2, handle="riesling"),
                TastingEntry(product_id=3, handle="shiraz"),
            ],
        )

    def test_match_by_product_id(self):
        event = self.make_event()
        assert event.remove_wines(product_id=2) == 1
        assert [w.product_id for w in event.wines] == [1, 3]

    def test_match_by_handle_removes_all_matches(self):
        event = self.make_event()
        assert event.remove_wines(handle="shiraz") == 2
        assert [w.product_id for w in event.wines] == [2]

    def test_either_key_matches(self):
        event = self.make_event()
        assert event.remove_wines(product_id=2, handle="shiraz") == 3
        assert event.wines == []

    def test_no_keys_removes_nothing(self):
        event = self.make_event()
        assert event.remove_wines() == 0
        assert len(event.wines) == 3


def test_backfill_created_at():
    event = TastingEvent(
        wines=[
            TastingEntry(product_id=1, updated_at="2023-05-01T10:00:00.000Z"),
            TastingEntry(product_id=2),
            TastingEntry(product_id=3, created_at="2022-01-01T00:00:00.000Z"),
        ]
    )
    event.backfill_created_at("2024-09-14T09:00:00.000Z")
    assert [w.created_at for w in event.wines] == [
        "2023-05-01T10:00:00.000Z",
        "2024-09-14T09:00:00.000Z",
        "2022-01-01T00:00:00.000Z",
    ]


class TestWriteBack:

    OTHER = {
        "wines": [
            {"rating": "great", "product_id": "abc"},
            "note-string",
            {"product_id": "7", "rating": "4"},
        ],
        "collection_handle": "other",
    }

    def stored(self):
        return json.dumps(
            {
                "events": [
                    {"collection_handle": "spring", "wines": [{"product_id": 1}]},
                    self.OTHER,
                ]
            },
            separators=(",", ":"),
        )

    def test_unchanged_document_is_identical(self):
        raw = self.stored()
        doc = TastingDocument.from_metafield_value(raw)
        assert doc.is_modified() is False
        assert doc.to_metafield_value() == raw

    def test_changing_one_event_leaves_the_other_identical(self):
        doc = TastingDocument.from_metafield_value(self.stored())
        doc.find_event("spring").add_wine(TastingEntry(product_id=2))

        written = doc.to_metafield_value()
        assert json.dumps(self.OTHER, separators=(",", ":")) in written
        assert [w["product_id"] for w in json.loads(written)["events"][0]["wines"]] == [1, 2]

    def test_backfill_only_touches_entries_missing_created_at(self):
        doc = TastingDocument.from_metafield_value(
            '{"events":[{"handle":"x","wines":['
            '{"product_id":"5","created_at":"2022-01-01T00:00:00.000Z"},'
            '{"product_id":"6"}]}]}'
        )
        event = doc.find_event("x")
        event.backfill_created_at("2024-09-14T09:00:00.000Z")

        wines = json.loads(doc.to_metafield_value())["events"][0]["wines"]
        assert wines[0] == {"product_id": "5", "created_at": "2022-01-01T00:00:00.000Z"}
        assert wines[1] == {"product_id": "6", "created_at": "2024-09-14T09:00:00.000Z"}
        assert "collection_handle" not in json.loads(doc.to_metafield_value())["events"][0]

    def test_removing_nothing_leaves_event_unmodified(self):
        doc = TastingDocument.from_metafield_value(self.stored())
        other = doc.find_event("other")
        assert other.remove_wines(product_id=999, handle="missing") == 0
        assert other.is_modified() is False

    def test_removal_keeps_non_object_items(self):
        doc = TastingDocument.from_metafield_value(self.stored())
        other = doc.find_event("other")
        assert other.remove_wines(product_id=7) == 1
        assert other.wines[1] == "note-string"
        assert json.loads(doc.to_metafield_value())["events"][1]["wines"] == [
            {"rating": "great", "product_id": "abc"},
            "note-string",
        ]


@pytest.mark.parametrize(
    "value, expected",
    [
        (42, 42),
        ("42", 42),
        (" 42 ", 42),
        (42.0, 42),
        ("42.0", 42),
        (0, None),
        ("0", None),
        ("", None),
        (-3, None),
        (4.5, None),
        ("abc", None),
        (True, None),
        (None, None),
        ([42], None),
    ],
)
def test_normalize_product_id(value, expected):
    assert normalize_product_id(value) == expected
