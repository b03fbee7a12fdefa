"""Tests for decoding stored collection membership references."""

import pytest

from whereto.schemas.decisions import Restaurant
from whereto.store.refs import (
    RefKind,
    RestaurantRef,
    decode_restaurant_ref,
    decode_restaurant_refs,
    lookup_values,
    resolve_restaurant_refs,
)

pytestmark = pytest.mark.unit

RESTAURANTS = {
    "r-a": Restaurant(id="r-a", name="Alpha Diner", external_id="place-a"),
    "r-b": Restaurant(id="r-b", name="Bistro Beta", external_id="place-b"),
}
BY_EXTERNAL = {r.external_id: r for r in RESTAURANTS.values()}


@pytest.mark.parametrize(
    "item, expected",
    [
        ("r-a", RestaurantRef(RefKind.EITHER, "r-a")),
        ({"id": "r-a", "external_id": "place-a"}, RestaurantRef(RefKind.ID, "r-a")),
        ({"_id": "r-a"}, RestaurantRef(RefKind.ID, "r-a")),
        ({"external_id": "place-a"}, RestaurantRef(RefKind.EXTERNAL, "place-a")),
        ({"googlePlaceId": "place-a"}, RestaurantRef(RefKind.EXTERNAL, "place-a")),
    ],
)
def test_decode_supported_formats(item, expected):
    assert decode_restaurant_ref(item) == expected


@pytest.mark.parametrize("item", ["", {}, {"name": "no ids"}, 42, None])
def test_decode_unusable_entries(item):
    assert decode_restaurant_ref(item) is None


def test_decode_many_skips_unusable_entries():
    refs = decode_restaurant_refs(["r-a", {"name": "junk"}, {"external_id": "place-b"}])

    assert refs == [RestaurantRef(RefKind.EITHER, "r-a"), RestaurantRef(RefKind.EXTERNAL, "place-b")]


def test_resolve_keeps_order_and_drops_duplicates_and_unknowns():
    refs = decode_restaurant_refs(["place-b", "r-a", {"id": "r-b"}, "r-missing", {"external_id": "place-zzz"}])

    resolved = resolve_restaurant_refs(refs, RESTAURANTS.get, BY_EXTERNAL.get)

    assert [r.id for r in resolved] == ["r-b", "r-a"]


def test_bare_string_prefers_internal_id():
    shadow = {"r-a": Restaurant(id="r-x", name="Shadow", external_id="r-a")}

    resolved = resolve_restaurant_refs([RestaurantRef(RefKind.EITHER, "r-a")], RESTAURANTS.get, shadow.get)

    assert [r.id for r in resolved] == ["r-a"]


def test_lookup_values_splits_candidates():
    refs = decode_restaurant_refs(["r-a", {"id": "r-b"}, {"external_id": "place-c"}])

    ids, external_ids = lookup_values(refs)

    assert ids == {"r-a", "r-b"}
    assert external_ids == {"r-a", "place-c"}
