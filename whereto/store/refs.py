"""Decoding of collection membership references.

Collections written by older clients store restaurant references in three
shapes:

- a plain string: either an internal restaurant id or an external place id
- ``{"id": ..., "external_id": ...}``: internal id, external id kept for reference
- ``{"external_id": ...}``: external place id only

Legacy camelCase keys (``_id``, ``googlePlaceId``) are accepted too. The
engine only ever sees the resolved, ordered restaurant list.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from whereto.schemas.decisions import Restaurant

logger = structlog.get_logger(__name__)

_ID_KEYS = ("id", "_id")
_EXTERNAL_KEYS = ("external_id", "googlePlaceId", "google_place_id")


class RefKind(str, Enum):
    ID = "id"
    EXTERNAL = "external"
    EITHER = "either"  # bare string, resolved by id first, then external id


@dataclass(frozen=True)
class RestaurantRef:
    kind: RefKind
    value: str


def _first_key(item: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = item.get(key)
        if value:
            return str(value)
    return None


def decode_restaurant_ref(item: Any) -> RestaurantRef | None:
    """Decode one stored membership entry. Returns None for unusable entries."""
    if isinstance(item, str):
        return RestaurantRef(RefKind.EITHER, item) if item else None

    if isinstance(item, dict):
        internal_id = _first_key(item, _ID_KEYS)
        if internal_id:
            return RestaurantRef(RefKind.ID, internal_id)
        external_id = _first_key(item, _EXTERNAL_KEYS)
        if external_id:
            return RestaurantRef(RefKind.EXTERNAL, external_id)

    return None


def decode_restaurant_refs(items: Iterable[Any]) -> list[RestaurantRef]:
    refs = []
    for item in items or []:
        ref = decode_restaurant_ref(item)
        if ref is None:
            logger.warning("restaurant_ref_skipped", item=repr(item))
            continue
        refs.append(ref)
    return refs


def resolve_restaurant_refs(
    refs: Iterable[RestaurantRef],
    by_id: Callable[[str], Restaurant | None],
    by_external_id: Callable[[str], Restaurant | None],
) -> list[Restaurant]:
    """Resolve refs to restaurants, keeping order and dropping duplicates/unknowns."""
    resolved: dict[str, Restaurant] = {}
    for ref in refs:
        restaurant = None
        if ref.kind in (RefKind.ID, RefKind.EITHER):
            restaurant = by_id(ref.value)
        if restaurant is None and ref.kind in (RefKind.EXTERNAL, RefKind.EITHER):
            restaurant = by_external_id(ref.value)
        if restaurant is not None and restaurant.id not in resolved:
            resolved[restaurant.id] = restaurant
    return list(resolved.values())


def lookup_values(refs: Iterable[RestaurantRef]) -> tuple[set[str], set[str]]:
    """Split refs into (candidate internal ids, candidate external ids) for batch queries."""
    ids: set[str] = set()
    external_ids: set[str] = set()
    for ref in refs:
        if ref.kind in (RefKind.ID, RefKind.EITHER):
            ids.add(ref.value)
        if ref.kind in (RefKind.EXTERNAL, RefKind.EITHER):
            external_ids.add(ref.value)
    return ids, external_ids
