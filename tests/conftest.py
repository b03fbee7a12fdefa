"""Shared test fixtures for all test groups."""

import asyncio
import random
from datetime import UTC, datetime

import pytest

from whereto.schemas.decisions import (
    Ballot,
    Decision,
    DecisionKind,
    DecisionMethod,
    DecisionResult,
    DecisionStatus,
)
from whereto.store.memory import InMemoryDecisionStore

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time so weights and deadlines are deterministic."""
    return FIXED_NOW


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


def _seed(store: InMemoryDecisionStore) -> InMemoryDecisionStore:
    store.add_restaurant("r-a", "Alpha Diner", external_id="place-a")
    store.add_restaurant("r-b", "Bistro Beta", external_id="place-b")
    store.add_restaurant("r-c", "Casa Cielo", external_id="place-c")
    store.add_collection("col-1", ["r-a", {"id": "r-b", "external_id": "place-b"}, {"external_id": "place-c"}])
    store.add_collection("col-empty", [])
    store.add_group("grp-1", admin_ids=["admin-1"], member_ids=["user-1", "user-2"])
    return store


@pytest.fixture
def store() -> InMemoryDecisionStore:
    """In-memory store seeded with one three-restaurant collection and one group.

    Collection membership uses each of the stored reference formats.
    """
    return _seed(InMemoryDecisionStore())


class YieldingDecisionStore(InMemoryDecisionStore):
    """In-memory store that gives up the event loop before every call.

    A networked adapter suspends at each round trip; this one does the same
    so ``asyncio.gather`` can interleave concurrent service calls between a
    read and the write that follows it. ``delays`` maps a method name to the
    number of loop turns it waits (default 1).
    """

    def __init__(self, delays: dict[str, int] | None = None) -> None:
        super().__init__()
        self.delays = delays or {}

    async def _io(self, method: str) -> None:
        for _ in range(self.delays.get(method, 1)):
            await asyncio.sleep(0)

    async def get_decision(self, decision_id: str):
        await self._io("get_decision")
        return await super().get_decision(decision_id)

    async def get_restaurants_in_collection(self, collection_id: str):
        await self._io("get_restaurants_in_collection")
        return await super().get_restaurants_in_collection(collection_id)

    async def get_recent_completed_decisions(self, collection_id, kind, limit, group_id=None):
        await self._io("get_recent_completed_decisions")
        return await super().get_recent_completed_decisions(collection_id, kind, limit, group_id=group_id)

    async def upsert_ballot(self, decision_id: str, ballot: Ballot) -> bool:
        await self._io("upsert_ballot")
        return await super().upsert_ballot(decision_id, ballot)

    async def finalize_decision(self, decision_id, result, now, expected_version=None) -> bool:
        await self._io("finalize_decision")
        return await super().finalize_decision(decision_id, result, now, expected_version=expected_version)

    async def expire_decision(self, decision_id, now) -> bool:
        await self._io("expire_decision")
        return await super().expire_decision(decision_id, now)


@pytest.fixture
def yielding_store():
    """Factory for a seeded YieldingDecisionStore, e.g. ``yielding_store(upsert_ballot=8)``."""

    def _make(**delays: int) -> YieldingDecisionStore:
        return _seed(YieldingDecisionStore(delays))

    return _make


@pytest.fixture
def completed_decision():
    """Factory for completed decisions used as selection history."""

    def _make(
        restaurant_id: str,
        selected_at: datetime,
        kind: DecisionKind = DecisionKind.PERSONAL,
        collection_id: str = "col-1",
        group_id: str | None = None,
        participants: list[str] | None = None,
        visit_date: datetime | None = None,
    ) -> Decision:
        return Decision(
            kind=kind,
            collection_id=collection_id,
            group_id=group_id,
            participants=participants or ["user-1"],
            method=DecisionMethod.RANDOM,
            status=DecisionStatus.COMPLETED,
            deadline=selected_at,
            visit_date=visit_date or selected_at,
            result=DecisionResult(restaurant_id=restaurant_id, selected_at=selected_at, reasoning="history"),
            created_at=selected_at,
            updated_at=selected_at,
        )

    return _make
