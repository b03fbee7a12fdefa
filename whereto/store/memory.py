"""InMemoryDecisionStore: in-process test double for the DecisionStore protocol.

Deterministic and instant. Each mutating method performs its check and its
write without awaiting in between, so under asyncio every primitive is
atomic, matching the guarantees the SQL adapter gets from the database.
Records are copied on the way in and out so callers can never mutate
stored state by accident.
"""

from datetime import datetime
from typing import Any

from whereto.schemas.decisions import (
    Ballot,
    Collection,
    Decision,
    DecisionKind,
    DecisionResult,
    DecisionStatus,
    Group,
    HistoryQuery,
    Restaurant,
)
from whereto.store.refs import decode_restaurant_refs, resolve_restaurant_refs


class InMemoryDecisionStore:
    """Dict-backed DecisionStore."""

    def __init__(self) -> None:
        self.collections: dict[str, Collection] = {}
        self.collection_refs: dict[str, list[Any]] = {}
        self.restaurants: dict[str, Restaurant] = {}
        self.groups: dict[str, Group] = {}
        self.decisions: dict[str, Decision] = {}

    # -- seeding helpers -----------------------------------------------------

    def add_restaurant(self, restaurant_id: str, name: str | None = None, external_id: str | None = None) -> Restaurant:
        restaurant = Restaurant(id=restaurant_id, name=name or restaurant_id, external_id=external_id)
        self.restaurants[restaurant_id] = restaurant
        return restaurant

    def add_collection(
        self,
        collection_id: str,
        refs: list[Any],
        name: str | None = None,
        kind: DecisionKind = DecisionKind.PERSONAL,
        owner_id: str | None = None,
    ) -> Collection:
        """Register a collection. ``refs`` may use any stored membership format."""
        collection = Collection(id=collection_id, name=name or collection_id, kind=kind, owner_id=owner_id)
        self.collections[collection_id] = collection
        self.collection_refs[collection_id] = list(refs)
        return collection

    def add_group(self, group_id: str, admin_ids: list[str], member_ids: list[str] | None = None) -> Group:
        group = Group(id=group_id, name=group_id, admin_ids=admin_ids, member_ids=member_ids or [])
        self.groups[group_id] = group
        return group

    # -- DecisionStore -------------------------------------------------------

    def _resolve(self, collection_id: str) -> list[Restaurant]:
        by_external = {r.external_id: r for r in self.restaurants.values() if r.external_id}
        return resolve_restaurant_refs(
            decode_restaurant_refs(self.collection_refs.get(collection_id, [])),
            self.restaurants.get,
            by_external.get,
        )

    async def get_collection(self, collection_id: str) -> Collection | None:
        collection = self.collections.get(collection_id)
        if collection is None:
            return None
        return collection.model_copy(update={"restaurant_ids": [r.id for r in self._resolve(collection_id)]})

    async def get_restaurants_in_collection(self, collection_id: str) -> list[Restaurant]:
        return [r.model_copy() for r in self._resolve(collection_id)]

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        restaurant = self.restaurants.get(restaurant_id)
        return restaurant.model_copy() if restaurant else None

    async def get_recent_completed_decisions(
        self,
        collection_id: str,
        kind: DecisionKind,
        limit: int,
        group_id: str | None = None,
    ) -> list[Decision]:
        matches = [
            d
            for d in self.decisions.values()
            if d.collection_id == collection_id
            and d.kind == kind
            and d.status == DecisionStatus.COMPLETED
            and (group_id is None or d.group_id == group_id)
        ]
        matches.sort(key=lambda d: d.created_at, reverse=True)
        return [d.model_copy(deep=True) for d in matches[:limit]]

    async def create_decision(self, decision: Decision) -> Decision:
        self.decisions[decision.id] = decision.model_copy(deep=True)
        return decision.model_copy(deep=True)

    async def finalize_decision(
        self,
        decision_id: str,
        result: DecisionResult,
        now: datetime,
        expected_version: int | None = None,
    ) -> bool:
        decision = self.decisions.get(decision_id)
        if decision is None or decision.status != DecisionStatus.ACTIVE:
            return False
        if expected_version is not None and decision.version != expected_version:
            return False
        decision.result = result.model_copy(deep=True)
        decision.status = DecisionStatus.COMPLETED
        decision.updated_at = now
        return True

    async def expire_decision(self, decision_id: str, now: datetime) -> bool:
        decision = self.decisions.get(decision_id)
        if decision is None or decision.status != DecisionStatus.ACTIVE:
            return False
        decision.status = DecisionStatus.EXPIRED
        decision.updated_at = now
        return True

    async def upsert_ballot(self, decision_id: str, ballot: Ballot) -> bool:
        decision = self.decisions.get(decision_id)
        if decision is None or decision.status != DecisionStatus.ACTIVE:
            return False
        others = [b for b in decision.ballots if b.user_id != ballot.user_id]
        decision.ballots = [*others, ballot.model_copy(deep=True)]
        decision.version += 1
        decision.updated_at = ballot.submitted_at
        return True

    async def get_decision(self, decision_id: str) -> Decision | None:
        decision = self.decisions.get(decision_id)
        return decision.model_copy(deep=True) if decision else None

    async def get_group(self, group_id: str) -> Group | None:
        group = self.groups.get(group_id)
        return group.model_copy() if group else None

    async def list_group_decisions(self, group_id: str) -> list[Decision]:
        matches = [d for d in self.decisions.values() if d.group_id == group_id and d.kind == DecisionKind.GROUP]
        matches.sort(key=lambda d: d.created_at, reverse=True)
        return [d.model_copy(deep=True) for d in matches]

    async def list_decision_history(self, query: HistoryQuery) -> tuple[list[Decision], int]:
        def matches(d: Decision) -> bool:
            if d.status != DecisionStatus.COMPLETED or query.user_id not in d.participants:
                return False
            if query.kind != "all" and d.kind.value != query.kind:
                return False
            if query.collection_id and d.collection_id != query.collection_id:
                return False
            if query.group_id and d.group_id != query.group_id:
                return False
            if query.restaurant_id and (d.result is None or d.result.restaurant_id != query.restaurant_id):
                return False
            if query.start_date and d.visit_date < query.start_date:
                return False
            if query.end_date and d.visit_date > query.end_date:
                return False
            return True

        found = [d for d in self.decisions.values() if matches(d)]
        found.sort(key=lambda d: (d.visit_date, d.created_at), reverse=True)
        page = found[query.offset : query.offset + query.limit]
        return [d.model_copy(deep=True) for d in page], len(found)
