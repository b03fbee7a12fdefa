"""DecisionStore Protocol: the persistence boundary of the decision engine.

Services never talk to a database directly; they receive a DecisionStore.
Implementations:
- SqlDecisionStore: PostgreSQL via SQLAlchemy asyncio
- InMemoryDecisionStore: deterministic in-process double for tests and dev

Every mutation the engine depends on for correctness is a single atomic
primitive of the store:
- create_decision: one insert (solo decisions arrive already completed)
- upsert_ballot: insert-or-replace keyed by (decision_id, user_id), only
  while the decision is still active; bumps the decision's ``version``
- finalize_decision / expire_decision: conditional update that only
  succeeds while the decision is still active (finalize can also require
  the ``version`` its tally was computed from)
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from whereto.schemas.decisions import (
    Ballot,
    Collection,
    Decision,
    DecisionKind,
    DecisionResult,
    Group,
    HistoryQuery,
    Restaurant,
)


@runtime_checkable
class DecisionStore(Protocol):
    """Query/command interface consumed by the decision services."""

    async def get_collection(self, collection_id: str) -> Collection | None:
        """Return the collection or None if it does not exist."""
        ...

    async def get_restaurants_in_collection(self, collection_id: str) -> list[Restaurant]:
        """Return the collection's restaurants in collection order.

        Legacy membership formats are already resolved; unknown references
        are dropped.
        """
        ...

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        ...

    async def get_recent_completed_decisions(
        self,
        collection_id: str,
        kind: DecisionKind,
        limit: int,
        group_id: str | None = None,
    ) -> list[Decision]:
        """Return completed decisions for a collection, most recent first.

        Args:
            collection_id: Collection the decisions resolved over
            kind: personal or group
            limit: Maximum number of decisions
            group_id: Restrict group decisions to one group
        """
        ...

    async def create_decision(self, decision: Decision) -> Decision:
        """Insert a new decision in a single write and return it."""
        ...

    async def finalize_decision(
        self,
        decision_id: str,
        result: DecisionResult,
        now: datetime,
        expected_version: int | None = None,
    ) -> bool:
        """Set result and status=completed only if the decision is still active.

        Args:
            decision_id: Decision to complete
            result: Winner and tally snapshot
            now: Completion time
            expected_version: When given, also require that no ballot was
                written since the decision was read at this version

        Returns:
            True if this call completed the decision, False if it was no
            longer active, its version moved on, or it does not exist
        """
        ...

    async def expire_decision(self, decision_id: str, now: datetime) -> bool:
        """Set status=expired only if the decision is still active."""
        ...

    async def upsert_ballot(self, decision_id: str, ballot: Ballot) -> bool:
        """Insert or replace the ballot of ``ballot.user_id`` atomically.

        The write and the status check are one step: a ballot is never
        stored on a decision that has left the active state.

        Returns:
            True if the ballot was stored, False if the decision is no
            longer active (or does not exist)
        """
        ...

    async def get_decision(self, decision_id: str) -> Decision | None:
        """Return the decision with its current ballots, or None."""
        ...

    async def get_group(self, group_id: str) -> Group | None:
        ...

    async def list_group_decisions(self, group_id: str) -> list[Decision]:
        """Return every decision of a group, newest first, any status."""
        ...

    async def list_decision_history(self, query: HistoryQuery) -> tuple[list[Decision], int]:
        """Return one page of completed decisions plus the total match count."""
        ...
