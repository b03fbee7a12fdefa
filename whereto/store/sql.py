"""SqlDecisionStore: DecisionStore backed by PostgreSQL via SQLAlchemy asyncio.

Atomicity comes from the database:
- ballots: one transaction that first bumps ``decisions.version`` with
  UPDATE ... WHERE id = :id AND status = 'active' (taking the row lock),
  then INSERT ... ON CONFLICT (decision_id, user_id) DO UPDATE
- completion / expiry: UPDATE ... WHERE id = :id AND status = 'active'
  (and version = :expected for completion); the rowcount tells the caller
  whether it won
"""

import uuid
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from whereto.db.models.collection import Collection as CollectionRow
from whereto.db.models.decision import Decision as DecisionRow
from whereto.db.models.decision_ballot import DecisionBallot as BallotRow
from whereto.db.models.group import Group as GroupRow
from whereto.db.models.restaurant import Restaurant as RestaurantRow
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
from whereto.store.refs import decode_restaurant_refs, lookup_values, resolve_restaurant_refs


def _to_restaurant(row: RestaurantRow) -> Restaurant:
    return Restaurant(id=row.id, name=row.name, external_id=row.external_id)


def _to_ballot(row: BallotRow) -> Ballot:
    return Ballot(
        user_id=row.user_id,
        ranked_restaurant_ids=list(row.ranked_restaurant_ids or []),
        submitted_at=row.submitted_at,
    )


def _to_decision(row: DecisionRow, ballots: Sequence[BallotRow] = ()) -> Decision:
    return Decision(
        id=row.id,
        kind=DecisionKind(row.kind),
        collection_id=row.collection_id,
        group_id=row.group_id,
        participants=list(row.participants or []),
        method=row.method,
        status=DecisionStatus(row.status),
        deadline=row.deadline,
        visit_date=row.visit_date,
        result=DecisionResult.model_validate(row.result) if row.result else None,
        ballots=[_to_ballot(b) for b in ballots],
        version=row.version or 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlDecisionStore:
    """DecisionStore implementation over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize with dependency injection.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory

    async def _resolve_restaurants(self, session: AsyncSession, collection: CollectionRow) -> list[Restaurant]:
        refs = decode_restaurant_refs(collection.restaurant_refs or [])
        ids, external_ids = lookup_values(refs)
        if not ids and not external_ids:
            return []

        result = await session.execute(
            select(RestaurantRow).where(
                or_(RestaurantRow.id.in_(ids), RestaurantRow.external_id.in_(external_ids))
            )
        )
        rows = [_to_restaurant(r) for r in result.scalars().all()]
        by_id = {r.id: r for r in rows}
        by_external = {r.external_id: r for r in rows if r.external_id}
        return resolve_restaurant_refs(refs, by_id.get, by_external.get)

    async def _load_ballots(self, session: AsyncSession, decision_ids: list[str]) -> dict[str, list[BallotRow]]:
        grouped: dict[str, list[BallotRow]] = defaultdict(list)
        if not decision_ids:
            return grouped
        result = await session.execute(
            select(BallotRow)
            .where(BallotRow.decision_id.in_(decision_ids))
            .order_by(BallotRow.submitted_at)
        )
        for ballot in result.scalars().all():
            grouped[ballot.decision_id].append(ballot)
        return grouped

    async def get_collection(self, collection_id: str) -> Collection | None:
        async with self.session_factory() as session:
            row = await session.get(CollectionRow, collection_id)
            if row is None:
                return None
            restaurants = await self._resolve_restaurants(session, row)
            return Collection(
                id=row.id,
                name=row.name,
                kind=DecisionKind(row.kind),
                owner_id=row.owner_id,
                restaurant_ids=[r.id for r in restaurants],
            )

    async def get_restaurants_in_collection(self, collection_id: str) -> list[Restaurant]:
        async with self.session_factory() as session:
            row = await session.get(CollectionRow, collection_id)
            if row is None:
                return []
            return await self._resolve_restaurants(session, row)

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        async with self.session_factory() as session:
            row = await session.get(RestaurantRow, restaurant_id)
            return _to_restaurant(row) if row else None

    async def get_recent_completed_decisions(
        self,
        collection_id: str,
        kind: DecisionKind,
        limit: int,
        group_id: str | None = None,
    ) -> list[Decision]:
        """History rows for weighting; ballots are not loaded."""
        query = select(DecisionRow).where(
            DecisionRow.collection_id == collection_id,
            DecisionRow.kind == kind.value,
            DecisionRow.status == DecisionStatus.COMPLETED.value,
        )
        if group_id is not None:
            query = query.where(DecisionRow.group_id == group_id)

        async with self.session_factory() as session:
            result = await session.execute(query.order_by(DecisionRow.created_at.desc()).limit(limit))
            return [_to_decision(row) for row in result.scalars().all()]

    async def create_decision(self, decision: Decision) -> Decision:
        row = DecisionRow(
            id=decision.id,
            kind=decision.kind.value,
            collection_id=decision.collection_id,
            group_id=decision.group_id,
            participants=list(decision.participants),
            method=decision.method.value,
            status=decision.status.value,
            deadline=decision.deadline,
            visit_date=decision.visit_date,
            result=decision.result.model_dump(mode="json") if decision.result else None,
            version=decision.version,
            created_at=decision.created_at,
            updated_at=decision.updated_at,
        )
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()
        return decision

    async def finalize_decision(
        self,
        decision_id: str,
        result: DecisionResult,
        now: datetime,
        expected_version: int | None = None,
    ) -> bool:
        stmt = update(DecisionRow).where(
            DecisionRow.id == decision_id, DecisionRow.status == DecisionStatus.ACTIVE.value
        )
        if expected_version is not None:
            stmt = stmt.where(DecisionRow.version == expected_version)

        async with self.session_factory() as session:
            outcome = await session.execute(
                stmt.values(
                    status=DecisionStatus.COMPLETED.value,
                    result=result.model_dump(mode="json"),
                    updated_at=now,
                )
            )
            await session.commit()
            return outcome.rowcount == 1

    async def expire_decision(self, decision_id: str, now: datetime) -> bool:
        async with self.session_factory() as session:
            outcome = await session.execute(
                update(DecisionRow)
                .where(DecisionRow.id == decision_id, DecisionRow.status == DecisionStatus.ACTIVE.value)
                .values(status=DecisionStatus.EXPIRED.value, updated_at=now)
            )
            await session.commit()
            return outcome.rowcount == 1

    async def upsert_ballot(self, decision_id: str, ballot: Ballot) -> bool:
        stmt = insert(BallotRow).values(
            id=str(uuid.uuid4()),
            decision_id=decision_id,
            user_id=ballot.user_id,
            ranked_restaurant_ids=list(ballot.ranked_restaurant_ids),
            submitted_at=ballot.submitted_at,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_decision_ballots_decision_user",
            set_={
                "ranked_restaurant_ids": stmt.excluded.ranked_restaurant_ids,
                "submitted_at": stmt.excluded.submitted_at,
            },
        )
        async with self.session_factory() as session:
            # The decision row stays locked until commit, so finalize and
            # expire either run before this (rowcount 0) or see the new version
            gate = await session.execute(
                update(DecisionRow)
                .where(DecisionRow.id == decision_id, DecisionRow.status == DecisionStatus.ACTIVE.value)
                .values(version=DecisionRow.version + 1, updated_at=ballot.submitted_at)
            )
            if gate.rowcount != 1:
                await session.rollback()
                return False

            await session.execute(stmt)
            await session.commit()
            return True

    async def get_decision(self, decision_id: str) -> Decision | None:
        async with self.session_factory() as session:
            row = await session.get(DecisionRow, decision_id)
            if row is None:
                return None
            ballots = await self._load_ballots(session, [row.id])
            return _to_decision(row, ballots.get(row.id, []))

    async def get_group(self, group_id: str) -> Group | None:
        async with self.session_factory() as session:
            row = await session.get(GroupRow, group_id)
            if row is None:
                return None
            return Group(
                id=row.id,
                name=row.name,
                admin_ids=list(row.admin_ids or []),
                member_ids=list(row.member_ids or []),
            )

    async def list_group_decisions(self, group_id: str) -> list[Decision]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DecisionRow)
                .where(DecisionRow.group_id == group_id, DecisionRow.kind == DecisionKind.GROUP.value)
                .order_by(DecisionRow.created_at.desc())
            )
            rows = result.scalars().all()
            ballots = await self._load_ballots(session, [r.id for r in rows])
            return [_to_decision(row, ballots.get(row.id, [])) for row in rows]

    async def list_decision_history(self, query: HistoryQuery) -> tuple[list[Decision], int]:
        conditions = [
            DecisionRow.status == DecisionStatus.COMPLETED.value,
            DecisionRow.participants.contains([query.user_id]),
        ]
        if query.kind != "all":
            conditions.append(DecisionRow.kind == query.kind)
        if query.collection_id:
            conditions.append(DecisionRow.collection_id == query.collection_id)
        if query.group_id:
            conditions.append(DecisionRow.group_id == query.group_id)
        if query.restaurant_id:
            conditions.append(DecisionRow.result["restaurant_id"].astext == query.restaurant_id)
        if query.start_date:
            conditions.append(DecisionRow.visit_date >= query.start_date)
        if query.end_date:
            conditions.append(DecisionRow.visit_date <= query.end_date)

        async with self.session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(DecisionRow).where(*conditions))
            result = await session.execute(
                select(DecisionRow)
                .where(*conditions)
                .order_by(DecisionRow.visit_date.desc(), DecisionRow.created_at.desc())
                .offset(query.offset)
                .limit(query.limit)
            )
            return [_to_decision(row) for row in result.scalars().all()], total or 0
