"""SelectionService: weighted lottery decisions and manually recorded visits."""

import random
from datetime import UTC, datetime

import structlog

from whereto.core.exceptions import (
    CollectionNotFound,
    EmptyCollection,
    GroupNotFound,
    InvalidDecision,
    NotAParticipant,
    RestaurantNotFound,
)
from whereto.domain.selection import (
    WeightedCandidate,
    build_candidates,
    describe_selection,
    weighted_choice,
    weights_snapshot,
)
from whereto.events import DecisionEventPublisher
from whereto.schemas.decisions import (
    Decision,
    DecisionKind,
    DecisionMethod,
    DecisionResult,
    DecisionStatus,
)
from whereto.store.protocol import DecisionStore

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 100


class SelectionService:
    """Service layer for lottery-style decisions.

    Every decision produced here is written once, already completed, so no
    reader ever observes it in the active state.
    """

    def __init__(
        self,
        store: DecisionStore,
        events: DecisionEventPublisher | None = None,
        rng: random.Random | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        """Initialize with dependency injection.

        Args:
            store: Decision store adapter
            events: Publisher for "decision completed" notifications
            rng: Source of uniform draws (seed it for deterministic tests)
            history_limit: Number of recent completed decisions used for weights
        """
        self.store = store
        self.events = events or DecisionEventPublisher(None)
        self.rng = rng or random.Random()
        self.history_limit = history_limit

    async def _draw(
        self,
        collection_id: str,
        kind: DecisionKind,
        now: datetime,
        group_id: str | None = None,
    ) -> tuple[list[WeightedCandidate], WeightedCandidate]:
        """Weigh the collection's restaurants and draw one.

        Raises:
            CollectionNotFound: Collection does not exist
            EmptyCollection: Collection has no restaurants
        """
        collection = await self.store.get_collection(collection_id)
        if collection is None:
            raise CollectionNotFound()

        restaurants = await self.store.get_restaurants_in_collection(collection_id)
        if not restaurants:
            raise EmptyCollection()

        history = await self.store.get_recent_completed_decisions(
            collection_id, kind, self.history_limit, group_id=group_id
        )
        candidates = build_candidates([r.id for r in restaurants], history, now=now)
        return candidates, weighted_choice(candidates, self.rng)

    async def select_random(
        self,
        collection_id: str,
        user_id: str,
        visit_date: datetime,
        now: datetime | None = None,
    ) -> DecisionResult:
        """Pick a restaurant for one user with the weighted lottery.

        Args:
            collection_id: Collection to pick from
            user_id: User asking
            visit_date: When the visit is planned for
            now: Current time (for deterministic testing)

        Returns:
            DecisionResult with the weights snapshot used for the draw

        Raises:
            CollectionNotFound, EmptyCollection
        """
        now = now or datetime.now(UTC)
        candidates, chosen = await self._draw(collection_id, DecisionKind.PERSONAL, now)

        result = DecisionResult(
            restaurant_id=chosen.restaurant_id,
            selected_at=now,
            reasoning=describe_selection(chosen),
            weights=weights_snapshot(candidates),
        )
        decision = Decision(
            kind=DecisionKind.PERSONAL,
            collection_id=collection_id,
            participants=[user_id],
            method=DecisionMethod.RANDOM,
            status=DecisionStatus.COMPLETED,
            deadline=now,
            visit_date=visit_date,
            result=result,
            created_at=now,
            updated_at=now,
        )
        await self.store.create_decision(decision)

        logger.info(
            "decision_selected",
            decision_id=decision.id,
            collection_id=collection_id,
            user_id=user_id,
            restaurant_id=chosen.restaurant_id,
            weight=chosen.weight,
            candidates=len(candidates),
        )
        await self.events.decision_completed(decision, result)
        return result

    async def select_group_random(
        self,
        collection_id: str,
        group_id: str,
        user_id: str,
        visit_date: datetime,
        now: datetime | None = None,
    ) -> DecisionResult:
        """Run the weighted lottery on behalf of a whole group.

        Weights come from the group's own completed decisions over the
        collection. Every admin and member of the group becomes a participant.

        Raises:
            GroupNotFound, NotAParticipant, CollectionNotFound, EmptyCollection
        """
        now = now or datetime.now(UTC)

        group = await self.store.get_group(group_id)
        if group is None:
            raise GroupNotFound()
        if not group.is_member(user_id):
            raise NotAParticipant("User is not a member of this group")

        candidates, chosen = await self._draw(collection_id, DecisionKind.GROUP, now, group_id=group_id)

        result = DecisionResult(
            restaurant_id=chosen.restaurant_id,
            selected_at=now,
            reasoning=describe_selection(chosen, for_group=True),
            weights=weights_snapshot(candidates),
        )
        decision = Decision(
            kind=DecisionKind.GROUP,
            collection_id=collection_id,
            group_id=group_id,
            participants=group.all_member_ids,
            method=DecisionMethod.RANDOM,
            status=DecisionStatus.COMPLETED,
            deadline=now,
            visit_date=visit_date,
            result=result,
            created_at=now,
            updated_at=now,
        )
        await self.store.create_decision(decision)

        logger.info(
            "group_decision_selected",
            decision_id=decision.id,
            group_id=group_id,
            collection_id=collection_id,
            restaurant_id=chosen.restaurant_id,
            weight=chosen.weight,
        )
        await self.events.decision_completed(decision, result)
        return result

    async def record_manual_decision(
        self,
        collection_id: str,
        restaurant_id: str,
        user_id: str,
        visit_date: datetime,
        kind: DecisionKind = DecisionKind.PERSONAL,
        group_id: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Record a visit that was decided outside the app.

        The decision is stored completed with an empty weights snapshot and
        counts towards future weights like any other selection.

        Raises:
            CollectionNotFound, RestaurantNotFound, GroupNotFound,
            NotAParticipant, InvalidDecision
        """
        now = now or datetime.now(UTC)

        collection = await self.store.get_collection(collection_id)
        if collection is None:
            raise CollectionNotFound()

        restaurant = await self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFound()

        if kind == DecisionKind.GROUP:
            if not group_id:
                raise InvalidDecision("group_id is required for a group decision")
            group = await self.store.get_group(group_id)
            if group is None:
                raise GroupNotFound()
            if not group.is_member(user_id):
                raise NotAParticipant("User is not a member of this group")
        else:
            group_id = None

        decision = Decision(
            kind=kind,
            collection_id=collection_id,
            group_id=group_id,
            participants=[user_id],
            method=DecisionMethod.MANUAL,
            status=DecisionStatus.COMPLETED,
            deadline=max(visit_date, now),
            visit_date=visit_date,
            result=DecisionResult(
                restaurant_id=restaurant_id,
                selected_at=now,
                reasoning=notes or "Manually entered decision",
                weights={},
            ),
            created_at=now,
            updated_at=now,
        )
        created = await self.store.create_decision(decision)

        logger.info(
            "manual_decision_recorded",
            decision_id=created.id,
            user_id=user_id,
            restaurant_id=restaurant_id,
            kind=kind.value,
        )
        return created
