"""GroupDecisionService: group decision lifecycle, ballots and tiered tally."""

import random
from datetime import UTC, datetime

import structlog

from whereto.core.exceptions import (
    CollectionNotFound,
    DecisionNotFound,
    EmptyCollection,
    GroupNotFound,
    InvalidDecision,
    NoVotesSubmitted,
    NotActive,
    NotAdmin,
    NotAGroupDecision,
    NotAParticipant,
    NotATieredDecision,
    TallyConflict,
)
from whereto.domain.lifecycle import compute_deadline, is_past_deadline
from whereto.domain.selection import build_candidates, weighted_choice, weights_snapshot
from whereto.domain.tally import TallyResult, describe_tally, tally_ballots
from whereto.events import DecisionEventPublisher
from whereto.schemas.decisions import (
    Ballot,
    Decision,
    DecisionKind,
    DecisionMethod,
    DecisionResult,
    DecisionStatus,
    Restaurant,
)
from whereto.services.selection_service import DEFAULT_HISTORY_LIMIT
from whereto.store.protocol import DecisionStore

logger = structlog.get_logger(__name__)

MIN_DEADLINE_HOURS = 1
MAX_DEADLINE_HOURS = 336

# Re-tallies allowed when ballots land between reading and completing
TALLY_ATTEMPTS = 3


class GroupDecisionService:
    """Service layer for group decisions.

    Orchestrates creation, ballot collection, tally completion, admin close
    and lazy deadline expiry. Holds no locks: every state change is a single
    conditional write in the store, and a lost race surfaces as NotActive.
    """

    def __init__(
        self,
        store: DecisionStore,
        events: DecisionEventPublisher | None = None,
        rng: random.Random | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_deadline_hours: int = MAX_DEADLINE_HOURS,
    ):
        """Initialize with dependency injection.

        Args:
            store: Decision store adapter
            events: Publisher for decision started/completed notifications
            rng: Source of uniform draws for the tie-break
            history_limit: Number of recent completed decisions used for tie-break weights
            max_deadline_hours: Upper bound accepted for a new decision's deadline
        """
        self.store = store
        self.events = events or DecisionEventPublisher(None)
        self.rng = rng or random.Random()
        self.history_limit = history_limit
        self.max_deadline_hours = max_deadline_hours

    async def _load(self, decision_id: str, now: datetime) -> Decision:
        """Load a decision and apply lazy deadline expiry.

        Raises:
            DecisionNotFound: No decision with this id
        """
        decision = await self.store.get_decision(decision_id)
        if decision is None:
            raise DecisionNotFound()
        return await self._apply_expiry(decision, now)

    async def _apply_expiry(self, decision: Decision, now: datetime) -> Decision:
        """Persist active -> expired when the deadline has passed."""
        if not is_past_deadline(decision, now):
            return decision

        if await self.store.expire_decision(decision.id, now):
            logger.info("decision_expired", decision_id=decision.id, deadline=decision.deadline.isoformat())
            decision.status = DecisionStatus.EXPIRED
            decision.updated_at = now
            return decision

        # Someone else moved it out of active first; re-read the winner's state
        return await self.store.get_decision(decision.id) or decision

    async def create_group_decision(
        self,
        collection_id: str,
        group_id: str,
        participants: list[str],
        method: DecisionMethod,
        visit_date: datetime,
        deadline_hours: int = 24,
        now: datetime | None = None,
    ) -> Decision:
        """Start a group decision in the active state.

        Args:
            collection_id: Collection the group decides over
            group_id: Owning group
            participants: Users allowed to vote (non-empty)
            method: random or tiered
            visit_date: When the visit is planned for
            deadline_hours: Hours until the decision expires
            now: Current time (for deterministic testing)

        Raises:
            CollectionNotFound, GroupNotFound, InvalidDecision
        """
        now = now or datetime.now(UTC)
        method = DecisionMethod(method)

        if method == DecisionMethod.MANUAL:
            raise InvalidDecision("Group decisions must use the random or tiered method")
        if not participants:
            raise InvalidDecision("A group decision needs at least one participant")
        if not MIN_DEADLINE_HOURS <= deadline_hours <= self.max_deadline_hours:
            raise InvalidDecision(
                f"deadline_hours must be between {MIN_DEADLINE_HOURS} and {self.max_deadline_hours}"
            )

        if await self.store.get_collection(collection_id) is None:
            raise CollectionNotFound()
        if await self.store.get_group(group_id) is None:
            raise GroupNotFound()

        decision = Decision(
            kind=DecisionKind.GROUP,
            collection_id=collection_id,
            group_id=group_id,
            participants=list(dict.fromkeys(participants)),
            method=method,
            status=DecisionStatus.ACTIVE,
            deadline=compute_deadline(now, deadline_hours),
            visit_date=visit_date,
            created_at=now,
            updated_at=now,
        )
        created = await self.store.create_decision(decision)

        logger.info(
            "group_decision_created",
            decision_id=created.id,
            group_id=group_id,
            collection_id=collection_id,
            method=method.value,
            participants=len(created.participants),
            deadline=created.deadline.isoformat(),
        )
        await self.events.decision_started(created)
        return created

    async def submit_vote(
        self,
        decision_id: str,
        user_id: str,
        ranked_restaurant_ids: list[str],
        now: datetime | None = None,
    ) -> dict:
        """Store a participant's ranking, replacing any earlier one.

        Ids are not checked against the collection here; unknown ids are
        ignored at tally time.

        Returns:
            {"accepted": True}

        Raises:
            DecisionNotFound, NotAGroupDecision, NotActive, NotAParticipant
        """
        now = now or datetime.now(UTC)
        decision = await self._load(decision_id, now)

        if decision.kind != DecisionKind.GROUP:
            raise NotAGroupDecision()
        if decision.status != DecisionStatus.ACTIVE:
            raise NotActive()
        if user_id not in decision.participants:
            raise NotAParticipant()

        replaced = decision.ballot_for(user_id) is not None
        stored = await self.store.upsert_ballot(
            decision_id,
            Ballot(user_id=user_id, ranked_restaurant_ids=list(ranked_restaurant_ids), submitted_at=now),
        )
        if not stored:
            logger.info("ballot_rejected_not_active", decision_id=decision_id, user_id=user_id)
            raise NotActive()

        logger.info(
            "ballot_upserted",
            decision_id=decision_id,
            user_id=user_id,
            rankings=len(ranked_restaurant_ids),
            replaced=replaced,
        )
        return {"accepted": True}

    async def _tally(
        self, decision: Decision, restaurants: list[Restaurant], now: datetime
    ) -> tuple[TallyResult, DecisionResult]:
        tally = tally_ballots(decision.ballots, [r.id for r in restaurants])

        tie_break_weights: dict[str, float] = {}
        if tally.is_tie:
            history = await self.store.get_recent_completed_decisions(
                decision.collection_id,
                DecisionKind.GROUP,
                self.history_limit,
                group_id=decision.group_id,
            )
            candidates = build_candidates(tally.leaders, history, now=now)
            winner_id = weighted_choice(candidates, self.rng).restaurant_id
            tie_break_weights = weights_snapshot(candidates)
        else:
            winner_id = tally.leaders[0]

        return tally, DecisionResult(
            restaurant_id=winner_id,
            selected_at=now,
            reasoning=describe_tally(tally, winner_id),
            weights=tie_break_weights,
            scores=tally.scores,
            vote_breakdown=tally.breakdown,
        )

    async def complete_tiered(self, decision_id: str, now: datetime | None = None) -> DecisionResult:
        """Tally the ballots of a tiered decision and record the winner.

        1st choice earns 3 points, 2nd 2, 3rd 1. A tie at the top is broken
        with the weighted lottery over the tied restaurants, weighted by the
        group's own history.

        The result is written only if no ballot was stored after the tally
        read the decision. Otherwise the decision is read and tallied again,
        up to TALLY_ATTEMPTS times, so every accepted ballot is counted.

        Raises:
            DecisionNotFound, NotATieredDecision, NotActive, NoVotesSubmitted,
            EmptyCollection, TallyConflict
        """
        now = now or datetime.now(UTC)

        for attempt in range(1, TALLY_ATTEMPTS + 1):
            decision = await self._load(decision_id, now)

            if decision.method != DecisionMethod.TIERED:
                raise NotATieredDecision()
            if decision.status != DecisionStatus.ACTIVE:
                raise NotActive()
            if not decision.ballots:
                raise NoVotesSubmitted()

            restaurants = await self.store.get_restaurants_in_collection(decision.collection_id)
            if not restaurants:
                raise EmptyCollection()

            tally, result = await self._tally(decision, restaurants, now)
            if await self.store.finalize_decision(decision_id, result, now, expected_version=decision.version):
                break

            # Completed or closed elsewhere, or a ballot arrived; the next read tells which
            logger.info("decision_tally_stale", decision_id=decision_id, attempt=attempt, version=decision.version)
        else:
            latest = await self.store.get_decision(decision_id)
            if latest is None or latest.status != DecisionStatus.ACTIVE:
                raise NotActive()
            raise TallyConflict()

        decision.status = DecisionStatus.COMPLETED
        decision.result = result
        logger.info(
            "decision_completed",
            decision_id=decision_id,
            restaurant_id=result.restaurant_id,
            top_score=tally.top_score,
            ballots=tally.ballot_count,
            tie_break=tally.is_tie,
            ignored_ids=sorted(tally.ignored_ids),
        )
        await self.events.decision_completed(decision, result)
        return result

    async def close(self, decision_id: str, by_user_id: str, now: datetime | None = None) -> dict:
        """Close an active group decision without a result (admin only).

        Returns:
            {"closed": True}

        Raises:
            DecisionNotFound, NotAGroupDecision, NotActive, GroupNotFound, NotAdmin
        """
        now = now or datetime.now(UTC)
        decision = await self._load(decision_id, now)

        if decision.kind != DecisionKind.GROUP:
            raise NotAGroupDecision()
        if decision.status != DecisionStatus.ACTIVE:
            raise NotActive()

        group = await self.store.get_group(decision.group_id) if decision.group_id else None
        if group is None:
            raise GroupNotFound()
        if not group.is_admin(by_user_id):
            raise NotAdmin()

        if not await self.store.expire_decision(decision_id, now):
            raise NotActive()

        logger.info("decision_closed", decision_id=decision_id, closed_by=by_user_id)
        return {"closed": True}

    async def get_decision(self, decision_id: str, now: datetime | None = None) -> Decision:
        """Return a decision as observed now (deadline expiry applied).

        Raises:
            DecisionNotFound
        """
        return await self._load(decision_id, now or datetime.now(UTC))

    async def list_group_decisions(self, group_id: str, now: datetime | None = None) -> list[Decision]:
        """All decisions of a group, newest first, any status.

        Callers filter by status themselves; history and active decisions
        are usually shown together.
        """
        now = now or datetime.now(UTC)
        decisions = await self.store.list_group_decisions(group_id)
        return [await self._apply_expiry(decision, now) for decision in decisions]
