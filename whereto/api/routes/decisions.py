"""Personal decision API routes: lottery, manual entry, statistics and history."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query

from whereto.api.deps import (
    get_group_decision_service,
    get_selection_lock,
    get_selection_service,
    get_statistics_service,
)
from whereto.core.auth import ClerkUser, require_auth
from whereto.core.exceptions import NotAParticipant, SelectionInProgress
from whereto.core.locking import SelectionLock
from whereto.schemas.decisions import (
    Decision,
    DecisionKind,
    DecisionResult,
    DecisionStatistics,
    HistoryPage,
    HistoryQuery,
    ManualDecisionRequest,
    RandomSelectRequest,
)
from whereto.services.group_decision_service import GroupDecisionService
from whereto.services.selection_service import SelectionService
from whereto.services.statistics_service import StatisticsService

router = APIRouter()


@router.post("/random-select", response_model=DecisionResult)
async def random_select(
    request: RandomSelectRequest,
    user: ClerkUser = Depends(require_auth),
    service: SelectionService = Depends(get_selection_service),
    selection_lock: SelectionLock | None = Depends(get_selection_lock),
):
    """Pick a restaurant from a collection with the weighted lottery.

    Raises:
        WhereToError(404): Collection not found
        WhereToError(409): Collection is empty, or a selection is already running
    """
    if selection_lock is None:
        return await service.select_random(request.collection_id, user.user_id, request.visit_date)

    async with selection_lock.lock(request.collection_id, user.user_id) as acquired:
        if not acquired:
            raise SelectionInProgress()
        return await service.select_random(request.collection_id, user.user_id, request.visit_date)


@router.post("/manual", response_model=Decision, status_code=201)
async def record_manual_decision(
    request: ManualDecisionRequest,
    user: ClerkUser = Depends(require_auth),
    service: SelectionService = Depends(get_selection_service),
):
    """Record a visit decided outside the app so it counts towards weights."""
    return await service.record_manual_decision(
        request.collection_id,
        request.restaurant_id,
        user.user_id,
        request.visit_date,
        kind=request.kind,
        group_id=request.group_id,
        notes=request.notes,
    )


@router.get("/statistics/{collection_id}", response_model=DecisionStatistics)
async def get_statistics(
    collection_id: str,
    user: ClerkUser = Depends(require_auth),
    service: StatisticsService = Depends(get_statistics_service),
):
    return await service.get_statistics(collection_id)


@router.get("/history", response_model=HistoryPage)
async def get_history(
    kind: Literal["personal", "group", "all"] = "all",
    collection_id: str | None = None,
    group_id: str | None = None,
    restaurant_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = Query(default=100, gt=0, le=500),
    offset: int = Query(default=0, ge=0),
    user: ClerkUser = Depends(require_auth),
    service: StatisticsService = Depends(get_statistics_service),
):
    """Completed decisions the caller took part in, newest visit first."""
    query = HistoryQuery(
        user_id=user.user_id,
        kind=kind,
        collection_id=collection_id,
        group_id=group_id,
        restaurant_id=restaurant_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return await service.get_history(query)


@router.get("/{decision_id}", response_model=Decision)
async def get_decision(
    decision_id: str,
    user: ClerkUser = Depends(require_auth),
    service: GroupDecisionService = Depends(get_group_decision_service),
):
    """Fetch one decision. Participants and members of its group may read it.

    Raises:
        WhereToError(404): Decision not found
        WhereToError(403): Caller is neither a participant nor a group member
    """
    decision = await service.get_decision(decision_id)
    if user.user_id in decision.participants:
        return decision

    if decision.kind == DecisionKind.GROUP and decision.group_id:
        group = await service.store.get_group(decision.group_id)
        if group is not None and group.is_member(user.user_id):
            return decision

    raise NotAParticipant()
