"""Group decision API routes."""

from fastapi import APIRouter, Depends

from whereto.api.deps import get_group_decision_service, get_selection_service
from whereto.core.auth import ClerkUser, require_auth
from whereto.core.config import Settings, get_settings
from whereto.core.exceptions import GroupNotFound, NotAParticipant
from whereto.schemas.decisions import (
    CloseDecisionResponse,
    CreateGroupDecisionRequest,
    Decision,
    DecisionResult,
    Group,
    GroupRandomSelectRequest,
    SubmitVoteRequest,
    VoteResponse,
)
from whereto.services.group_decision_service import GroupDecisionService
from whereto.services.selection_service import SelectionService

router = APIRouter()


async def _require_member(service: GroupDecisionService, group_id: str, user_id: str) -> Group:
    group = await service.store.get_group(group_id)
    if group is None:
        raise GroupNotFound()
    if not group.is_member(user_id):
        raise NotAParticipant("User is not a member of this group")
    return group


@router.post("", response_model=Decision, status_code=201)
async def create_group_decision(
    request: CreateGroupDecisionRequest,
    user: ClerkUser = Depends(require_auth),
    service: GroupDecisionService = Depends(get_group_decision_service),
    settings: Settings = Depends(get_settings),
):
    """Start a group decision.

    Without an explicit participant list every admin and member of the group
    takes part. Without ``deadline_hours`` the configured default applies.

    Raises:
        WhereToError(404): Collection or group not found
        WhereToError(403): Caller is not a member of the group
        WhereToError(422): Invalid method, deadline or participants
    """
    group = await _require_member(service, request.group_id, user.user_id)
    participants = request.participants if request.participants is not None else group.all_member_ids
    deadline_hours = request.deadline_hours if request.deadline_hours is not None else settings.default_deadline_hours

    return await service.create_group_decision(
        request.collection_id,
        request.group_id,
        participants,
        request.method,
        request.visit_date,
        deadline_hours=deadline_hours,
    )


@router.post("/random-select", response_model=DecisionResult)
async def group_random_select(
    request: GroupRandomSelectRequest,
    user: ClerkUser = Depends(require_auth),
    service: SelectionService = Depends(get_selection_service),
):
    """Run the weighted lottery for a whole group, weighted by the group's history."""
    return await service.select_group_random(
        request.collection_id, request.group_id, user.user_id, request.visit_date
    )


@router.get("/{group_id}", response_model=list[Decision])
async def list_group_decisions(
    group_id: str,
    user: ClerkUser = Depends(require_auth),
    service: GroupDecisionService = Depends(get_group_decision_service),
):
    """All decisions of a group, newest first, with deadline expiry applied."""
    await _require_member(service, group_id, user.user_id)
    return await service.list_group_decisions(group_id)


@router.post("/{decision_id}/vote", response_model=VoteResponse)
async def submit_vote(
    decision_id: str,
    request: SubmitVoteRequest,
    user: ClerkUser = Depends(require_auth),
    service: GroupDecisionService = Depends(get_group_decision_service),
):
    """Submit or replace the caller's ranking.

    Raises:
        WhereToError(404): Decision not found
        WhereToError(409): Not a group decision, or no longer active
        WhereToError(403): Caller is not a participant
    """
    return await service.submit_vote(decision_id, user.user_id, request.rankings)


@router.post("/{decision_id}/complete", response_model=DecisionResult)
async def complete_decision(
    decision_id: str,
    user: ClerkUser = Depends(require_auth),
    service: GroupDecisionService = Depends(get_group_decision_service),
):
    """Tally a tiered decision and record the winner. Any participant may trigger it."""
    decision = await service.get_decision(decision_id)
    if user.user_id not in decision.participants:
        raise NotAParticipant()
    return await service.complete_tiered(decision_id)


@router.post("/{decision_id}/close", response_model=CloseDecisionResponse)
async def close_decision(
    decision_id: str,
    user: ClerkUser = Depends(require_auth),
    service: GroupDecisionService = Depends(get_group_decision_service),
):
    """Close an active group decision without a result (group admins only)."""
    return await service.close(decision_id, user.user_id)
