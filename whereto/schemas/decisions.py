"""Decision records and API request/response schemas."""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, Field


class DecisionKind(str, Enum):
    """Who the decision is for."""

    PERSONAL = "personal"
    GROUP = "group"


class DecisionMethod(str, Enum):
    """How the decision is resolved."""

    RANDOM = "random"
    TIERED = "tiered"
    MANUAL = "manual"  # Retroactively entered visit, history only


class DecisionStatus(str, Enum):
    """Decision lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _ensure_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


class VoteBreakdown(BaseModel):
    """Per-restaurant count of first/second/third place rankings."""

    first: int = 0
    second: int = 0
    third: int = 0
    total: int = 0


class DecisionResult(BaseModel):
    """Outcome of a completed decision, stored for audit."""

    restaurant_id: str
    selected_at: UtcDatetime
    reasoning: str
    weights: dict[str, float] = Field(default_factory=dict)
    # Tiered decisions only
    scores: dict[str, int] | None = None
    vote_breakdown: dict[str, VoteBreakdown] | None = None


class Ballot(BaseModel):
    """One participant's ranking for a group decision."""

    user_id: str
    ranked_restaurant_ids: list[str]
    submitted_at: UtcDatetime = Field(default_factory=_utcnow)


class Decision(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: DecisionKind
    collection_id: str
    group_id: str | None = None
    participants: list[str]
    method: DecisionMethod
    status: DecisionStatus = DecisionStatus.ACTIVE
    deadline: UtcDatetime
    visit_date: UtcDatetime
    result: DecisionResult | None = None
    ballots: list[Ballot] = Field(default_factory=list)
    # Bumped by every stored ballot; completion is conditional on it
    version: int = 0
    created_at: UtcDatetime = Field(default_factory=_utcnow)
    updated_at: UtcDatetime = Field(default_factory=_utcnow)

    def ballot_for(self, user_id: str) -> Ballot | None:
        return next((b for b in self.ballots if b.user_id == user_id), None)


class Collection(BaseModel):
    """A curated set of restaurants. ``restaurant_ids`` is already normalized."""

    id: str
    name: str
    kind: DecisionKind = DecisionKind.PERSONAL
    owner_id: str | None = None
    restaurant_ids: list[str] = Field(default_factory=list)


class Restaurant(BaseModel):
    id: str
    name: str
    external_id: str | None = None


class Group(BaseModel):
    id: str
    name: str
    admin_ids: list[str] = Field(default_factory=list)
    member_ids: list[str] = Field(default_factory=list)

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admin_ids

    def is_member(self, user_id: str) -> bool:
        return user_id in self.admin_ids or user_id in self.member_ids

    @property
    def all_member_ids(self) -> list[str]:
        """Admins and members, de-duplicated, admins first."""
        return list(dict.fromkeys([*self.admin_ids, *self.member_ids]))


# ---------------------------------------------------------------------------
# Statistics & history
# ---------------------------------------------------------------------------


class RestaurantStatistics(BaseModel):
    restaurant_id: str
    name: str
    selection_count: int
    last_selected: UtcDatetime | None = None
    current_weight: float


class DecisionStatistics(BaseModel):
    total_decisions: int
    restaurants: list[RestaurantStatistics]


class HistoryQuery(BaseModel):
    """Filter for completed decisions a user participated in."""

    user_id: str
    kind: Literal["personal", "group", "all"] = "all"
    collection_id: str | None = None
    group_id: str | None = None
    restaurant_id: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    limit: int = Field(default=100, gt=0, le=500)
    offset: int = Field(default=0, ge=0)


class HistoryPage(BaseModel):
    decisions: list[Decision]
    total: int
    offset: int
    limit: int


# ---------------------------------------------------------------------------
# API requests / responses
# ---------------------------------------------------------------------------


class RandomSelectRequest(BaseModel):
    collection_id: str
    visit_date: UtcDatetime


class GroupRandomSelectRequest(BaseModel):
    collection_id: str
    group_id: str
    visit_date: UtcDatetime


class ManualDecisionRequest(BaseModel):
    collection_id: str
    restaurant_id: str
    visit_date: UtcDatetime
    kind: DecisionKind = DecisionKind.PERSONAL
    group_id: str | None = None
    notes: str | None = None


class CreateGroupDecisionRequest(BaseModel):
    """Request to start a group decision.

    When ``participants`` is omitted every admin and member of the group takes part.
    """

    collection_id: str
    group_id: str
    method: Literal["random", "tiered"] = "tiered"
    visit_date: UtcDatetime
    # Defaults to the default_deadline_hours setting; the upper bound is max_deadline_hours
    deadline_hours: int | None = Field(default=None, ge=1)
    participants: list[str] | None = None


class SubmitVoteRequest(BaseModel):
    rankings: list[str] = Field(min_length=1, description="Restaurant ids in order of preference")


class VoteResponse(BaseModel):
    accepted: bool


class CloseDecisionResponse(BaseModel):
    closed: bool
