"""Decision lifecycle rules.

States: active -> completed | expired. Both terminal states are final.
Expiry is lazy: an active decision whose deadline has passed is treated as
expired wherever it is read.
"""

from datetime import UTC, datetime, timedelta

from whereto.schemas.decisions import Decision, DecisionStatus

# Valid state transitions
TRANSITIONS: dict[DecisionStatus, set[DecisionStatus]] = {
    DecisionStatus.ACTIVE: {DecisionStatus.COMPLETED, DecisionStatus.EXPIRED},
    DecisionStatus.COMPLETED: set(),  # Terminal state
    DecisionStatus.EXPIRED: set(),  # Terminal state
}


def can_transition(current: DecisionStatus, target: DecisionStatus) -> bool:
    return target in TRANSITIONS.get(current, set())


def is_terminal(status: DecisionStatus) -> bool:
    return not TRANSITIONS.get(status)


def is_past_deadline(decision: Decision, now: datetime | None = None) -> bool:
    """True when an active decision's deadline has passed."""
    now = now or datetime.now(UTC)
    return decision.status == DecisionStatus.ACTIVE and decision.deadline < now


def effective_status(decision: Decision, now: datetime | None = None) -> DecisionStatus:
    """Status as observed at ``now``, with deadline expiry applied."""
    if is_past_deadline(decision, now):
        return DecisionStatus.EXPIRED
    return decision.status


def compute_deadline(created_at: datetime, deadline_hours: int) -> datetime:
    return created_at + timedelta(hours=deadline_hours)
