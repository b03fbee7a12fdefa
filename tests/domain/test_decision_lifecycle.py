"""Tests for decision lifecycle rules."""

from datetime import timedelta

import pytest

from whereto.domain.lifecycle import (
    can_transition,
    compute_deadline,
    effective_status,
    is_past_deadline,
    is_terminal,
)
from whereto.schemas.decisions import Decision, DecisionKind, DecisionMethod, DecisionStatus

pytestmark = pytest.mark.unit


def _active(now, deadline_delta: timedelta) -> Decision:
    return Decision(
        kind=DecisionKind.GROUP,
        collection_id="col-1",
        group_id="grp-1",
        participants=["user-1"],
        method=DecisionMethod.TIERED,
        deadline=now + deadline_delta,
        visit_date=now,
        created_at=now,
    )


def test_active_can_complete_or_expire():
    assert can_transition(DecisionStatus.ACTIVE, DecisionStatus.COMPLETED)
    assert can_transition(DecisionStatus.ACTIVE, DecisionStatus.EXPIRED)


@pytest.mark.parametrize("status", [DecisionStatus.COMPLETED, DecisionStatus.EXPIRED])
def test_terminal_states_are_final(status):
    assert is_terminal(status)
    assert not can_transition(status, DecisionStatus.ACTIVE)
    assert not can_transition(status, DecisionStatus.COMPLETED)


def test_active_is_not_terminal():
    assert not is_terminal(DecisionStatus.ACTIVE)


def test_deadline_in_future_stays_active(now):
    decision = _active(now, timedelta(hours=1))

    assert not is_past_deadline(decision, now)
    assert effective_status(decision, now) == DecisionStatus.ACTIVE


def test_deadline_passed_reads_as_expired(now):
    decision = _active(now, timedelta(hours=-1))

    assert is_past_deadline(decision, now)
    assert effective_status(decision, now) == DecisionStatus.EXPIRED


def test_completed_decision_never_expires(now):
    decision = _active(now, timedelta(hours=-1))
    decision.status = DecisionStatus.COMPLETED

    assert not is_past_deadline(decision, now)
    assert effective_status(decision, now) == DecisionStatus.COMPLETED


def test_compute_deadline(now):
    assert compute_deadline(now, 24) == now + timedelta(days=1)
