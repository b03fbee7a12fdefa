"""Tests for SelectionService: personal and group lottery, manual entry.

Uses InMemoryDecisionStore, a seeded RNG and a fixed clock.
"""

import random
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from whereto.core.exceptions import (
    CollectionNotFound,
    EmptyCollection,
    GroupNotFound,
    InvalidDecision,
    NotAParticipant,
    RestaurantNotFound,
)
from whereto.events import DECISIONS_CHANNEL, DecisionEventPublisher
from whereto.schemas.decisions import DecisionKind, DecisionMethod, DecisionStatus
from whereto.services.selection_service import SelectionService

pytestmark = pytest.mark.unit


@pytest.fixture
def service(store, rng):
    return SelectionService(store, rng=rng)


async def test_select_random_stores_completed_decision(service, store, now):
    result = await service.select_random("col-1", "user-1", now + timedelta(days=1), now=now)

    assert result.restaurant_id in {"r-a", "r-b", "r-c"}
    assert result.selected_at == now
    assert result.weights == {"r-a": 1.0, "r-b": 1.0, "r-c": 1.0}
    assert result.reasoning.startswith("Selected using weighted random algorithm. Weight: 1.00")

    (decision,) = store.decisions.values()
    assert decision.kind == DecisionKind.PERSONAL
    assert decision.method == DecisionMethod.RANDOM
    assert decision.status == DecisionStatus.COMPLETED
    assert decision.participants == ["user-1"]
    assert decision.deadline == now
    assert decision.result == result


async def test_select_random_unknown_collection(service, store, now):
    with pytest.raises(CollectionNotFound):
        await service.select_random("col-missing", "user-1", now, now=now)
    assert store.decisions == {}


async def test_select_random_empty_collection(service, store, now):
    with pytest.raises(EmptyCollection):
        await service.select_random("col-empty", "user-1", now, now=now)
    assert store.decisions == {}


async def test_recent_pick_lowers_weight(service, store, now, completed_decision):
    await store.create_decision(completed_decision("r-a", now - timedelta(days=5)))

    result = await service.select_random("col-1", "user-1", now, now=now)

    assert result.weights["r-a"] == pytest.approx(0.25)
    assert result.weights["r-b"] == 1.0


async def test_group_history_does_not_affect_personal_weights(service, store, now, completed_decision):
    await store.create_decision(
        completed_decision("r-a", now, kind=DecisionKind.GROUP, group_id="grp-1")
    )

    result = await service.select_random("col-1", "user-1", now, now=now)

    assert result.weights["r-a"] == 1.0


async def test_same_seed_gives_same_pick(store, now):
    first = await SelectionService(store, rng=random.Random(7)).select_random("col-1", "user-1", now, now=now)
    store.decisions.clear()
    second = await SelectionService(store, rng=random.Random(7)).select_random("col-1", "user-1", now, now=now)

    assert first.restaurant_id == second.restaurant_id


async def test_select_random_publishes_completed_event(store, rng, now):
    redis = AsyncMock()
    service = SelectionService(store, events=DecisionEventPublisher(redis), rng=rng)

    await service.select_random("col-1", "user-1", now, now=now)

    redis.publish.assert_awaited_once()
    assert redis.publish.await_args.args[0] == DECISIONS_CHANNEL


async def test_group_random_uses_all_members(service, store, now):
    result = await service.select_group_random("col-1", "grp-1", "user-2", now, now=now)

    (decision,) = store.decisions.values()
    assert decision.kind == DecisionKind.GROUP
    assert decision.group_id == "grp-1"
    assert decision.participants == ["admin-1", "user-1", "user-2"]
    assert decision.status == DecisionStatus.COMPLETED
    assert "for group" in result.reasoning


async def test_group_random_weights_use_group_history(service, store, now, completed_decision):
    await store.create_decision(completed_decision("r-b", now, kind=DecisionKind.GROUP, group_id="grp-1"))
    await store.create_decision(completed_decision("r-c", now))  # personal, ignored

    result = await service.select_group_random("col-1", "grp-1", "admin-1", now, now=now)

    assert result.weights == {"r-a": 1.0, "r-b": pytest.approx(0.1), "r-c": 1.0}


async def test_group_random_unknown_group(service, now):
    with pytest.raises(GroupNotFound):
        await service.select_group_random("col-1", "grp-missing", "user-1", now, now=now)


async def test_group_random_non_member(service, store, now):
    with pytest.raises(NotAParticipant):
        await service.select_group_random("col-1", "grp-1", "stranger", now, now=now)
    assert store.decisions == {}


async def test_manual_decision_recorded_as_history(service, store, now):
    visit = now - timedelta(days=2)

    decision = await service.record_manual_decision("col-1", "r-c", "user-1", visit, now=now)

    assert decision.method == DecisionMethod.MANUAL
    assert decision.status == DecisionStatus.COMPLETED
    assert decision.deadline == now
    assert decision.result.restaurant_id == "r-c"
    assert decision.result.reasoning == "Manually entered decision"
    assert decision.result.weights == {}

    result = await service.select_random("col-1", "user-1", now, now=now)
    assert result.weights["r-c"] == pytest.approx(0.1)


async def test_manual_decision_keeps_notes_and_future_deadline(service, now):
    visit = now + timedelta(days=3)

    decision = await service.record_manual_decision(
        "col-1", "r-a", "user-1", visit, notes="Birthday dinner", now=now
    )

    assert decision.deadline == visit
    assert decision.result.reasoning == "Birthday dinner"


async def test_manual_decision_unknown_restaurant(service, now):
    with pytest.raises(RestaurantNotFound):
        await service.record_manual_decision("col-1", "r-missing", "user-1", now, now=now)


async def test_manual_group_decision_requires_group_id(service, now):
    with pytest.raises(InvalidDecision):
        await service.record_manual_decision("col-1", "r-a", "user-1", now, kind=DecisionKind.GROUP, now=now)


async def test_manual_group_decision_requires_membership(service, now):
    with pytest.raises(NotAParticipant):
        await service.record_manual_decision(
            "col-1", "r-a", "stranger", now, kind=DecisionKind.GROUP, group_id="grp-1", now=now
        )
