"""FastAPI dependencies for the decision routes.

Every collaborator a route needs comes through one of these providers so
tests can swap it via ``app.dependency_overrides``.
"""

import random

from fastapi import Depends

from whereto.core.config import Settings, get_settings
from whereto.core.locking import SelectionLock
from whereto.db.base import get_session_factory
from whereto.db.redis import get_redis
from whereto.events import DecisionEventPublisher
from whereto.services.group_decision_service import GroupDecisionService
from whereto.services.selection_service import SelectionService
from whereto.services.statistics_service import StatisticsService
from whereto.store import DecisionStore, SqlDecisionStore


def get_decision_store() -> DecisionStore:
    return SqlDecisionStore(get_session_factory())


def get_event_publisher(settings: Settings = Depends(get_settings)) -> DecisionEventPublisher:
    """Redis-backed publisher, or a silent one when events are disabled."""
    if not settings.events_enabled:
        return DecisionEventPublisher(None)
    return DecisionEventPublisher(get_redis())


def get_rng() -> random.Random:
    return random.SystemRandom()


def get_selection_lock(settings: Settings = Depends(get_settings)) -> SelectionLock | None:
    """Per-(collection, user) lock, only when selections are serialized."""
    if not settings.serialize_selection:
        return None
    return SelectionLock(get_redis(), ttl=settings.selection_lock_ttl)


def get_selection_service(
    store: DecisionStore = Depends(get_decision_store),
    events: DecisionEventPublisher = Depends(get_event_publisher),
    rng: random.Random = Depends(get_rng),
    settings: Settings = Depends(get_settings),
) -> SelectionService:
    return SelectionService(store, events=events, rng=rng, history_limit=settings.history_limit)


def get_group_decision_service(
    store: DecisionStore = Depends(get_decision_store),
    events: DecisionEventPublisher = Depends(get_event_publisher),
    rng: random.Random = Depends(get_rng),
    settings: Settings = Depends(get_settings),
) -> GroupDecisionService:
    return GroupDecisionService(
        store,
        events=events,
        rng=rng,
        history_limit=settings.history_limit,
        max_deadline_hours=settings.max_deadline_hours,
    )


def get_statistics_service(
    store: DecisionStore = Depends(get_decision_store),
    settings: Settings = Depends(get_settings),
) -> StatisticsService:
    return StatisticsService(store, history_limit=settings.history_limit)
