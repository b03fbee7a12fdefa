"""API-specific test fixtures.

Routes run against the seeded InMemoryDecisionStore through
``app.dependency_overrides``; no database or Redis is needed. The
TestClient is not entered as a context manager so the lifespan (which
connects to PostgreSQL and Redis) never runs.
"""

import pytest
from fastapi.testclient import TestClient

from whereto.api.deps import get_decision_store, get_event_publisher, get_rng, get_selection_lock
from whereto.core.auth import ClerkUser, require_auth
from whereto.events import DecisionEventPublisher
from whereto.main import create_app


def override_auth(user: ClerkUser):
    """Create auth override for a specific user."""

    async def _override():
        return user

    return _override


@pytest.fixture
def api_client(store, rng) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_decision_store] = lambda: store
    app.dependency_overrides[get_event_publisher] = lambda: DecisionEventPublisher(None)
    app.dependency_overrides[get_rng] = lambda: rng
    app.dependency_overrides[get_selection_lock] = lambda: None
    app.dependency_overrides[require_auth] = override_auth(ClerkUser(user_id="user-1", claims={"sub": "user-1"}))
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def login(api_client):
    """Switch the authenticated user for subsequent requests."""

    def _login(user_id: str) -> None:
        api_client.app.dependency_overrides[require_auth] = override_auth(
            ClerkUser(user_id=user_id, claims={"sub": user_id})
        )

    return _login
