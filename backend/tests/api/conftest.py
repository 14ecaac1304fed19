"""API-specific test fixtures."""

import pytest
from fastapi.testclient import TestClient

from savrii.core.auth import get_current_user
from savrii.main import create_app
from savrii.schemas.entitlements import UserRecord


@pytest.fixture
def app():
    """Fresh FastAPI app per test (dependency overrides don't leak)."""
    return create_app()


@pytest.fixture
def api_client(app):
    """FastAPI test client. Lifespan is not run; routes need no startup state."""
    return TestClient(app)


@pytest.fixture
def as_user(app):
    """Sign in as the given user record for the rest of the test."""

    def _login(user: UserRecord) -> None:
        async def _override() -> UserRecord:
            return user

        app.dependency_overrides[get_current_user] = _override

    yield _login
    app.dependency_overrides.clear()
