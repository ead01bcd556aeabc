"""
tests/conftest.py -- Shared fixtures.

Every test gets its own app built with TestingConfig. DATABASE_URL is
sqlite:///:memory: with a StaticPool (see DBStorage), so each app has a
private, empty database and nothing leaks between tests.
"""
from __future__ import annotations

import pytest

from api import create_app
from models.user import UserRole

PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    app.extensions["storage"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_service(app):
    """AuthService wired to the app's real UserDirectory and TokenStore."""
    return app.extensions["auth_service"]


@pytest.fixture
def alice(auth_service):
    return auth_service.register("Alice", "alice@example.com", PASSWORD)


@pytest.fixture
def bob(auth_service):
    return auth_service.register("Bob", "bob@example.com", PASSWORD)


@pytest.fixture
def admin(auth_service):
    user = auth_service.users.create("Admin", "admin@example.com", PASSWORD, role=UserRole.ADMIN)
    return auth_service.users.to_public(user)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def login_via_api(client, email: str, password: str = PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})
