"""
tests/conftest.py -- Shared test fixtures for SafeVault unit and integration tests.

This module provides:
  - store / hasher / service: isolated in-memory auth core for unit tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus an admin session token for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API client because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import:
get_settings() auto-generates SECRET_KEY in dev mode instead of raising, and
cost factor 4 keeps each bcrypt call in the millisecond range.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import -- get_settings() is cached on first call.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Role
from auth.passwords import CredentialHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import issue_session

ADMIN_PASSWORD = "Adm1n!Pass"
USER_PASSWORD = "Str0ng!Pass"

# ---------------------------------------------------------------------------
# Unit fixtures -- fresh in-memory store per test
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(rounds=4)


@pytest.fixture
def service(store: UserStore, hasher: CredentialHasher) -> AuthService:
    return AuthService(store, hasher=hasher)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, auth_service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see an
    isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The admin is registered through AuthService like any other account and
    then promoted -- registration itself can never produce an Admin.
    Each test module gets its own shared-memory DB, named after the module.
    base_url uses localhost so TrustedHostMiddleware accepts the requests.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    user_store = UserStore(db_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    auth_service = AuthService(user_store, hasher=CredentialHasher(rounds=4))

    admin = auth_service.register("testadmin", "admin@example.com", ADMIN_PASSWORD, ADMIN_PASSWORD)
    admin = user_store.update_role(admin.id, Role.ADMIN.value)
    token = issue_session(admin).token

    app.router.lifespan_context = _patch_lifespan(user_store, auth_service)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield client, token, admin.id

    user_store.close()


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """Clear slowapi counters so per-IP login limits never leak between tests."""
    limiter.reset()
