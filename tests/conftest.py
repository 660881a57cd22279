"""
tests/conftest.py -- Shared test fixtures for SmartTicket.

This module provides:
  - FakeClock: a settable clock for token expiry tests
  - settings: validated Settings with a test secret and rate limiting off
  - store / service: an isolated credential store and AuthService
  - api_store / app / client: the real FastAPI app wired to an isolated store
  - signed_up / auth_headers: helpers that create a principal and log it in

Design: API tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
Each fixture instance gets its own name so tests never share principals.

SECRET_KEY is set before any project import so code paths that fall back to
get_settings() (create_app() without explicit settings) see a valid
configuration. Every app fixture here passes its own Settings.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator

# Set before any project import -- see module docstring.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import create_app
from auth.service import AuthService
from auth.store import PrincipalStore
from auth.tokens import TokenIssuer
from core.config import Settings

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"
TEST_EMAIL = "a@x.com"
TEST_PASSWORD = "p1"


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def shared_memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(secret_key=TEST_SECRET, rate_limit_enabled=False, database_url="sqlite:///:memory:")


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def issuer(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, ttl_seconds=86400, clock=clock)


@pytest.fixture
def store() -> Generator[PrincipalStore, None, None]:
    s = PrincipalStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: PrincipalStore, issuer: TokenIssuer) -> AuthService:
    return AuthService(store, issuer)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def api_store() -> Generator[PrincipalStore, None, None]:
    s = PrincipalStore(shared_memory_url("test_auth_api"))
    yield s
    s.close()


@pytest.fixture
def app(settings: Settings, api_store: PrincipalStore) -> FastAPI:
    return create_app(settings=settings, store=api_store)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def signed_up(client: TestClient) -> str:
    """Create the default test principal through the API and return its id."""
    resp = client.post("/api/auth/signup", json={"email": TEST_EMAIL, "password": TEST_PASSWORD, "name": "Ada"})
    assert resp.status_code == 201, resp.text
    return resp.json()["userId"]


@pytest.fixture
def auth_headers(client: TestClient, signed_up: str) -> dict[str, str]:
    resp = client.post("/api/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
