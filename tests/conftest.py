"""
tests/conftest.py -- Shared test fixtures for FitTrack.

This module provides:
  - make_settings(): test-environment Settings with a fixed secret
  - store / tokens / auth_service: unit-level components on in-memory SQLite
  - seeded_store: a store pre-loaded with TEST_USERS
  - client: TestClient over create_app() with an isolated, seeded database
  - make_auth_header(): builds "bearer <jwt>" the way the mobile client does

Design: HTTP tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the process. Each
client gets a unique name so tests never see each other's rows.

bcrypt runs at the minimum cost (4 rounds) to keep the suite fast.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api.main import create_app
from auth.models import User
from auth.passwords import hash_password
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings

TEST_SECRET = "fittrack-test-secret-0123456789abcdef"
TEST_ROUNDS = 4

TEST_USERS = [
    {"username": "test-user-1", "password": "password1", "age": 34, "height": 120.0, "userweight": 200.0},
    {"username": "test-user-2", "password": "password2", "age": 28, "height": 165.0, "userweight": 140.0},
    {"username": "test-user-3", "password": "password3", "age": 45, "height": 180.0, "userweight": 190.0},
]


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "database_url": "sqlite:///:memory:",
        "jwt_secret": TEST_SECRET,
        "bcrypt_rounds": TEST_ROUNDS,
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


def make_auth_header(user_id: int, username: str, secret: str = TEST_SECRET) -> str:
    """Sign a token independently of TokenService, as an external client would see it."""
    token = jwt.encode({"id": user_id, "sub": username}, secret, algorithm="HS256")
    return f"bearer {token}"


def seed_users(store: UserStore) -> list[User]:
    return [
        store.create_user(
            User(
                username=u["username"],
                hashed_password=hash_password(u["password"], rounds=TEST_ROUNDS),
                age=u["age"],
                height=u["height"],
                weight=u["userweight"],
            )
        )
        for u in TEST_USERS
    ]


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def seeded_store(store: UserStore) -> UserStore:
    seed_users(store)
    return store


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def auth_header():
    """Factory fixture: auth_header(user_id, username, secret=TEST_SECRET) -> "bearer <jwt>"."""
    return make_auth_header


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET)


@pytest.fixture
def auth_service(seeded_store: UserStore, tokens: TokenService) -> AuthService:
    return AuthService(seeded_store, tokens, bcrypt_rounds=TEST_ROUNDS)


# ---------------------------------------------------------------------------
# HTTP fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over a fully wired app with TEST_USERS pre-loaded.

    The store is created here and passed to create_app() so the lifespan uses
    it instead of opening settings.database_url; this fixture closes it.
    """
    db_url = f"sqlite:///file:fittrack_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    seed_users(user_store)
    app = create_app(make_settings(database_url=db_url), user_store=user_store)

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c

    user_store.close()
