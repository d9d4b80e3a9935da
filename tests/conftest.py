"""
Test fixtures for the userhub test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - factories / memory_store / sql_store: identity core building blocks
  - client: HTTP test client (unauthenticated) wired to the test database
  - create_user: stores a LOCAL/LDAP user directly, bypassing the API
  - admin_headers / member_headers: Authorization headers of a logged-in
    ADMIN and DEFAULT user

Key design decisions:
  - Environment variables are set before anything from userhub is imported,
    because the settings singleton is built at import time.
  - In-memory SQLite with a StaticPool: every session (and every thread the
    sync routes run in) shares one connection, so all of them see the same
    database, and each test gets a brand-new one.
  - get_db is overridden so the application code runs unchanged against the
    test database.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEMORY_USERS", '["gateway:GatewayPass123:SERVICE"]')

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import userhub.models  # noqa: F401
from userhub.database import Base, get_db
from userhub.identity.credential import Credential
from userhub.identity.factories import build_default_registry
from userhub.identity.roles import Realm, UserRole
from userhub.main import app
from userhub.stores.memory import InMemoryUserStore
from userhub.stores.sql import SqlUserStore


MEMBER_PASSWORD = "SecurePass123!"
ADMIN_PASSWORD = "AdminPass123!"


@pytest.fixture
def db_engine():
    """Create a fresh engine with all tables for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Provide a session bound to the test engine."""
    with session_factory() as session:
        yield session


@pytest.fixture
def factories():
    return build_default_registry()


@pytest.fixture
def memory_store():
    return InMemoryUserStore()


@pytest.fixture
def sql_store(db_session, factories):
    return SqlUserStore(db_session, factories)


@pytest.fixture
def create_user(session_factory, factories):
    """
    Store a user directly in the test database and return it.

    Usage:
        create_user("alice", "Password123!", role=UserRole.ADMIN)
    """

    def _create(
        username,
        password=MEMBER_PASSWORD,
        role=UserRole.DEFAULT,
        realm=Realm.LOCAL,
        active=True,
    ):
        credential = Credential.hash(password) if realm is not Realm.LDAP else None
        user = factories.get_factory(realm).create(username, credential, role, active)
        with session_factory() as session:
            SqlUserStore(session, factories).upsert(user)
            session.commit()
        return user

    return _create


@pytest.fixture
def client(session_factory):
    """
    HTTP test client with the test database injected.

    Entering the TestClient context runs the app lifespan, exactly like a
    real server start.
    """

    def override_get_db():
        with session_factory() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.directory_authenticator = None


@pytest.fixture
def login(client):
    """Log in through the API and return the bearer Authorization header."""

    def _login(username, password, realm=None):
        body = {"username": username, "password": password}
        if realm is not None:
            body["realm"] = realm
        response = client.post("/auth/login", json=body)
        assert response.status_code == 200, f"Login failed: {response.text}"
        return {"Authorization": f"Bearer {response.json()['token']['token']}"}

    return _login


@pytest.fixture
def admin_headers(login, create_user):
    """Headers of a LOCAL user with the ADMIN role."""
    create_user("admin", ADMIN_PASSWORD, role=UserRole.ADMIN)
    return login("admin", ADMIN_PASSWORD)


@pytest.fixture
def member_headers(login, create_user):
    """Headers of a regular LOCAL user named "testuser"."""
    create_user("testuser", MEMBER_PASSWORD)
    return login("testuser", MEMBER_PASSWORD)
