# -*- coding: utf-8 -*-
"""
Pytest Configuration and Fixtures
=================================

Shared fixtures for the WorkDesk test suite.
"""

import os
import uuid

# Set test environment before the package reads it
os.environ["TESTING"] = "1"
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256-signing")

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from workdesk.database.connection import Base, build_engine, get_db, transaction_context
from workdesk.database import models  # noqa: F401
from workdesk.database.models import UserRole
from workdesk.database.repositories import UserRepository
from workdesk.offline import MemoryStore, ConnectivityMonitor


def pytest_configure(config):
    """Registers custom markers"""
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: API and end-to-end tests")


def generate_unique_id(prefix: str) -> str:
    """Unique name for test fixtures"""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """In-memory database shared by every session of one test"""
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a new database session for each test"""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def sample_user(db_session):
    """A user created straight through the repository"""
    from workdesk.api.auth import get_password_hash

    return UserRepository(db_session).create({
        "username": generate_unique_id("user"),
        "email": f"{generate_unique_id('mail')}@example.com",
        "password_hash": get_password_hash("testpass123"),
    })


# =============================================================================
# API CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def app(session_factory):
    """Application wired to the test database"""
    from workdesk.api.app import create_app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application = create_app(use_lifespan=False)
    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def api_client(app):
    """Create FastAPI test client"""
    from fastapi.testclient import TestClient
    return TestClient(app)


def register(client, username: str = None, password: str = "testpass123") -> dict:
    """Registers a user through the API, returns {token, user}"""
    username = username or generate_unique_id("user")
    response = client.post("/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    })
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(api_client):
    """Factory registering extra users: make_user("bob") -> {token, user, headers}"""
    def _make(username: str = None, password: str = "testpass123") -> dict:
        data = register(api_client, username, password)
        data["headers"] = bearer(data["token"])
        return data
    return _make


@pytest.fixture
def registered_user(api_client):
    return register(api_client)


@pytest.fixture
def auth_headers(registered_user):
    return bearer(registered_user["token"])


@pytest.fixture
def admin_user(api_client, session_factory):
    """A registered user promoted to admin"""
    data = register(api_client, generate_unique_id("admin"))
    with transaction_context(session_factory) as db:
        UserRepository(db).set_role(data["user"]["id"], UserRole.ADMIN)
    return data


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user["token"])


# =============================================================================
# OFFLINE CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def monitor():
    return ConnectivityMonitor(online=False)
