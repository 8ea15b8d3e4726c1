"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides test database, client, fake camera and fake decoder fixtures.

==============================================================================
"""

import os
from typing import Generator

# In-memory database for the application singleton (set before app imports)
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.database import Base, get_db
from app.core.dependencies import get_camera_backend, get_decoder
from fakes import FakeBackend, FakeDecoder


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

# In-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# ============================================================================
# SCANNER FIXTURES
# ============================================================================

@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
def client(db: Session, backend: FakeBackend, decoder: FakeDecoder) -> Generator[TestClient, None, None]:
    """Create test client with database, camera and decoder overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_camera_backend] = lambda: backend
    app.dependency_overrides[get_decoder] = lambda: decoder

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
