"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Service tests get a session that rolls
back after the test; engine and API tests get a PointsEngine
bound to the same database, with a clock the test controls.
"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from points_ledger.main import app
from points_ledger.models.base import Base, get_db
from points_ledger.services.engine import PointsEngine, get_engine


# SQLite for tests, no external database needed.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)

# A Wednesday. The week containing it starts on Sunday 2026-10-11.
WEDNESDAY = datetime(2026, 10, 14, 10, 0)


class FrozenClock:
    """Stand-in for datetime.now that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    autouse=True means every test gets this automatically.
    This ensures each test starts with a clean database.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock():
    return FrozenClock(WEDNESDAY)


@pytest.fixture
def points_engine(clock):
    """A PointsEngine on the test database, one session per operation."""
    return PointsEngine(TestSessionLocal, clock=clock)


@pytest.fixture
def client(points_engine):
    """
    Provide a test client with the test database.

    Writes go through the engine, which commits on its own
    sessions, so every request also gets a fresh session rather
    than one shared across the test.
    """
    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: points_engine
    yield TestClient(app)
    app.dependency_overrides.clear()
