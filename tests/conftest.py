"""
- Spins up temp test DB
- Create tables before tests run
- Provide a db_session fixture and override FastAPI's get_db so routes use the test session.
- Provide a client fixture (TestClient(app)) that already has the DB override applied.
- Provide a small fixed dictionary and in-memory room store for the core tests.
"""
import os
import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the app does NOT run dev-only startup hooks (e.g., auto-create tables against real DB)
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from wordduel.bootstrap_db import create_all, drop_all
from wordduel.db import get_db
from wordduel.main import app
from wordduel.dictionary import WordList
from wordduel.room_store import InMemoryRoomStore

# Use SQLite in-memory for tests (fast, isolated)
TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"

# Everything the tests guess; solutions are only drawn when a test doesn't pin the word
TEST_WORDS = [
    "crane", "trace", "crate", "react", "cater", "slate", "stale", "least",
    "apple", "papal", "lemon", "level", "hello", "world", "speed", "abbey",
    "kebab", "eerie", "robot", "ghost", "brick", "jumpy", "fizzy", "water",
    "cigar", "rebut", "sissy", "humph", "awake", "blush", "focal", "evade",
]


@pytest.fixture(scope="session")
def engine():
    # StaticPool + check_same_thread=False lets Starlette's TestClient and SQLAlchemy
    # share ONE in-memory SQLite database across threads.
    engine = create_engine(
        TEST_DATABASE_URL,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all(engine)
    yield engine
    drop_all(engine)


@pytest.fixture
def db_session(engine) -> Generator:
    """Provide a clean session per test with rollback."""
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _clean_db(engine):
    """
    Keep tests independent:
    the repository commits inside requests, so data would leak between tests.
    """
    with engine.begin() as conn:
        for table in ("match_results", "head_to_head", "user_stats", "game_states", "rooms", "users"):
            conn.execute(text(f"DELETE FROM {table}"))
    yield


@pytest.fixture(autouse=True)
def override_dep(db_session):
    """Force the app to use our test session for every request."""
    def _get_db_for_tests():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_for_tests
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def words() -> WordList:
    return WordList(TEST_WORDS)


@pytest.fixture
def room_store() -> InMemoryRoomStore:
    return InMemoryRoomStore()
