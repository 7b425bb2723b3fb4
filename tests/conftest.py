"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.database import QueryExecutor, create_db_engine, init_db
from src.main import create_app

# Use test database - PostgreSQL when DATABASE_URL is set, SQLite locally
if os.getenv("DATABASE_URL"):
    TEST_DATABASE_URL = os.getenv("DATABASE_URL").replace("/users_api", "/users_api_test")
else:
    TEST_DATABASE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in TEST_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(TEST_DATABASE_URL):
            create_database(TEST_DATABASE_URL)

    engine = create_db_engine(TEST_DATABASE_URL)
    init_db(engine)
    yield
    engine.dispose()


@pytest.fixture
def settings():
    """Settings pointing at the test database."""
    return Settings(database_url=TEST_DATABASE_URL, disconnect_poll_interval=0.01)


@pytest.fixture(scope="function")
def db():
    """Query executor on the test database; empties the users table afterwards."""
    executor = QueryExecutor(create_db_engine(TEST_DATABASE_URL))

    yield executor

    executor.execute('DELETE FROM "users"')
    executor.close()


@pytest.fixture(scope="function")
def client(db, settings):
    """Test client running the full application lifespan."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db):
    """Insert a user directly and return the stored row."""

    def _make_user(name: str = "Test User", email: str | None = "test@example.com") -> dict:
        return db.fetch_one(
            'INSERT INTO "users" (name, email) VALUES (?, ?) RETURNING id, name, email',
            [name, email],
        )

    return _make_user
