"""
Shared test fixtures.

Every test gets its own SQLite file and media directory under tmp_path,
so nothing leaks between tests.
"""

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app

TEST_ACCESS_SECRET = "test-access-secret-for-testing-only"
TEST_REFRESH_SECRET = "test-refresh-secret-for-testing-only"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        ACCESS_TOKEN_SECRET=TEST_ACCESS_SECRET,
        REFRESH_TOKEN_SECRET=TEST_REFRESH_SECRET,
        BCRYPT_ROUNDS=4,
        MEDIA_ROOT=str(tmp_path / "media"),
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    # https so the Secure cookies are sent back by the client
    with TestClient(app, base_url="https://testserver") as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
