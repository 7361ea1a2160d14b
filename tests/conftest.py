from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from authbridge.core.config import settings  # noqa: E402
from authbridge.db import session as session_module  # noqa: E402
from authbridge.db.base_class import Base  # noqa: E402
from authbridge.db.session import SessionLocal, enable_sqlite_foreign_keys  # noqa: E402
from authbridge.models import identity_models  # noqa: E402,F401
from authbridge.services.oauth.state_store import InMemoryStateStore, set_state_store  # noqa: E402

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)

# Ensure application code uses the test engine
settings.DATABASE_URL = TEST_DATABASE_URL  # type: ignore[attr-defined]
session_module.engine = test_engine  # type: ignore[assignment]
SessionLocal.configure(bind=test_engine)


@pytest.fixture(autouse=True)
def _reset_database_state():
    """Ensure each test sees a fresh database schema."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield


@pytest.fixture(autouse=True)
def state_store():
    """Fresh in-memory CSRF state store shared by the app and the test."""
    store = InMemoryStateStore()
    set_state_store(store)
    yield store
    set_state_store(None)


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def http_response():
    """Factory for real ``httpx.Response`` objects so ``raise_for_status`` behaves as in production."""

    def _build(status_code: int = 200, json_body=None, text: str | None = None):
        request = httpx.Request("GET", "https://provider.example/endpoint")
        if text is not None:
            return httpx.Response(status_code, text=text, request=request)
        return httpx.Response(status_code, json=json_body, request=request)

    return _build


@pytest.fixture
def mock_httpx(monkeypatch):
    """Replace ``httpx.AsyncClient`` with a mock whose ``post``/``get`` are AsyncMocks.

    Tests set ``mock_httpx.post.return_value`` / ``mock_httpx.get.side_effect``.
    """
    client = MagicMock()
    client.post = AsyncMock()
    client.get = AsyncMock()
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = client
    factory.return_value.__aexit__.return_value = False
    monkeypatch.setattr(httpx, "AsyncClient", factory)
    client.factory = factory
    return client


# FastAPI TestClient fixture
from fastapi.testclient import TestClient  # noqa: E402
from authbridge.api.main import app  # noqa: E402


@pytest.fixture
def client():  # noqa: D401 - simple factory fixture
    """Provide a FastAPI TestClient bound to the application."""
    return TestClient(app)
