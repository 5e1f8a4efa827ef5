from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("STORAGE_BACKEND", "local")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.security import create_access_token
from database import Base, get_db
from main import app
from services.storage_service import LocalContentStore, get_content_store
from services.user_service import UserService


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(tmp_path) -> LocalContentStore:
    return LocalContentStore(str(tmp_path / "uploads"))


@pytest.fixture
def user(db, store):
    """Registered user with a root folder."""
    registered, _ = UserService(db, store).register("alice@example.com", "password")
    return registered


@pytest.fixture
def other_user(db, store):
    registered, _ = UserService(db, store).register("bob@example.com", "password")
    return registered


@pytest.fixture
def client(session_factory, store) -> Generator[TestClient, None, None]:
    """TestClient wired to the test database and a temporary upload directory."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client: TestClient, email: str, password: str = "password") -> dict:
    response = client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def alice(client) -> dict:
    """Registered account: token, auth headers and root folder."""
    data = register(client, "alice@example.com")
    return {
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
        "user": data["user"],
        "root": data["root_folder"],
    }


@pytest.fixture
def bob(client) -> dict:
    data = register(client, "bob@example.com")
    return {
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
        "user": data["user"],
        "root": data["root_folder"],
    }


@pytest.fixture
def token_for():
    def _token_for(user_id, email="someone@example.com", expires_minutes=None):
        return create_access_token(user_id, email, expires_minutes)

    return _token_for
