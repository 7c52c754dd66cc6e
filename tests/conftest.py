"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It selects the testing environment and points uploads at a temporary
directory before any module reads the settings.
"""

import os
import tempfile

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORAGE_UPLOAD_DIR", tempfile.mkdtemp(prefix="khmer-note-uploads-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.adapters.blob.local import LocalBlobStore
from app.adapters.repository.in_memory import InMemoryRepository
from app.core.app_factory import create_app
from app.schemas.user import User


class TickingClock:
    """Deterministic datetime source advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository(clock=TickingClock())


@pytest.fixture
def app(repository: InMemoryRepository, tmp_path):
    return create_app(
        repository=repository,
        blob_store=LocalBlobStore(tmp_path / "uploads", public_base_url="/uploads"),
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def issue_session(repository: InMemoryRepository, user: User) -> dict[str, str]:
    """Create a live session for ``user`` and return bearer auth headers."""
    session = repository.create_session(
        user.id,
        expires=datetime.now(timezone.utc) + timedelta(days=1),
    )
    return {"Authorization": f"Bearer {session.session_token}"}


@pytest.fixture
def user(repository: InMemoryRepository) -> User:
    return repository.create_user(name="Sok Dara", email="dara@example.com")


@pytest.fixture
def other_user(repository: InMemoryRepository) -> User:
    return repository.create_user(name="Chan Vicheka", email="vicheka@example.com")


@pytest.fixture
def auth_headers(repository: InMemoryRepository, user: User) -> dict[str, str]:
    return issue_session(repository, user)


@pytest.fixture
def other_auth_headers(repository: InMemoryRepository, other_user: User) -> dict[str, str]:
    return issue_session(repository, other_user)
