"""
Global pytest fixtures for the Shortlink Platform test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide an isolated in-memory Storage for direct testing
    - Provide a LinkManager fixture wired to the Storage fixture (unit/integration)
    - Provide a scripted hash strategy for forcing collisions

Why an app factory?
    Using `create_app()` ensures each test gets fresh in-memory state,
    eliminating cross-test flakiness.

LLM Prompt Example:
    "Show how to structure pytest fixtures to isolate service state and
    support both integration and unit tests without external dependencies."
"""

from typing import Iterable

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shortlink_platform.config import settings
from shortlink_platform.manager.link_manager import LinkManager
from shortlink_platform.storage.storage import Storage

ADMIN_SECRET = "test-admin-secret"


class ScriptedHashes:
    """
    Hash strategy that replays a fixed sequence, repeating the last value forever.
    Lets tests force collisions deterministically.
    """

    def __init__(self, hashes: Iterable[str]):
        self.hashes = list(hashes)
        self.calls = 0

    def __call__(self, url: str) -> str:
        value = self.hashes[min(self.calls, len(self.hashes) - 1)]
        self.calls += 1
        return value


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def manager(storage: Storage) -> LinkManager:
    """LinkManager wired to the storage fixture, using the configured hash strategy."""
    return LinkManager(storage=storage)


@pytest.fixture
def scripted_manager(storage: Storage):
    """
    Factory for managers whose hash strategy replays a fixed sequence.

    Usage:
        mgr = scripted_manager(["aaaaaaaa", "aaaaaaaa", "bbbbbbbb"], max_attempts=3)
    """
    def _make(hashes: Iterable[str], max_attempts: int = None) -> LinkManager:
        return LinkManager(storage=storage, hash_strategy=ScriptedHashes(hashes), max_attempts=max_attempts)
    return _make


@pytest.fixture
def admin_secret(monkeypatch) -> str:
    """Configure the admin bearer secret for the duration of a test."""
    monkeypatch.setattr(settings, "ADMIN_SECRET", ADMIN_SECRET)
    return ADMIN_SECRET


@pytest.fixture
def client(manager: LinkManager) -> TestClient:
    """
    Provide a fresh TestClient with a new app instance sharing the manager fixture,
    so tests can inspect stored links through `manager` directly.
    """
    app = create_app(manager=manager)
    return TestClient(app)
