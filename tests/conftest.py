"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any import that might load settings,
so no developer ``.env`` file leaks into the test run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "false")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable, Iterator  # noqa: E402
from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from bugtracker.adapters.rate_limit import InMemorySlidingWindowRateLimiter  # noqa: E402
from bugtracker.core.app_factory import create_app  # noqa: E402
from bugtracker.core.config import settings  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Millisecond clock for the rate limiter, frozen until a test moves it."""
    return Mock(return_value=1_000_000)


@pytest.fixture
def app(tmp_path, monkeypatch, clock) -> FastAPI:
    """Application bound to a throwaway SQLite file and upload directory."""
    monkeypatch.setattr(settings.database, "url", f"sqlite+aiosqlite:///{tmp_path / 'bugtracker.db'}")
    monkeypatch.setattr(settings.app, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings.app, "api_key_required", False)
    monkeypatch.setattr(settings.rate_limit, "enabled", True)
    # The clock is frozen, so every request of a test lands in one window
    monkeypatch.setattr(settings.rate_limit, "api_limit", 10_000)
    return create_app(rate_limiter=InMemorySlidingWindowRateLimiter(clock=clock))


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with the lifespan running (tables created on startup)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client: TestClient) -> Callable[..., dict[str, Any]]:
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> dict[str, Any]:
        n = next(counter)
        payload = {"name": f"User {n}", "email": f"user{n}@example.com", **overrides}
        resp = client.post("/api/users", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return factory


@pytest.fixture
def make_project(client: TestClient, make_user) -> Callable[..., dict[str, Any]]:
    keys = iter(["ALPHA", "BETA", "GAMMA", "DELTA", "OMEGA", "SIGMA", "THETA"])

    def factory(**overrides: Any) -> dict[str, Any]:
        payload = {"name": "Project", "key": next(keys), **overrides}
        if "ownerId" not in payload:
            payload["ownerId"] = make_user()["id"]
        resp = client.post("/api/projects", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return factory


@pytest.fixture
def make_bug(client: TestClient, make_user, make_project) -> Callable[..., dict[str, Any]]:
    def factory(**overrides: Any) -> dict[str, Any]:
        payload = {"title": "Crash on save", "description": "Steps to reproduce", **overrides}
        if "projectId" not in payload:
            payload["projectId"] = make_project()["id"]
        if "reporterId" not in payload:
            payload["reporterId"] = make_user()["id"]
        resp = client.post("/api/bugs", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return factory
