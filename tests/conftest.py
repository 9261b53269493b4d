"""
tests/conftest.py -- Shared fixtures for RentAdmin integration tests.

This module provides:
  - FakeUpstream: stands in for the pooled requests.Session, answering rental
    API calls from a route table and recording every call it receives
  - _patch_lifespan(): wires a FakeUpstream into app.state, bypassing the
    real startup
  - client: TestClient with follow_redirects=False for web route tests
  - sign_in: stores an access_token cookie and answers /auth/me for a role

The DEBUG env var must be set before any core/auth import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional
from unittest.mock import MagicMock

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.limiter import limiter
from core.config import get_settings
from core.models import ADMIN, CARETAKER

TEST_TOKEN = "test-token"


# ---------------------------------------------------------------------------
# Fake rental API
# ---------------------------------------------------------------------------


@dataclass
class Call:
    method: str
    path: str
    params: Optional[dict]
    json: Any
    headers: dict


def make_response(status: int, body: Any) -> MagicMock:
    """A requests.Response look-alike carrying a JSON body."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.content = b"" if body is None else json.dumps(body).encode()
    resp.json.return_value = body
    return resp


class FakeUpstream:
    """Answers APIClient requests from a (method, path) route table.

    Unregistered GETs answer 200 with an empty list; other methods answer
    200 with an empty object. A route body may be an Exception instance,
    which is raised instead of returning a response.
    """

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.calls: list[Call] = []

    def add(self, method: str, path: str, body: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = (status, body)

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(self.base_url) :]
        self.calls.append(Call(method, path, params, json, dict(headers or {})))
        status, body = self.routes.get((method, path), (200, [] if method == "GET" else {}))
        if isinstance(body, Exception):
            raise body
        return make_response(status, body)

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def close(self) -> None:
        pass


def make_user(role: str = ADMIN, **extra: Any) -> dict:
    user = {
        "_id": f"user-{role}",
        "username": role,
        "email": f"{role}@example.com",
        "firstName": "Test",
        "lastName": role.title(),
        "role": role,
        "isActive": True,
    }
    if role == CARETAKER:
        user["apartment"] = "apt-1"
    user.update(extra)
    return user


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------


def _patch_lifespan(upstream: FakeUpstream):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.http_session = upstream
        yield

    return test_lifespan


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(get_settings().api_url)


@pytest.fixture
def client(upstream: FakeUpstream) -> Generator[TestClient, None, None]:
    """TestClient over the full app with the rental API faked.

    follow_redirects=False is essential for web route tests: we assert on
    redirect *locations* (e.g. 302 to /login), which are invisible once the
    client follows the redirect and returns the final 200 response.
    """
    app.router.lifespan_context = _patch_lifespan(upstream)
    limiter.reset()
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as test_client:
        yield test_client


@pytest.fixture
def sign_in(client: TestClient, upstream: FakeUpstream) -> Callable[..., dict]:
    """Sign the test client in as a user with the given role."""

    def _sign_in(role: str = ADMIN, **extra: Any) -> dict:
        user = make_user(role, **extra)
        upstream.add("GET", "/auth/me", user)
        client.cookies.set("access_token", TEST_TOKEN)
        return user

    return _sign_in
