"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version and the configured rental API
  - No authentication required
  - The rental API is reported, never called
"""

from __future__ import annotations

from api.models import VERSION
from core.config import get_settings


def test_health_returns_200_with_api_component(client):
    """Health endpoint returns 200 with status, version and api fields."""
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION
    assert data["api"] == {"status": "configured", "base_url": get_settings().api_url}


def test_health_no_auth_required(client):
    """Health endpoint is accessible without an access_token cookie."""
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_health_never_calls_rental_api(client, upstream):
    client.get("/api/v1/health")
    assert upstream.calls == []
