"""
tests/test_cli.py -- The main.py export and receipt commands.

requests.Session is swapped for a FakeUpstream so the CLI talks to the same
fake rental API the web tests use. Settings are re-read per test from the
environment set up with monkeypatch.
"""

from __future__ import annotations

import sys
from collections.abc import Generator

import pytest
import requests

import main
from conftest import FakeUpstream
from core.config import get_settings

PAYMENT = {
    "_id": "64f0c2a9e1b2c3d4e5f60718",
    "tenant": {"firstName": "Jane", "lastName": "Wanjiku"},
    "house": {"houseNumber": "101"},
    "amount": 15000,
    "status": "paid",
    "paymentMethod": "mpesa",
    "paymentDate": "2024-03-05T10:00:00.000Z",
}


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_api(monkeypatch: pytest.MonkeyPatch) -> FakeUpstream:
    fake = FakeUpstream(get_settings().api_url)
    monkeypatch.setattr(requests, "Session", lambda: fake)
    get_settings.cache_clear()
    return fake


def _run(monkeypatch: pytest.MonkeyPatch, *args: str) -> int:
    monkeypatch.setattr(sys, "argv", ["rentadmin", *args])
    return main.main()


class TestConfiguration:
    def test_missing_secret_key_in_production(self, monkeypatch, capsys) -> None:
        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.delenv("SECRET_KEY", raising=False)
        monkeypatch.setenv("RENTADMIN_TOKEN", "tok")
        assert _run(monkeypatch, "export", "payments") == 2
        err = capsys.readouterr().err
        assert "[!] Invalid configuration" in err
        assert "SECRET_KEY is required" in err

    def test_missing_token(self, monkeypatch, capsys, fake_api) -> None:
        monkeypatch.delenv("RENTADMIN_TOKEN", raising=False)
        assert _run(monkeypatch, "export", "payments") == 1
        assert "Set RENTADMIN_TOKEN" in capsys.readouterr().err
        assert fake_api.calls == []


class TestExport:
    def test_payments_csv(self, monkeypatch, tmp_path, fake_api) -> None:
        monkeypatch.setenv("RENTADMIN_TOKEN", "tok")
        fake_api.add("GET", "/payments", [PAYMENT])
        out = tmp_path / "payments.csv"
        assert _run(monkeypatch, "export", "payments", "--output", str(out)) == 0
        assert "Jane Wanjiku" in out.read_text()
        (call,) = fake_api.calls_to("GET", "/payments")
        assert call.headers["Authorization"] == "Bearer tok"

    def test_login_with_email(self, monkeypatch, tmp_path, fake_api) -> None:
        monkeypatch.delenv("RENTADMIN_TOKEN", raising=False)
        fake_api.add("POST", "/auth/login", {"token": "fresh", "user": {"role": "admin"}})
        fake_api.add("GET", "/tenants", [{"firstName": "Jane", "lastName": "Wanjiku", "email": "jane@example.com"}])
        out = tmp_path / "tenants.xlsx"
        args = ("--email", "a@example.com", "--password", "pw", "export", "tenants", "--format", "xlsx")
        assert _run(monkeypatch, *args, "--output", str(out)) == 0
        assert out.read_bytes().startswith(b"PK")
        (call,) = fake_api.calls_to("GET", "/tenants")
        assert call.headers["Authorization"] == "Bearer fresh"

    def test_api_error_reported(self, monkeypatch, capsys, tmp_path, fake_api) -> None:
        monkeypatch.setenv("RENTADMIN_TOKEN", "tok")
        fake_api.add("GET", "/payments", {"message": "Database offline"}, status=500)
        assert _run(monkeypatch, "export", "payments", "--output", str(tmp_path / "p.csv")) == 1
        assert "Database offline" in capsys.readouterr().err


class TestReceipt:
    def test_writes_pdf(self, monkeypatch, tmp_path, fake_api) -> None:
        monkeypatch.setenv("RENTADMIN_TOKEN", "tok")
        fake_api.add("GET", f"/payments/{PAYMENT['_id']}", PAYMENT)
        out = tmp_path / "receipt.pdf"
        assert _run(monkeypatch, "receipt", PAYMENT["_id"], "--output", str(out)) == 0
        assert out.read_bytes().startswith(b"%PDF")

    def test_not_found(self, monkeypatch, capsys, fake_api) -> None:
        monkeypatch.setenv("RENTADMIN_TOKEN", "tok")
        fake_api.add("GET", f"/payments/{PAYMENT['_id']}", None)
        assert _run(monkeypatch, "receipt", PAYMENT["_id"]) == 1
        assert "not found" in capsys.readouterr().err
