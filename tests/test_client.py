"""
tests/test_client.py -- APIClient transport and the resource path table.

The requests.Session is a MagicMock, so no network is touched. Responses are
built with conftest.make_response.
"""

from unittest.mock import MagicMock

import pytest
import requests

from auth.tokens import MemoryTokenStore
from client.http import APIClient, APIError, UnauthorizedError, clean_params, segment
from client.resources import RentalAPI
from conftest import make_response

BASE = "http://api.test/api"


def _client(token=None, response=None):
    session = MagicMock()
    session.request.return_value = response or make_response(200, {"ok": True})
    return APIClient(BASE, session=session, token_store=MemoryTokenStore(token)), session


class TestRequest:
    def test_prefixes_base_url_and_returns_json(self) -> None:
        api, session = _client()
        assert api.get("/apartments") == {"ok": True}
        method, url = session.request.call_args.args
        assert (method, url) == ("GET", f"{BASE}/apartments")

    def test_trailing_slash_on_base_url(self) -> None:
        api = APIClient(BASE + "/", session=MagicMock())
        assert api.base_url == BASE

    def test_bearer_header_when_token_stored(self) -> None:
        api, session = _client(token="abc")
        api.get("/auth/me")
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer abc"
        assert headers["Content-Type"] == "application/json"

    def test_no_header_without_token(self) -> None:
        api, session = _client()
        api.get("/auth/me")
        assert "Authorization" not in session.request.call_args.kwargs["headers"]

    def test_token_read_per_request(self) -> None:
        store = MemoryTokenStore()
        session = MagicMock()
        session.request.return_value = make_response(200, {})
        api = APIClient(BASE, session=session, token_store=store)
        api.get("/a")
        store.set("late")
        api.get("/b")
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer late"

    def test_blank_params_dropped(self) -> None:
        api, session = _client()
        api.get("/maintenance", params={"status": "", "priority": None, "page": 1})
        assert session.request.call_args.kwargs["params"] == {"page": 1}

    def test_empty_body_is_none(self) -> None:
        api, _ = _client(response=make_response(204, None))
        assert api.delete("/apartments/1") is None


class TestErrors:
    def test_server_message_surfaces(self) -> None:
        api, _ = _client(response=make_response(400, {"message": "House already occupied"}))
        with pytest.raises(APIError) as info:
            api.post("/houses/h1/assign-tenant", {"tenantId": "t1"})
        err = info.value
        assert err.status == 400
        assert err.server_message == "House already occupied"
        assert err.user_message("Failed to assign tenant") == "House already occupied"
        assert not isinstance(err, UnauthorizedError)

    def test_generic_message_without_body(self) -> None:
        api, _ = _client(response=make_response(500, None))
        with pytest.raises(APIError) as info:
            api.get("/payments")
        assert info.value.message == "Request failed with status code 500"
        assert info.value.user_message("Failed to fetch payments") == "Failed to fetch payments"

    def test_401_is_unauthorized(self) -> None:
        api, _ = _client(response=make_response(401, {"message": "jwt expired"}))
        with pytest.raises(UnauthorizedError) as info:
            api.get("/tenants")
        assert not info.value.is_auth_endpoint

    def test_401_from_auth_endpoint(self) -> None:
        api, _ = _client(response=make_response(401, {"message": "Invalid credentials"}))
        with pytest.raises(UnauthorizedError) as info:
            api.post("/auth/login", {})
        assert info.value.is_auth_endpoint

    def test_network_error_wrapped(self) -> None:
        api, session = _client()
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(APIError) as info:
            api.get("/apartments")
        assert info.value.status is None
        assert info.value.path == "/apartments"
        assert isinstance(info.value.__cause__, requests.ConnectionError)


class TestHelpers:
    def test_segment_quotes_everything(self) -> None:
        assert segment("A/12 B") == "A%2F12%20B"
        assert segment(42) == "42"

    def test_clean_params_keeps_zero(self) -> None:
        assert clean_params({"days": 0, "q": ""}) == {"days": 0}
        assert clean_params(None) == {}


class TestResources:
    """A sample of the resource table: method, path and payload per call."""

    def _api(self):
        api, session = _client()
        return RentalAPI(api), session

    def test_house_search_quotes_number(self) -> None:
        api, session = self._api()
        api.payments.search_house("A/1")
        assert session.request.call_args.args == ("GET", f"{BASE}/payments/search/house/A%2F1")

    def test_activity_log_cleanup(self) -> None:
        api, session = self._api()
        api.activity_logs.cleanup(90)
        assert session.request.call_args.args == ("DELETE", f"{BASE}/activity-logs/cleanup")
        assert session.request.call_args.kwargs["params"] == {"days": 90}

    def test_login_payload(self) -> None:
        api, session = self._api()
        api.auth.login("a@example.com", "pw")
        assert session.request.call_args.args == ("POST", f"{BASE}/auth/login")
        assert session.request.call_args.kwargs["json"] == {"email": "a@example.com", "password": "pw"}

    def test_revenue_trend_months(self) -> None:
        api, session = self._api()
        api.payments.revenue_trend()
        assert session.request.call_args.kwargs["params"] == {"months": 6}

    def test_equity_verify(self) -> None:
        api, session = self._api()
        api.equity_bank.verify_account("101")
        assert session.request.call_args.args == ("GET", f"{BASE}/equity-bank/verify-account/101")
