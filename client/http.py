"""
client/http.py -- Transport for the rental REST API.

APIClient wraps a requests.Session with three responsibilities:
  1. Prefix every path with the configured base URL (API_URL).
  2. Inject "Authorization: Bearer <token>" when the token store holds one.
     The token is read per request, so a login mid-request is picked up by
     the next call without rebuilding the client.
  3. Map failures onto exceptions: any non-2xx response or transport error
     raises APIError, a 401 raises UnauthorizedError.

No retries and no backoff: a failed call surfaces immediately and the screen
turns it into a flash message.

Layer rule: client/ may import from core/ only.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Protocol
from urllib.parse import quote

import requests

logger = logging.getLogger("rentadmin.client")


class TokenSource(Protocol):
    def get(self) -> Optional[str]: ...


class APIError(Exception):
    """A rental API call failed.

    Attributes:
        status:         HTTP status, or None for transport failures.
        server_message: The "message" field of the error body, when present.
        payload:        Decoded error body (dict) or None.
        path:           API path that was called, e.g. "/payments/receive".
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        payload: Any = None,
        path: str = "",
        server_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload
        self.path = path
        self.server_message = server_message

    def user_message(self, fallback: str) -> str:
        """Server-provided message, else the caller's generic fallback."""
        return self.server_message or fallback


class UnauthorizedError(APIError):
    """The API answered 401. The web layer treats this as session teardown."""

    @property
    def is_auth_endpoint(self) -> bool:
        return "/auth/" in self.path


def segment(value: Any) -> str:
    """Quote one path segment (an id or a house number)."""
    return quote(str(value), safe="")


def clean_params(params: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Drop blank query parameters so filters left empty are not sent."""
    if not params:
        return {}
    return {k: v for k, v in params.items() if v is not None and v != ""}


class APIClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        token_store: Optional[TokenSource] = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token_store = token_store
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.token_store.get() if self.token_store is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                params=clean_params(params),
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise APIError(f"Network error: {e}", path=path) from e

        payload = _decode(resp)
        if resp.ok:
            return payload

        server_message = payload.get("message") if isinstance(payload, dict) else None
        message = server_message or f"Request failed with status code {resp.status_code}"
        logger.warning("%s %s -> %d %s", method, path, resp.status_code, message)
        error_cls = UnauthorizedError if resp.status_code == 401 else APIError
        raise error_cls(
            message,
            status=resp.status_code,
            payload=payload,
            path=path,
            server_message=server_message,
        )

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("POST", path, params=params, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("DELETE", path, params=params)


def _decode(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None
