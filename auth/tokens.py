"""
auth/tokens.py -- Bearer token persistence and the access_token cookie.

The rental API issues the bearer token; RentAdmin only carries it. Two stores
implement the same get/set/clear interface:

  MemoryTokenStore: holds the token in memory. Used by the CLI and tests.

  CookieTokenStore: reads the token from the request's access_token cookie
       and records set/clear calls. apply(response) replays the last one onto
       the outgoing response, so the session state machine never touches
       HTTP objects directly.

Cookie policy:
  httponly=True: JS cannot read the cookie (XSS mitigation).
  samesite="lax": not sent on cross-site POST, CSRF mitigation for the
      console's form posts.
  secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
  max_age: follows the token's exp claim when it is a JWT, else
      TOKEN_EXPIRE_SECONDS. The claim is read without verification -- the
      signing key belongs to the rental API, and the API re-validates the
      token on every call anyway.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("rentadmin.auth")

COOKIE_NAME = "access_token"


# ---------------------------------------------------------------------------
# Token expiry
# ---------------------------------------------------------------------------


def token_max_age(token: str, now: Optional[float] = None) -> int:
    """Seconds until the token's exp claim, else the configured default.

    An already expired token yields 0 so the browser drops the cookie.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return get_settings().token_expire_seconds
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return get_settings().token_expire_seconds
    now = time.time() if now is None else now
    return max(0, int(exp - now))


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, max_age: int = 0) -> None:
    """Write the bearer token as an httpOnly cookie on the response.

    Args:
        response: FastAPI/Starlette response object.
        token:    Bearer token issued by the rental API.
        max_age:  Cookie lifetime in seconds. If 0 (default), derived from
                  the token via token_max_age().
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=get_settings().secure_cookies,
        max_age=max_age or token_max_age(token),
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=get_settings().secure_cookies,
    )


# ---------------------------------------------------------------------------
# Token stores
# ---------------------------------------------------------------------------


class MemoryTokenStore:
    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class CookieTokenStore:
    """Token store backed by the access_token request cookie."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None
        self._had_cookie = self._token is not None
        # None (untouched), "set" or "clear"
        self.pending: Optional[str] = None

    @classmethod
    def from_request(cls, request) -> "CookieTokenStore":
        return cls(request.cookies.get(COOKIE_NAME))

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token
        self.pending = "set"

    def clear(self) -> None:
        self._token = None
        self.pending = "clear"

    def apply(self, response) -> None:
        """Write the pending change to the response, at most once."""
        if self.pending == "set" and self._token:
            set_auth_cookie(response, self._token)
        elif self.pending == "clear" and self._had_cookie:
            clear_auth_cookie(response)
        self.pending = None
