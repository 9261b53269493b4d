"""
auth/session.py -- The authentication session state machine.

One AuthSession is built per request (web) or per command (CLI). It holds the
current user, whether it is still loading, and a SessionState:

    BOOTSTRAPPING --bootstrap()--> AUTHENTICATED   token valid, user fetched
                               +-> ANONYMOUS       no token stored
                               +-> UNAUTHORIZED    /auth/me answered 401,
                                                   token cleared
                               +-> UNVERIFIED      /auth/me failed any other
                                                   way, token kept so the next
                                                   request retries

    login()  success -> AUTHENTICATED (token stored before the user is set)
    logout() always  -> ANONYMOUS (server notified best-effort)

The token lives in a token store (auth/tokens.py). The session only calls
get/set/clear on it, so the same class serves the cookie-backed web console
and the in-memory CLI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from client.http import APIError, UnauthorizedError
from client.resources import RentalAPI
from core.models import CARETAKER, SUPERADMIN

logger = logging.getLogger("rentadmin.auth")

LOGIN_FAILED = "Login failed. Please try again."


class SessionState(str, Enum):
    BOOTSTRAPPING = "bootstrapping"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    UNAUTHORIZED = "unauthorized"
    UNVERIFIED = "unverified"


@dataclass
class LoginResult:
    success: bool
    message: Optional[str] = None


class LoginError(Exception):
    """The login response was 2xx but unusable (no token or no user)."""


class AuthSession:
    def __init__(self, api: RentalAPI, token_store) -> None:
        self.api = api
        self.token_store = token_store
        self.user: Optional[dict[str, Any]] = None
        self.loading = True
        self.state = SessionState.BOOTSTRAPPING
        self.last_error: Optional[APIError] = None

    @property
    def token(self) -> Optional[str]:
        return self.token_store.get()

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED and self.user is not None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def bootstrap(self) -> SessionState:
        """Resolve the persisted token into a user, or settle without one."""
        if not self.token:
            self.loading = False
            self.state = SessionState.ANONYMOUS
            return self.state

        self.loading = True
        try:
            user = self.api.auth.me()
            if not user:
                raise APIError("Invalid response from server", path="/auth/me")
            self.user = user
            self.state = SessionState.AUTHENTICATED
        except UnauthorizedError as e:
            logger.info("Stored token rejected by API; clearing it")
            self.last_error = e
            self.token_store.clear()
            self.user = None
            self.state = SessionState.UNAUTHORIZED
        except APIError as e:
            # Network failures and 5xx keep the token for the next request.
            logger.warning("Could not verify stored token: %s", e)
            self.last_error = e
            self.state = SessionState.UNVERIFIED
        finally:
            self.loading = False
        return self.state

    def login(self, email: str, password: str) -> LoginResult:
        self.loading = True
        try:
            data = self.api.auth.login(email, password)
            data = data if isinstance(data, dict) else {}
            token, user = data.get("token"), data.get("user")
            if not token:
                raise LoginError("No token received from server")
            if not user:
                raise LoginError("No user data received from server")
            # Token first: anything fetched right after login must authenticate.
            self.token_store.set(token)
            self.user = user
            self.state = SessionState.AUTHENTICATED
            logger.info("Login succeeded for %s", email)
            return LoginResult(success=True)
        except APIError as e:
            logger.info("Login failed for %s: %s", email, e)
            return LoginResult(success=False, message=e.server_message or e.message or LOGIN_FAILED)
        except LoginError as e:
            logger.warning("Login response unusable for %s: %s", email, e)
            return LoginResult(success=False, message=str(e) or LOGIN_FAILED)
        finally:
            self.loading = False

    def logout(self) -> None:
        """Notify the API, then clear token and user whatever the outcome."""
        try:
            if self.token:
                self.api.auth.logout()
        except APIError as e:
            logger.debug("Logout notification failed (ignored): %s", e)
        finally:
            self.token_store.clear()
            self.user = None
            self.loading = False
            self.state = SessionState.ANONYMOUS

    def fetch_user(self) -> bool:
        """Refresh the current user. Any failure logs the session out."""
        try:
            self.user = self.api.auth.me()
            self.state = SessionState.AUTHENTICATED
            return True
        except APIError as e:
            logger.info("Refreshing user failed, logging out: %s", e)
            self.logout()
            return False

    # ------------------------------------------------------------------
    # Role checks
    # ------------------------------------------------------------------

    @property
    def role(self) -> Optional[str]:
        return (self.user or {}).get("role")

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    def is_superadmin(self) -> bool:
        return self.role == SUPERADMIN

    def is_caretaker(self) -> bool:
        return self.role == CARETAKER

    def can_access_apartment(self, apartment_id: Any) -> bool:
        """Superadmins see every apartment, caretakers only their own."""
        if self.is_superadmin():
            return True
        if self.is_caretaker() and self.user and self.user.get("apartment"):
            assigned = self.user["apartment"]
            if isinstance(assigned, dict):
                assigned = assigned.get("_id")
            return str(assigned) == str(apartment_id)
        return False
