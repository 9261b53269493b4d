"""
auth/dependencies.py -- FastAPI Depends() helpers for the console's screens.

get_auth_session() bootstraps one AuthSession per request from the
access_token cookie and caches it on request.state, so every dependency and
route in the same request shares the same user and the same RentalAPI client.

require_session() and require_roles() turn a session that may not proceed
into an exception; api/main.py maps each one to a response:

  LoginRequired     -> 302 /login?next=<path>   (ANONYMOUS, UNAUTHORIZED)
  SessionUnverified -> 503 "Verifying authentication..." page, cookie kept
  RoleForbidden     -> 302 /dashboard

Usage:
    @router.get("/users")
    def users_page(request: Request, session: AuthSession = Depends(require_roles("superadmin"))): ...

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.session import AuthSession, SessionState
from auth.tokens import CookieTokenStore
from client.http import APIClient
from client.resources import RentalAPI
from core.config import get_settings


class LoginRequired(Exception):
    def __init__(self, next_path: str) -> None:
        super().__init__(next_path)
        self.next_path = next_path


class SessionUnverified(Exception):
    """A token is present but the API could not confirm it right now."""


class RoleForbidden(Exception):
    def __init__(self, role: str | None, allowed: tuple[str, ...]) -> None:
        super().__init__(f"role {role!r} not in {allowed}")
        self.role = role
        self.allowed = allowed


def build_api(request: Request, token_store) -> RentalAPI:
    """RentalAPI bound to the app's pooled requests.Session."""
    settings = get_settings()
    client = APIClient(
        settings.api_url,
        session=request.app.state.http_session,
        token_store=token_store,
        timeout=settings.request_timeout,
    )
    return RentalAPI(client)


def get_auth_session(request: Request) -> AuthSession:
    """Bootstrap the session once per request and cache it on request.state."""
    cached = getattr(request.state, "auth_session", None)
    if cached is not None:
        return cached
    store = CookieTokenStore.from_request(request)
    session = AuthSession(build_api(request, store), store)
    session.bootstrap()
    request.state.auth_session = session
    return session


def _next_path(request: Request) -> str:
    path = request.url.path
    if request.url.query and request.method == "GET":
        path = f"{path}?{request.url.query}"
    return path


def require_session(request: Request) -> AuthSession:
    """Require an authenticated session.

    Use as a FastAPI dependency:
        @router.get("/payments")
        def payments(request: Request, session: AuthSession = Depends(require_session)): ...
    """
    session = get_auth_session(request)
    if session.state is SessionState.AUTHENTICATED:
        return session
    if session.state is SessionState.UNVERIFIED:
        raise SessionUnverified()
    raise LoginRequired(_next_path(request))


def require_roles(*roles: str) -> Callable[[Request], AuthSession]:
    """Dependency factory: authenticated and holding one of roles."""

    def dependency(request: Request) -> AuthSession:
        session = require_session(request)
        if not session.has_role(*roles):
            raise RoleForbidden(session.role, roles)
        return session

    return dependency
