"""
api/main.py -- FastAPI application entry point for RentAdmin.

Assembles the console: middleware, exception handlers and the health
endpoint. Screen routers live in web/ and are mounted by asgi.py.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- method, path, status, latency, client host
  2. apply_auth_cookie     -- writes the token store's pending set/clear
  3. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  4. SlowAPIMiddleware     -- enforces per-route rate limits from auth.limiter
  5. SessionMiddleware     -- signed cookie holding flash messages

Lifespan opens the pooled requests.Session used for every rental API call and
closes it on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote, urlsplit

import requests
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from api.models import VERSION, ComponentStatus, ErrorDetail, ErrorResponse, HealthResponse
from auth.dependencies import LoginRequired, RoleForbidden, SessionUnverified
from auth.limiter import limiter
from auth.tokens import clear_auth_cookie
from client.http import APIError, UnauthorizedError
from core import flash
from core.config import get_settings

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("rentadmin.api")

_settings = get_settings()

REQUEST_FAILED = "Request failed. Please try again."


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the pooled HTTP session for the rental API.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("RentAdmin starting up (api_url=%s)", _settings.api_url)
    session = requests.Session()
    session.max_redirects = 3
    app.state.http_session = session

    yield

    app.state.http_session.close()
    logger.info("RentAdmin shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="RentAdmin",
    description="Administration console for the rental management API.",
    version=VERSION,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() inserts at the outside, so the last call below becomes the
# outermost layer. Registered innermost-first: Session -> SlowAPI ->
# TrustedHost. The @app.middleware("http") functions further down are
# registered later and so wrap all three.
# ---------------------------------------------------------------------------

app.add_middleware(SessionMiddleware, secret_key=_settings.secret_key, same_site="lax", https_only=_settings.secure_cookies)

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Auth cookie middleware
#
# get_auth_session() stores the AuthSession on request.state; its
# CookieTokenStore records whether the token was set (login) or cleared
# (logout, 401). The change is written here, after the route and any
# exception handler have produced the response.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def apply_auth_cookie(request: Request, call_next):
    response = await call_next(request)
    session = getattr(request.state, "auth_session", None)
    if session is not None:
        session.token_store.apply(response)
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Exception handlers: rental API failures
#
# Screens catch APIError around their own calls and flash a message. The two
# handlers below cover whatever escapes a route.
# ---------------------------------------------------------------------------


def _referer_target(request: Request) -> str:
    """Path of a same-host Referer, else /dashboard."""
    referer = request.headers.get("referer")
    if referer:
        parts = urlsplit(referer)
        if parts.netloc == request.url.netloc and parts.path.startswith("/") and not parts.path.startswith("//"):
            return parts.path + (f"?{parts.query}" if parts.query else "")
    return "/dashboard"


def _error_json(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Flash the API's message and go back to the page the user came from."""
    if isinstance(exc, UnauthorizedError) and request.url.path != "/login" and not exc.is_auth_endpoint:
        return _session_expired(request, exc)

    logger.debug("Unhandled API error on %s %s", request.method, request.url.path, exc_info=exc)
    target = _referer_target(request)
    current = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    if request.method == "GET" and target == current:
        if request.url.path == "/dashboard":
            return _error_json(502, "upstream_error", exc.user_message(REQUEST_FAILED), detail=exc.path or None)
        target = "/dashboard"
    flash.push(request.session, flash.ERROR, exc.user_message(REQUEST_FAILED))
    return RedirectResponse(target, status_code=303)


def _session_expired(request: Request, exc: UnauthorizedError) -> RedirectResponse:
    """Global 401 interceptor: drop the token and send the user to /login."""
    logger.info("API rejected token on %s (%s); ending session", request.url.path, exc.path)
    response = RedirectResponse("/login", status_code=303)
    session = getattr(request.state, "auth_session", None)
    if session is not None:
        session.token_store.clear()
        session.user = None
    else:
        clear_auth_cookie(response)
    return response


# ---------------------------------------------------------------------------
# Exception handlers: route gating (raised by auth.dependencies)
# ---------------------------------------------------------------------------


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
    return RedirectResponse(f"/login?next={quote(exc.next_path, safe='/')}", status_code=302)


_VERIFYING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta http-equiv="refresh" content="5">
<title>Verifying authentication...</title>
<link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css" rel="stylesheet">
</head>
<body class="d-flex align-items-center justify-content-center vh-100 bg-light">
<div class="text-center">
<div class="spinner-border text-primary mb-3" role="status"></div>
<p class="text-muted">Verifying authentication...</p>
</div>
</body>
</html>
"""


@app.exception_handler(SessionUnverified)
async def session_unverified_handler(request: Request, exc: SessionUnverified) -> HTMLResponse:
    """The API could not confirm the token; keep it and retry shortly."""
    return HTMLResponse(_VERIFYING_PAGE, status_code=503, headers={"Retry-After": "5"})


@app.exception_handler(RoleForbidden)
async def role_forbidden_handler(request: Request, exc: RoleForbidden) -> RedirectResponse:
    logger.info("Role %r denied on %s", exc.role, request.url.path)
    return RedirectResponse("/dashboard", status_code=302)


# ---------------------------------------------------------------------------
# Exception handlers: framework errors
#
# All handlers return the same ErrorResponse envelope.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_json(429, "rate_limited", "Too many requests.", detail=str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_json(422, "validation_error", "Request validation failed.", detail=str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_json(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_json(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable. No rate limit and no
# authentication; the rental API is reported, not called.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness, version and the configured rental API."""
    return HealthResponse(api=ComponentStatus(base_url=_settings.api_url))
