"""
web/routes.py -- Sign-in, sign-out and the dashboard.

Routes:
  GET  /            -- redirect to /dashboard
  GET  /login       -- login form (authenticated users go to /dashboard)
  POST /login       -- rate-limited credential check against the rental API
  POST /logout      -- notify the API, clear the cookie, back to /login
  GET  /dashboard   -- headline stats, revenue trend, payment status, occupancy

The other screens live in their own modules (apartments, tenants, payments,
operations, reports, admin); asgi.py mounts them all.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from auth.dependencies import get_auth_session, require_session
from auth.limiter import limiter
from auth.session import AuthSession, SessionState
from core import flash
from core.config import get_settings
from core.stats import chart_bars, dashboard_stats, occupancy_shares
from web.common import _safe_next, as_list, fetch, notify, redirect, render

logger = logging.getLogger("rentadmin.web")

router = APIRouter()

_settings = get_settings()


@router.get("/", response_class=HTMLResponse)
def index() -> RedirectResponse:
    return RedirectResponse("/dashboard", status_code=302)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request, next: Optional[str] = None) -> HTMLResponse:
    session = get_auth_session(request)
    if session.state is SessionState.AUTHENTICATED:
        return RedirectResponse("/dashboard", status_code=302)
    resp = render(request, "login.html", {"next": _safe_next(next), "email": ""})
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/login", response_class=HTMLResponse)
@limiter.limit(_settings.login_rate_limit)  # must stay BELOW @router
def login_post(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next: Optional[str] = Form(default=None),
) -> HTMLResponse:
    """Exchange credentials for a token. The cookie is written by the auth middleware."""
    session = get_auth_session(request)
    result = session.login(email.strip(), password)
    if not result.success:
        notify(request, flash.ERROR, result.message or "Login failed. Please try again.")
        resp = render(request, "login.html", {"next": _safe_next(next), "email": email}, status_code=401)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    notify(request, flash.SUCCESS, "Login successful!")
    resp = redirect(_safe_next(next))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    get_auth_session(request).logout()
    return redirect("/login")


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, session: AuthSession = Depends(require_session)) -> HTMLResponse:
    api = session.api
    failed = "Error loading dashboard data"
    apartments = as_list(fetch(request, api.apartments.list, failed, []))
    houses = as_list(fetch(request, lambda: api.houses.list(), failed, []))
    tenants = as_list(fetch(request, api.tenants.list, failed, []))
    payments = as_list(fetch(request, api.payments.list, failed, []))
    revenue = as_list(fetch(request, lambda: api.payments.revenue_trend(6), failed, []))
    status = as_list(fetch(request, lambda: api.payments.payment_status(6), failed, []))
    occupancy = fetch(request, api.houses.occupancy_analytics, failed, {})
    occupancy = occupancy if isinstance(occupancy, dict) else {}

    return render(
        request,
        "dashboard.html",
        {
            "stats": dashboard_stats(apartments, houses, tenants, payments),
            "revenue_bars": chart_bars(revenue, ("revenue",)),
            "status_bars": chart_bars(status, ("paid", "pending", "overdue")),
            "occupancy": occupancy,
            "occupancy_shares": occupancy_shares(occupancy),
        },
        session=session,
    )
