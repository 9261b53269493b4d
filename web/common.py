"""
web/common.py -- Template environment and helpers shared by every screen module.

Screens follow one shape: fetch what the page needs, catch APIError per call
and flash a message, then render. Mutations POST, flash, and redirect with 303
(post/redirect/get).

fetch() and perform() re-raise a 401 from a non-auth endpoint so the global
interceptor in api/main.py ends the session; every other API failure becomes
a flash message with the server's text or the caller's fallback.
"""

import logging
import math
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Optional, TypeVar

from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from auth.session import AuthSession
from client.http import APIError, UnauthorizedError
from core import flash
from core.config import get_settings
from core.export import ExportFile, label_from_key, short_date
from core.formatting import (
    activity_style,
    apartment_name,
    format_currency,
    format_date,
    format_datetime,
    format_number,
    format_payment_method,
    house_number,
    humanize,
    iso_date,
    person_name,
    relative_time,
    status_color,
    tenant_name,
)
from core.models import ADMIN, PAGE_SIZES, SUPERADMIN
from core.table import display_str, record_amount
from core.validation import FieldRules, validate_form

logger = logging.getLogger("rentadmin.web")

T = TypeVar("T")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

templates.env.filters.update(
    {
        "currency": format_currency,
        "number": format_number,
        "date": format_date,
        "datetime": format_datetime,
        "short_date": short_date,
        "iso_date": iso_date,
        "relative_time": relative_time,
        "payment_method": format_payment_method,
        "status_color": status_color,
        "humanize": humanize,
        "person_name": person_name,
        "tenant_name": tenant_name,
        "house_number": house_number,
        "apartment_name": apartment_name,
        "amount": record_amount,
        "display": display_str,
    }
)
templates.env.globals["activity_style"] = activity_style
templates.env.globals["page_sizes"] = PAGE_SIZES


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

# (path, label, bootstrap icon, roles allowed or None for everyone)
_NAV_ITEMS: list[tuple[str, str, str, Optional[tuple[str, ...]]]] = [
    ("/dashboard", "Dashboard", "speedometer2", None),
    ("/apartments", "Apartments", "building", None),
    ("/tenants", "Tenants", "people", None),
    ("/payments", "Payments", "cash-coin", None),
    ("/maintenance", "Maintenance", "tools", None),
    ("/expenses", "Expenses", "graph-up", None),
    ("/reports", "Reports", "clipboard-data", None),
    ("/equity-bank-test", "Equity Bank Test", "bank", (ADMIN, SUPERADMIN)),
    ("/users", "Users", "person-gear", (SUPERADMIN,)),
    ("/activity-logs", "Activity Logs", "journal-text", (SUPERADMIN,)),
    ("/paybill-config", "Paybill Setup", "credit-card", (SUPERADMIN,)),
]


def nav_items(role: Optional[str], current_path: str) -> list[dict]:
    """Sidebar entries visible to role, with the active one marked."""
    return [
        {"path": path, "label": label, "icon": icon, "active": current_path.startswith(path)}
        for path, label, icon, roles in _NAV_ITEMS
        if roles is None or role in roles
    ]


# ---------------------------------------------------------------------------
# Rendering and redirects
# ---------------------------------------------------------------------------


def render(
    request: Request,
    name: str,
    context: Optional[dict] = None,
    session: Optional[AuthSession] = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Render a page with the user, sidebar and pending flash messages."""
    user = session.user if session is not None else None
    ctx = {
        "request": request,
        "user": user,
        "nav": nav_items((user or {}).get("role"), request.url.path) if user else [],
        "flashes": flash.pop_all(request.session),
        "business_name": get_settings().business_name,
    }
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def notify(request: Request, category: str, message: str) -> None:
    flash.push(request.session, category, message)


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative ones ("//host/path"), both of
    which would send the user off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/dashboard"


def download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# ---------------------------------------------------------------------------
# API call wrappers
# ---------------------------------------------------------------------------


def _reraise_session_end(error: APIError) -> None:
    if isinstance(error, UnauthorizedError) and not error.is_auth_endpoint:
        raise error


def fetch(request: Request, call: Callable[[], T], fallback: Optional[str], default: Any = None) -> T:
    """Run a read call; on failure flash the error and return default.

    A fallback of None logs the failure without flashing it.
    """
    try:
        result = call()
    except APIError as e:
        _reraise_session_end(e)
        logger.debug("%s failed on %s", e.path or "API call", request.url.path, exc_info=True)
        if fallback is not None:
            notify(request, flash.ERROR, e.user_message(fallback))
        return default
    return default if result is None else result


def perform(request: Request, call: Callable[[], Any], success: Optional[str], fallback: str) -> bool:
    """Run a mutation; flash success or the error. Returns whether it succeeded."""
    try:
        call()
    except APIError as e:
        _reraise_session_end(e)
        logger.debug("%s failed on %s", e.path or "API call", request.url.path, exc_info=True)
        notify(request, flash.ERROR, e.user_message(fallback))
        return False
    if success:
        notify(request, flash.SUCCESS, success)
    return True


def as_list(value: Any, key: Optional[str] = None) -> list:
    """A list body, or the list under key of an object body."""
    if isinstance(value, list):
        return value
    if key and isinstance(value, Mapping) and isinstance(value.get(key), list):
        return value[key]
    return []


# ---------------------------------------------------------------------------
# Form helpers
# ---------------------------------------------------------------------------


def form_dict(form: Mapping, fields: list[str]) -> dict[str, str]:
    """Stripped string values for the listed form fields."""
    return {f: (str(form.get(f) or "")).strip() for f in fields}


def number_or_none(value: Any) -> Optional[float]:
    """Form number to int/float for the JSON body, None when blank or not a finite number."""
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def drop_blank(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None and v != ""}


def check_form(request: Request, data: Mapping[str, Any], schema: Mapping[str, FieldRules]) -> bool:
    """Validate data against schema, flashing one message per invalid field."""
    result = validate_form(data, schema)
    for name, message in result.errors.items():
        notify(request, flash.ERROR, f"{label_from_key(name)}: {message}")
    return result.is_valid


def split_list(value: str) -> list[str]:
    """Comma-separated form text to a list, blanks dropped."""
    return [item.strip() for item in (value or "").split(",") if item.strip()]


async def form_data(request: Request) -> dict[str, str]:
    """Submitted text fields. Sync handlers take it through Depends(form_data)."""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}
