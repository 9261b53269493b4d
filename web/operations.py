"""
web/operations.py -- Maintenance requests and expenses.

Both screens filter on the server: the filter form's values go straight to
the API as query parameters (blank ones are dropped by the client).

Routes:
  GET  /maintenance                       -- ?status=&priority=&apartment=
  POST /maintenance                       -- create request
  POST /maintenance/{request_id}          -- update request
  POST /maintenance/{request_id}/status   -- HTMX row update of the status alone
  POST /maintenance/{request_id}/delete   -- delete request
  GET  /expenses                          -- ?apartment=&category=&startDate=&endDate=
  POST /expenses                          -- create expense
  POST /expenses/{expense_id}             -- update expense
  POST /expenses/{expense_id}/delete      -- delete expense
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from auth.dependencies import require_session
from auth.session import AuthSession
from client.http import APIError
from core.models import (
    EXPENSE_CATEGORIES,
    EXPENSE_PAYMENT_METHODS,
    MAINTENANCE_CATEGORIES,
    MAINTENANCE_PRIORITIES,
    MAINTENANCE_STATUSES,
)
from core.validation import EXPENSE_SCHEMA, MAINTENANCE_SCHEMA
from web.common import (
    _reraise_session_end,
    as_list,
    check_form,
    fetch,
    form_data,
    form_dict,
    number_or_none,
    perform,
    redirect,
    render,
    templates,
)

logger = logging.getLogger("rentadmin.web")

router = APIRouter()

PRIORITY_COLORS = {"urgent": "#ef4444", "high": "#f59e0b", "medium": "#3b82f6", "low": "#10b981"}
MAINTENANCE_STATUS_COLORS = {
    "completed": "#10b981",
    "in_progress": "#3b82f6",
    "pending": "#f59e0b",
    "cancelled": "#6b7280",
}
CATEGORY_COLORS = {
    "maintenance": "#ef4444",
    "repair": "#f59e0b",
    "utilities": "#3b82f6",
    "insurance": "#10b981",
    "taxes": "#8b5cf6",
    "legal": "#ec4899",
    "marketing": "#06b6d4",
    "supplies": "#84cc16",
    "other": "#6b7280",
}


def _choice(value: str, allowed: list[str], default: str) -> str:
    return value if value in allowed else default


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


def _maintenance_body(form: dict) -> dict:
    data = form_dict(form, ["house", "title", "description", "category", "priority", "status"])
    data["category"] = _choice(data["category"], MAINTENANCE_CATEGORIES, "other")
    data["priority"] = _choice(data["priority"], MAINTENANCE_PRIORITIES, "medium")
    data["status"] = _choice(data["status"], MAINTENANCE_STATUSES, "pending")
    return data


@router.get("/maintenance", response_class=HTMLResponse)
def maintenance_page(
    request: Request,
    status: str = "",
    priority: str = "",
    apartment: str = "",
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    api = session.api
    filters = {"status": status, "priority": priority, "apartment": apartment}
    requests_ = as_list(fetch(request, lambda: api.maintenance.list(filters), "Error loading maintenance requests", []))
    houses = as_list(fetch(request, lambda: api.houses.list(), "Error loading houses", []))
    apartments = as_list(fetch(request, api.apartments.list, "Error loading apartments", []))
    return render(
        request,
        "maintenance.html",
        {
            "requests": requests_,
            "houses": houses,
            "apartments": apartments,
            "filters": filters,
            "categories": MAINTENANCE_CATEGORIES,
            "priorities": MAINTENANCE_PRIORITIES,
            "statuses": MAINTENANCE_STATUSES,
            "priority_colors": PRIORITY_COLORS,
            "status_colors": MAINTENANCE_STATUS_COLORS,
        },
        session=session,
    )


@router.post("/maintenance")
def maintenance_create(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = _maintenance_body(form)
    if check_form(request, body, MAINTENANCE_SCHEMA):
        perform(
            request,
            lambda: session.api.maintenance.create(body),
            "Maintenance request created successfully",
            "Error saving maintenance request",
        )
    return redirect("/maintenance")


@router.post("/maintenance/{request_id}")
def maintenance_update(
    request: Request,
    request_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = _maintenance_body(form)
    if check_form(request, body, MAINTENANCE_SCHEMA):
        perform(
            request,
            lambda: session.api.maintenance.update(request_id, body),
            "Maintenance request updated successfully",
            "Error saving maintenance request",
        )
    return redirect("/maintenance")


@router.post("/maintenance/{request_id}/status", response_class=HTMLResponse)
def maintenance_status(
    request: Request,
    request_id: str,
    status: str = Form(...),
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    """HTMX row update: set one request's status and return the re-rendered table row.

    Errors are shown inside the row, not flashed.
    """
    api = session.api
    row_error = None
    if status not in MAINTENANCE_STATUSES:
        row_error = "Unknown status"
    else:
        try:
            api.maintenance.update(request_id, {"status": status})
        except APIError as e:
            _reraise_session_end(e)
            logger.debug("Status update failed for maintenance request %s", request_id, exc_info=True)
            row_error = e.user_message("Error updating status")

    item = fetch(request, lambda: api.maintenance.get(request_id), None, None)
    if not isinstance(item, dict):
        item = {"_id": request_id, "status": status if row_error is None else ""}
    return templates.TemplateResponse(
        request,
        "partials/maintenance_row.html",
        {
            "item": item,
            "row_error": row_error,
            "statuses": MAINTENANCE_STATUSES,
            "priority_colors": PRIORITY_COLORS,
            "status_colors": MAINTENANCE_STATUS_COLORS,
        },
    )


@router.post("/maintenance/{request_id}/delete")
def maintenance_delete(
    request: Request,
    request_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.maintenance.delete(request_id),
        "Maintenance request deleted successfully",
        "Error deleting request",
    )
    return redirect("/maintenance")


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

_EXPENSE_FIELDS = [
    "apartment",
    "house",
    "category",
    "description",
    "amount",
    "expenseDate",
    "vendor",
    "paymentMethod",
    "receipt",
    "notes",
    "maintenanceRequest",
]


def _expense_body(form: dict) -> tuple[dict, dict]:
    data = form_dict(form, _EXPENSE_FIELDS)
    body = {
        **data,
        "category": _choice(data["category"], EXPENSE_CATEGORIES, "other"),
        "paymentMethod": _choice(data["paymentMethod"], EXPENSE_PAYMENT_METHODS, "cash"),
        "amount": number_or_none(data["amount"]),
        # Optional references are sent as null rather than "".
        "house": data["house"] or None,
        "maintenanceRequest": data["maintenanceRequest"] or None,
    }
    return data, body


@router.get("/expenses", response_class=HTMLResponse)
def expenses_page(
    request: Request,
    apartment: str = "",
    category: str = "",
    startDate: str = "",
    endDate: str = "",
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    api = session.api
    filters = {"apartment": apartment, "category": category, "startDate": startDate, "endDate": endDate}
    expenses = as_list(fetch(request, lambda: api.expenses.list(filters), "Error loading expenses", []))
    summary = fetch(request, lambda: api.expenses.summary(filters), "Error loading expense summary", None)
    apartments = as_list(fetch(request, api.apartments.list, "Error loading apartments", []))
    houses = as_list(fetch(request, lambda: api.houses.list(), "Error loading houses", []))
    maintenance = as_list(fetch(request, lambda: api.maintenance.list(), "Error loading maintenance requests", []))
    return render(
        request,
        "expenses.html",
        {
            "expenses": expenses,
            "summary": summary if isinstance(summary, dict) else None,
            "apartments": apartments,
            "houses": houses,
            "maintenance_requests": maintenance,
            "filters": filters,
            "categories": EXPENSE_CATEGORIES,
            "payment_methods": EXPENSE_PAYMENT_METHODS,
            "category_colors": CATEGORY_COLORS,
            "today": date.today().isoformat(),
        },
        session=session,
    )


@router.post("/expenses")
def expense_create(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    fields, body = _expense_body(form)
    if check_form(request, fields, EXPENSE_SCHEMA):
        perform(
            request,
            lambda: session.api.expenses.create(body),
            "Expense created successfully",
            "Error saving expense",
        )
    return redirect("/expenses")


@router.post("/expenses/{expense_id}")
def expense_update(
    request: Request,
    expense_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    fields, body = _expense_body(form)
    if check_form(request, fields, EXPENSE_SCHEMA):
        perform(
            request,
            lambda: session.api.expenses.update(expense_id, body),
            "Expense updated successfully",
            "Error saving expense",
        )
    return redirect("/expenses")


@router.post("/expenses/{expense_id}/delete")
def expense_delete(
    request: Request,
    expense_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.expenses.delete(expense_id),
        "Expense deleted successfully",
        "Error deleting expense",
    )
    return redirect("/expenses")
