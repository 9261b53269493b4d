"""
web/admin.py -- Administration screens.

Superadmin only:
  GET  /users, POST /users, POST /users/{user_id}, POST /users/{user_id}/delete
  GET  /activity-logs, GET /activity-logs/export, POST /activity-logs/cleanup
  GET  /paybill-config, POST /paybill-config, POST /paybill-config/test

Superadmin or admin:
  GET  /equity-bank-test, POST /equity-bank-test/verify, POST /equity-bank-test/payment

Role gating is a dependency (require_roles); a caretaker who follows a link
here is redirected to the dashboard by the RoleForbidden handler.
"""

import logging
import time
from datetime import datetime, timezone
from math import ceil
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from auth.dependencies import require_roles
from auth.session import AuthSession
from core import flash
from core.export import EXPORT_FORMATS, activity_log_rows, build_export
from core.formatting import paybill_instructions, person_name
from core.models import (
    ACTIVITY_ACTIONS,
    ACTIVITY_ENTITY_TYPES,
    ACTIVITY_LOG_PAGE_SIZE,
    ACTIVITY_LOG_PAGE_SIZES,
    ADMIN,
    CARETAKER,
    DEFAULT_CLEANUP_DAYS,
    MOBILE_MONEY_PROVIDERS,
    SUPERADMIN,
    USER_ROLES,
)
from core.table import TablePage, to_number
from core.validation import EQUITY_PAYMENT_SCHEMA, PAYBILL_TEST_SCHEMA, USER_SCHEMA
from web.common import (
    as_list,
    check_form,
    download,
    drop_blank,
    fetch,
    form_data,
    form_dict,
    notify,
    number_or_none,
    perform,
    redirect,
    render,
)

logger = logging.getLogger("rentadmin.web")

router = APIRouter()

superadmin_only = require_roles(SUPERADMIN)
bank_testers = require_roles(SUPERADMIN, ADMIN)


def _millis() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

_USER_FIELDS = ["username", "email", "password", "firstName", "lastName", "phone", "role", "apartmentId"]


def _user_body(form: dict) -> dict[str, Any]:
    data: dict[str, Any] = form_dict(form, _USER_FIELDS)
    if data["role"] not in USER_ROLES:
        data["role"] = CARETAKER
    if data["role"] == SUPERADMIN:
        data["apartmentId"] = ""
    data["isActive"] = form.get("isActive") in ("on", "true", "1")
    return data


@router.get("/users", response_class=HTMLResponse)
def users_page(request: Request, session: AuthSession = Depends(superadmin_only)) -> HTMLResponse:
    api = session.api
    users = as_list(fetch(request, api.auth.users, "Failed to fetch users", []), "users")
    apartments = as_list(fetch(request, api.apartments.list, "Error loading apartments", []))
    return render(
        request,
        "users.html",
        {"users": users, "apartments": apartments, "roles": USER_ROLES},
        session=session,
    )


@router.post("/users")
def user_create(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(superadmin_only),
) -> RedirectResponse:
    body = _user_body(form)
    if not body["password"]:
        notify(request, flash.ERROR, "Password is required for new users")
        return redirect("/users")
    if body["role"] == CARETAKER and not body["apartmentId"]:
        notify(request, flash.ERROR, "Apartment: Please select an apartment for caretakers")
        return redirect("/users")
    if check_form(request, body, USER_SCHEMA):
        perform(
            request,
            lambda: session.api.auth.register(drop_blank(body)),
            "User created successfully",
            "Failed to save user",
        )
    return redirect("/users")


@router.post("/users/{user_id}")
def user_update(
    request: Request,
    user_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(superadmin_only),
) -> RedirectResponse:
    body = _user_body(form)
    if not body["password"]:
        # a blank password keeps the current one
        del body["password"]
    if check_form(request, body, USER_SCHEMA):
        perform(
            request,
            lambda: session.api.auth.update_user(user_id, body),
            "User updated successfully",
            "Failed to save user",
        )
    return redirect("/users")


@router.post("/users/{user_id}/delete")
def user_delete(
    request: Request,
    user_id: str,
    session: AuthSession = Depends(superadmin_only),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.auth.delete_user(user_id),
        "User deleted successfully",
        "Failed to delete user",
    )
    return redirect("/users")


# ---------------------------------------------------------------------------
# Activity logs
# ---------------------------------------------------------------------------

LOG_FILTER_KEYS = ("search", "role", "userId", "action", "entityType", "startDate", "endDate")


def _log_query(request: Request) -> tuple[dict[str, str], int, int]:
    """(filters, page, limit) from the query string."""
    params = request.query_params
    filters = {key: (params.get(key) or "").strip() for key in LOG_FILTER_KEYS}
    page = int(number_or_none(params.get("page")) or 1)
    limit = int(number_or_none(params.get("limit")) or ACTIVITY_LOG_PAGE_SIZE)
    if limit not in ACTIVITY_LOG_PAGE_SIZES:
        limit = ACTIVITY_LOG_PAGE_SIZE
    return filters, max(page, 1), limit


def _log_page(body: Any, page: int, limit: int) -> TablePage:
    logs = as_list(body, "logs")
    pagination = body.get("pagination") if isinstance(body, dict) else None
    pagination = pagination if isinstance(pagination, dict) else {}
    total = int(to_number(pagination.get("total")) or len(logs))
    pages = int(to_number(pagination.get("pages")) or max(1, ceil(total / limit)))
    return TablePage(
        items=logs,
        total_items=total,
        total_pages=pages,
        page=int(to_number(pagination.get("page")) or page),
        page_size=limit,
        sorted_items=logs,
    )


def _fetch_logs(request: Request, session: AuthSession) -> tuple[dict[str, str], TablePage]:
    filters, page, limit = _log_query(request)
    params = drop_blank({**filters, "page": page, "limit": limit})
    body = fetch(request, lambda: session.api.activity_logs.list(params), "Failed to fetch activity logs", {})
    return filters, _log_page(body, page, limit)


@router.get("/activity-logs", response_class=HTMLResponse)
def activity_logs_page(request: Request, session: AuthSession = Depends(superadmin_only)) -> HTMLResponse:
    api = session.api
    filters, page = _fetch_logs(request, session)
    stat_params = drop_blank({"startDate": filters["startDate"], "endDate": filters["endDate"]})
    statistics = fetch(request, lambda: api.activity_logs.statistics(stat_params), None)
    users = as_list(fetch(request, api.auth.users, "Failed to fetch users", []), "users")
    if filters["role"]:
        user_choices = [u for u in users if u.get("role") == filters["role"]]
    else:
        user_choices = users
    query = dict(filters)
    if page.page_size != ACTIVITY_LOG_PAGE_SIZE:
        query["limit"] = str(page.page_size)
    base_query = urlencode(drop_blank(query))
    return render(
        request,
        "activity_logs.html",
        {
            "page": page,
            "filters": filters,
            "has_filters": any(filters.values()),
            "base_query": base_query,
            "statistics": statistics if isinstance(statistics, dict) else None,
            "users": user_choices,
            "roles": USER_ROLES,
            "actions": ACTIVITY_ACTIONS,
            "entity_types": ACTIVITY_ENTITY_TYPES,
            "page_sizes": ACTIVITY_LOG_PAGE_SIZES,
            "export_formats": EXPORT_FORMATS,
            "cleanup_days": DEFAULT_CLEANUP_DAYS,
        },
        session=session,
    )


@router.get("/activity-logs/export")
def activity_logs_export(
    request: Request,
    format: str = "csv",
    session: AuthSession = Depends(superadmin_only),
) -> Response:
    """Export the log page currently on screen."""
    if format not in EXPORT_FORMATS:
        notify(request, flash.ERROR, f"Unsupported export format: {format}")
        return redirect("/activity-logs")
    _, page = _fetch_logs(request, session)
    return download(build_export(activity_log_rows(page.items), format, "activity-logs", "Activity Logs"))


@router.post("/activity-logs/cleanup")
def activity_logs_cleanup(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(superadmin_only),
) -> RedirectResponse:
    days = int(number_or_none(form.get("days")) or DEFAULT_CLEANUP_DAYS)
    if days < 1:
        notify(request, flash.ERROR, "Days must be at least 1")
        return redirect("/activity-logs")
    perform(
        request,
        lambda: session.api.activity_logs.cleanup(days),
        f"Cleaned up activity logs older than {days} days",
        "Failed to clean up logs",
    )
    return redirect("/activity-logs")


# ---------------------------------------------------------------------------
# Paybill configuration
# ---------------------------------------------------------------------------

_CONFIG_FIELDS = [
    "paybillNumber",
    "businessName",
    "paymentInstructions",
    "mobileMoneyProvider",
    "bankAccountNumber",
    "bankName",
    "accountName",
]


def _config_body(form: dict) -> dict[str, Any]:
    data = form_dict(form, _CONFIG_FIELDS)
    return {
        "paybillNumber": data["paybillNumber"],
        "businessName": data["businessName"],
        "paymentInstructions": data["paymentInstructions"],
        "mobileMoneyProvider": data["mobileMoneyProvider"] if data["mobileMoneyProvider"] in MOBILE_MONEY_PROVIDERS else "mpesa",
        "bankAccount": {
            "accountNumber": data["bankAccountNumber"],
            "bankName": data["bankName"],
            "accountName": data["accountName"],
        },
    }


def _render_config(request: Request, session: AuthSession, config: dict) -> HTMLResponse:
    return render(
        request,
        "paybill_config.html",
        {"config": config, "providers": MOBILE_MONEY_PROVIDERS},
        session=session,
    )


@router.get("/paybill-config", response_class=HTMLResponse)
def paybill_config_page(request: Request, session: AuthSession = Depends(superadmin_only)) -> HTMLResponse:
    config = fetch(request, session.api.config.get, "Error loading configuration", {})
    return _render_config(request, session, config if isinstance(config, dict) else {})


@router.post("/paybill-config")
def paybill_config_save(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(superadmin_only),
) -> Response:
    """Save the configuration, or with action=generate re-render with fresh instructions."""
    config = _config_body(form)
    if form.get("action") == "generate":
        config["paymentInstructions"] = paybill_instructions(config)
        return _render_config(request, session, config)
    perform(
        request,
        lambda: session.api.config.update(config),
        "Configuration saved successfully!",
        "Error saving configuration",
    )
    return redirect("/paybill-config")


@router.post("/paybill-config/test")
def paybill_test(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(superadmin_only),
) -> RedirectResponse:
    """Simulate a paybill payment against a house number."""
    data = form_dict(form, ["paybillNumber", "accountNumber", "amount", "transactionId", "phoneNumber"])
    if not data["accountNumber"] or not data["amount"]:
        notify(request, flash.WARNING, "Please enter account number (house number) and amount")
        return redirect("/paybill-config")
    if not check_form(request, data, PAYBILL_TEST_SCHEMA):
        return redirect("/paybill-config")

    body = {
        "paybillNumber": data["paybillNumber"],
        "accountNumber": data["accountNumber"],
        "amount": number_or_none(data["amount"]),
        "transactionId": data["transactionId"] or f"TEST-{_millis()}",
        "phoneNumber": data["phoneNumber"],
        "paymentMethod": "mobile_money",
        "notes": "Test payment",
    }
    result = fetch(request, lambda: session.api.payments.receive_paybill(body), "Error processing test payment", None)
    if isinstance(result, dict):
        tenant = result.get("tenant") or {}
        notify(
            request,
            flash.SUCCESS,
            f"Test payment successful! Receipt: {result.get('receiptNumber')}, "
            f"Tenant: {tenant.get('name') or person_name(tenant)}",
        )
    return redirect("/paybill-config")


# ---------------------------------------------------------------------------
# Equity Bank test
# ---------------------------------------------------------------------------


def _equity_url(account: str) -> str:
    return "/equity-bank-test" + (f"?{urlencode({'account': account})}" if account else "")


def _verify(request: Request, session: AuthSession, account: str, fallback: str) -> Optional[dict]:
    info = fetch(request, lambda: session.api.equity_bank.verify_account(account), fallback, None)
    return info if isinstance(info, dict) else None


@router.get("/equity-bank-test", response_class=HTMLResponse)
def equity_bank_page(
    request: Request,
    account: str = "",
    session: AuthSession = Depends(bank_testers),
) -> HTMLResponse:
    account = account.strip()
    info = _verify(request, session, account, "Account not found") if account else None
    return render(
        request,
        "equity_bank_test.html",
        {
            "account": account,
            "info": info,
            "now": datetime.now().strftime("%Y-%m-%dT%H:%M"),
        },
        session=session,
    )


@router.post("/equity-bank-test/verify")
def equity_bank_verify(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(bank_testers),
) -> RedirectResponse:
    account = (form.get("accountNumber") or "").strip()
    if not account:
        notify(request, flash.WARNING, "Please enter an account number")
        return redirect("/equity-bank-test")
    if _verify(request, session, account, "Account not found") is None:
        return redirect("/equity-bank-test")
    notify(request, flash.SUCCESS, "Account verified successfully!")
    return redirect(_equity_url(account))


def _transaction_date(value: str) -> str:
    """datetime-local form value to an ISO timestamp; now when blank or unparseable."""
    try:
        parsed = datetime.fromisoformat(value) if value else None
    except ValueError:
        parsed = None
    moment = parsed.astimezone(timezone.utc) if parsed else datetime.now(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.post("/equity-bank-test/payment")
def equity_bank_payment(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(bank_testers),
) -> RedirectResponse:
    """Record a manual Equity Bank payment for a verified account."""
    data = form_dict(
        form,
        ["accountNumber", "amount", "transactionId", "referenceNumber", "transactionDate", "payerName", "notes"],
    )
    account = data["accountNumber"]
    if not account or not data["amount"]:
        notify(request, flash.WARNING, "Please enter account number and amount")
        return redirect(_equity_url(account))
    if not check_form(request, data, EQUITY_PAYMENT_SCHEMA):
        return redirect(_equity_url(account))
    info = _verify(request, session, account, "Please verify the account number first")
    if info is None:
        return redirect("/equity-bank-test")

    stamp = _millis()
    tenant = info.get("tenant") or {}
    body = {
        "accountNumber": account,
        "amount": number_or_none(data["amount"]),
        "transactionId": data["transactionId"] or f"TEST-{stamp}",
        "referenceNumber": data["referenceNumber"] or data["transactionId"] or f"REF-{stamp}",
        "transactionDate": _transaction_date(data["transactionDate"]),
        "payerName": data["payerName"] or f"{tenant.get('firstName', '')} {tenant.get('lastName', '')}".strip(),
        "notes": data["notes"] or "Test payment from Equity Bank integration",
    }
    result = fetch(request, lambda: session.api.equity_bank.manual_payment(body), "Error recording payment", None)
    if isinstance(result, dict):
        notify(request, flash.SUCCESS, f"Payment recorded successfully! Receipt: {result.get('receiptNumber')}")
    return redirect(_equity_url(account))
