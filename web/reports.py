"""
web/reports.py -- Financial reports.

One page with four tabs, each backed by one reports endpoint:

  income       -- income statement (date range, optional apartment)
  ledger       -- one tenant's payment ledger (requires ?tenant=)
  outstanding  -- balances still owed, all tenants
  revenue      -- revenue per apartment (date range)

The tab and its filters live in the query string, so the export link for the
visible report is the same URL pointed at /reports/export with ?format= added.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response

from auth.dependencies import require_session
from auth.session import AuthSession
from client.resources import RentalAPI
from core import flash
from core.export import (
    EXPORT_FORMATS,
    build_export,
    income_statement_rows,
    ledger_tenant_name,
    outstanding_balance_rows,
    revenue_by_apartment_rows,
    tenant_ledger_rows,
)
from web.common import as_list, download, drop_blank, fetch, notify, redirect, render

logger = logging.getLogger("rentadmin.web")

router = APIRouter()

REPORT_TABS = [
    ("income", "Income Statement"),
    ("ledger", "Tenant Ledger"),
    ("outstanding", "Outstanding Balances"),
    ("revenue", "Revenue by Apartment"),
]
_TAB_NAMES = {key for key, _ in REPORT_TABS}


def _date_range(start_date: str, end_date: str) -> dict[str, str]:
    return {"startDate": start_date, "endDate": end_date}


def _load_report(
    request: Request,
    api: RentalAPI,
    tab: str,
    filters: Mapping[str, str],
) -> Optional[dict]:
    """Fetch the report behind tab, or None when it failed or cannot run yet."""
    dates = _date_range(filters["startDate"], filters["endDate"])
    if tab == "income":
        params = {**dates, "apartmentId": filters["apartment"]}
        report = fetch(request, lambda: api.reports.income_statement(params), "Failed to fetch income statement")
    elif tab == "ledger":
        if not filters["tenant"]:
            return None
        report = fetch(
            request,
            lambda: api.reports.tenant_ledger(filters["tenant"], dates),
            "Failed to fetch tenant ledger",
        )
    elif tab == "outstanding":
        report = fetch(request, api.reports.outstanding_balances, "Failed to fetch outstanding balances")
    else:
        report = fetch(
            request,
            lambda: api.reports.revenue_by_apartment(dates),
            "Failed to fetch revenue by apartment",
        )
    return report if isinstance(report, dict) else None


# tab -> (row builder, file basename, title); the ledger's depend on the tenant
_EXPORTS: dict[str, tuple[Callable[[Mapping], list[dict]], str, str]] = {
    "income": (income_statement_rows, "income-statement", "Income Statement"),
    "outstanding": (outstanding_balance_rows, "outstanding-balances", "Outstanding Balances"),
    "revenue": (revenue_by_apartment_rows, "revenue-by-apartment", "Revenue by Apartment"),
}


def _export_spec(tab: str, report: Mapping) -> tuple[list[dict], str, str]:
    if tab == "ledger":
        name = ledger_tenant_name(report)
        return tenant_ledger_rows(report), f"tenant-ledger-{name}", f"Tenant Ledger - {name}"
    builder, basename, title = _EXPORTS[tab]
    return builder(report), basename, title


def _filters(tenant: str, apartment: str, start_date: str, end_date: str) -> dict[str, str]:
    return {"tenant": tenant, "apartment": apartment, "startDate": start_date, "endDate": end_date}


def _report_query(tab: str, filters: Mapping[str, str]) -> str:
    return urlencode(drop_blank({"tab": tab, **filters}))


@router.get("/reports", response_class=HTMLResponse)
def reports_page(
    request: Request,
    tab: str = "income",
    tenant: str = "",
    apartment: str = "",
    startDate: str = "",
    endDate: str = "",
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    api = session.api
    tab = tab if tab in _TAB_NAMES else "income"
    filters = _filters(tenant, apartment, startDate, endDate)
    tenants = as_list(fetch(request, api.tenants.list, "Error loading tenants", []))
    apartments = as_list(fetch(request, api.apartments.list, "Error loading apartments", []))
    report = _load_report(request, api, tab, filters)
    return render(
        request,
        "reports.html",
        {
            "tab": tab,
            "tabs": REPORT_TABS,
            "filters": filters,
            "tenants": tenants,
            "apartments": apartments,
            "report": report,
            "report_query": _report_query(tab, filters),
            "export_formats": EXPORT_FORMATS,
        },
        session=session,
    )


@router.get("/reports/export")
def reports_export(
    request: Request,
    tab: str = "income",
    format: str = "pdf",
    tenant: str = "",
    apartment: str = "",
    startDate: str = "",
    endDate: str = "",
    session: AuthSession = Depends(require_session),
) -> Response:
    """Download the selected report tab as PDF, XLSX or CSV."""
    filters = _filters(tenant, apartment, startDate, endDate)
    back = "/reports?" + _report_query(tab, filters)
    if tab not in _TAB_NAMES or format not in EXPORT_FORMATS:
        notify(request, flash.ERROR, "Unsupported report export")
        return redirect("/reports")

    report = _load_report(request, session.api, tab, filters)
    if report is None:
        if tab == "ledger" and not tenant:
            notify(request, flash.WARNING, "Please select a tenant to view their ledger")
        return redirect(back)

    rows, basename, title = _export_spec(tab, report)
    return download(build_export(rows, format, basename, title))

