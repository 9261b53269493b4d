"""
web/tenants.py -- Tenant list and the tenant profile.

Routes:
  GET  /tenants                                       -- searchable, paginated list
  GET  /tenants/export                                -- ?format=pdf|xlsx|csv
  POST /tenants                                       -- create tenant
  GET  /tenants/{tenant_id}                           -- profile with tabs
  POST /tenants/{tenant_id}                           -- update tenant
  POST /tenants/{tenant_id}/delete                    -- delete tenant
  POST /tenants/{tenant_id}/documents                 -- add document
  POST /tenants/{tenant_id}/documents/{doc_id}/delete -- delete document
  POST /tenants/{tenant_id}/communications            -- add communication log entry
  POST /tenants/{tenant_id}/stk-push                  -- M-Pesa STK push for the tenant's house

/tenants/export is registered before /tenants/{tenant_id} so "export" is not
captured as an id.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from auth.dependencies import require_session
from auth.session import AuthSession
from core import flash
from core.config import get_settings
from core.export import EXPORT_FORMATS, TENANT_COLUMNS, build_export, tenant_rows
from core.formatting import current_month
from core.models import COMMUNICATION_TYPES, DEFAULT_BANK_NAME, DOCUMENT_TYPES, TENANT_STATUSES
from core.stats import tenant_totals
from core.table import TENANT_SEARCH_FIELDS, TableState, apply_table, to_number
from core.validation import STK_PUSH_SCHEMA, TENANT_SCHEMA
from web.common import (
    as_list,
    check_form,
    download,
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

_TENANT_FIELDS = [
    "firstName",
    "lastName",
    "email",
    "phone",
    "bankAccountNumber",
    "bankName",
    "leaseStartDate",
    "leaseEndDate",
    "emergencyContactName",
    "emergencyContactPhone",
    "status",
]


def _tenant_body(form: dict) -> tuple[dict, dict]:
    """(fields to validate, JSON body) from the tenant form."""
    data = form_dict(form, _TENANT_FIELDS)
    body = {
        "firstName": data["firstName"],
        "lastName": data["lastName"],
        "email": data["email"],
        "phone": data["phone"],
        "bankAccountNumber": data["bankAccountNumber"],
        "bankName": data["bankName"] or DEFAULT_BANK_NAME,
        "leaseStartDate": data["leaseStartDate"],
        "leaseEndDate": data["leaseEndDate"],
        "emergencyContact": {"name": data["emergencyContactName"], "phone": data["emergencyContactPhone"]},
        "status": data["status"] if data["status"] in TENANT_STATUSES else "active",
    }
    return data, body


def _tenant_state(request: Request) -> TableState:
    return TableState.from_query(
        request.query_params,
        filter_keys=("house.apartment",),
        default_page_size=get_settings().default_page_size,
    )


def _detail_url(tenant_id: str, tab: Optional[str] = None) -> str:
    return f"/tenants/{tenant_id}" + (f"?tab={tab}" if tab else "")


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


@router.get("/tenants", response_class=HTMLResponse)
def tenants_page(request: Request, session: AuthSession = Depends(require_session)) -> HTMLResponse:
    api = session.api
    tenants = as_list(fetch(request, api.tenants.list, "Error loading tenants", []))
    apartments = as_list(fetch(request, api.apartments.list, "Error loading apartments", []))
    state = _tenant_state(request)
    page = apply_table(tenants, state, search_fields=TENANT_SEARCH_FIELDS)
    return render(
        request,
        "tenants.html",
        {
            "page": page,
            "state": state,
            "apartments": apartments,
            "statuses": TENANT_STATUSES,
            "default_bank": DEFAULT_BANK_NAME,
            "export_formats": EXPORT_FORMATS,
        },
        session=session,
    )


@router.get("/tenants/export")
def tenants_export(
    request: Request,
    format: str = "csv",
    session: AuthSession = Depends(require_session),
) -> Response:
    """Export the filtered tenant list (all pages) as PDF, XLSX or CSV."""
    if format not in EXPORT_FORMATS:
        notify(request, flash.ERROR, f"Unsupported export format: {format}")
        return redirect("/tenants")
    tenants = as_list(fetch(request, session.api.tenants.list, "Error loading tenants", []))
    page = apply_table(tenants, _tenant_state(request), search_fields=TENANT_SEARCH_FIELDS)
    basename = f"tenants-{date.today().isoformat()}"
    if format == "pdf":
        export = build_export(page.sorted_items, "pdf", basename, "Tenants Report", TENANT_COLUMNS)
    else:
        export = build_export(tenant_rows(page.sorted_items), format, basename, "Tenants Report")
    return download(export)


@router.post("/tenants")
def tenant_create(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    fields, body = _tenant_body(form)
    if check_form(request, fields, TENANT_SCHEMA):
        perform(
            request,
            lambda: session.api.tenants.create(body),
            "Tenant created successfully",
            "Error saving tenant. Please try again.",
        )
    return redirect("/tenants")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/tenants/{tenant_id}", response_class=HTMLResponse)
def tenant_detail(
    request: Request,
    tenant_id: str,
    tab: str = "overview",
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    api = session.api
    tenant = fetch(request, lambda: api.tenants.get(tenant_id), "Error loading tenant", None)
    if not isinstance(tenant, dict):
        notify(request, flash.ERROR, "Tenant not found")
        return redirect("/tenants")

    payments = as_list(fetch(request, lambda: api.payments.by_tenant(tenant_id), "Error loading payments", []))
    house = tenant.get("house") if isinstance(tenant.get("house"), dict) else None
    maintenance = []
    if house and house.get("_id"):
        maintenance = as_list(
            fetch(
                request,
                lambda: api.maintenance.list({"house": house["_id"]}),
                "Error loading maintenance requests",
                [],
            )
        )
    paybill = fetch(request, api.config.paybill_info, "Error loading paybill info", {})

    communications = sorted(
        tenant.get("communicationLog") or [],
        key=lambda c: str(c.get("date") or ""),
        reverse=True,
    )
    return render(
        request,
        "tenant_detail.html",
        {
            "tenant": tenant,
            "house": house,
            "payments": payments,
            "totals": tenant_totals(payments),
            "maintenance": maintenance,
            "documents": tenant.get("documents") or [],
            "communications": communications,
            "moves": tenant.get("houseMoveHistory") or [],
            "paybill": paybill if isinstance(paybill, dict) else {},
            "tab": tab,
            "statuses": TENANT_STATUSES,
            "document_types": DOCUMENT_TYPES,
            "communication_types": COMMUNICATION_TYPES,
            "current_month": current_month(),
            "current_year": date.today().year,
            "today": date.today().isoformat(),
        },
        session=session,
    )


@router.post("/tenants/{tenant_id}")
def tenant_update(
    request: Request,
    tenant_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    fields, body = _tenant_body(form)
    if check_form(request, fields, TENANT_SCHEMA):
        perform(
            request,
            lambda: session.api.tenants.update(tenant_id, body),
            "Tenant updated successfully",
            "Error saving tenant. Please try again.",
        )
    back = form.get("back") or ""
    return redirect(_detail_url(tenant_id) if back == "detail" else "/tenants")


@router.post("/tenants/{tenant_id}/delete")
def tenant_delete(
    request: Request,
    tenant_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.tenants.delete(tenant_id),
        "Tenant deleted successfully",
        "Error deleting tenant. Please try again.",
    )
    return redirect("/tenants")


# ---------------------------------------------------------------------------
# Documents and communication log
# ---------------------------------------------------------------------------


@router.post("/tenants/{tenant_id}/documents")
def document_add(
    request: Request,
    tenant_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = form_dict(form, ["type", "name", "url"])
    if body["type"] not in DOCUMENT_TYPES:
        body["type"] = "other"
    if not body["name"]:
        notify(request, flash.ERROR, "Name: This field is required")
    else:
        perform(
            request,
            lambda: session.api.tenants.add_document(tenant_id, body),
            "Document added successfully",
            "Error adding document",
        )
    return redirect(_detail_url(tenant_id, "documents"))


@router.post("/tenants/{tenant_id}/documents/{document_id}/delete")
def document_delete(
    request: Request,
    tenant_id: str,
    document_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.tenants.delete_document(tenant_id, document_id),
        "Document deleted successfully",
        "Error deleting document",
    )
    return redirect(_detail_url(tenant_id, "documents"))


@router.post("/tenants/{tenant_id}/communications")
def communication_add(
    request: Request,
    tenant_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = form_dict(form, ["type", "subject", "notes", "date"])
    if body["type"] not in COMMUNICATION_TYPES:
        body["type"] = "email"
    body["date"] = body["date"] or date.today().isoformat()
    perform(
        request,
        lambda: session.api.tenants.add_communication(tenant_id, body),
        "Communication log added successfully",
        "Error adding communication",
    )
    return redirect(_detail_url(tenant_id, "communication"))


# ---------------------------------------------------------------------------
# M-Pesa
# ---------------------------------------------------------------------------


@router.post("/tenants/{tenant_id}/stk-push")
def tenant_stk_push(
    request: Request,
    tenant_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    """Ask the API to send an STK push for the tenant's house rent."""
    api = session.api
    back = _detail_url(tenant_id, "payment-info")
    tenant = fetch(request, lambda: api.tenants.get(tenant_id), "Error loading tenant", None)
    house = tenant.get("house") if isinstance(tenant, dict) else None
    if not isinstance(house, dict):
        notify(request, flash.WARNING, "Tenant has no house assigned")
        return redirect(back)

    data = form_dict(form, ["phoneNumber", "amount", "month", "year"])
    data["amount"] = data["amount"] or str(house.get("rentAmount") or "")
    if not check_form(request, data, STK_PUSH_SCHEMA):
        return redirect(back)

    body = {
        "phoneNumber": data["phoneNumber"],
        "amount": number_or_none(data["amount"]) or to_number(house.get("rentAmount")),
        "houseNumber": house.get("houseNumber"),
        "tenantId": tenant_id,
        "month": data["month"] or current_month(),
        "year": int(number_or_none(data["year"]) or date.today().year),
    }
    result = fetch(request, lambda: api.mpesa.stk_push(body), "Error initiating M-Pesa payment", None)
    if result is not None:
        message = result.get("message") if isinstance(result, dict) else None
        notify(
            request,
            flash.SUCCESS,
            f"{message or 'STK push sent'}. Please check your phone to complete the payment.",
        )
    return redirect(back)
