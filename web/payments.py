"""
web/payments.py -- Payments table and the payment workflows around it.

Routes:
  GET  /payments                     -- searchable, filterable, sortable table
  GET  /payments/export              -- ?format=pdf|xlsx|csv over the filtered rows
  POST /payments                     -- create payment
  POST /payments/generate-rent       -- ask the API to generate a month of rent
  POST /payments/check-overdue       -- ask the API to mark overdue payments
  GET  /payments/receive             -- house search + receive form
  POST /payments/receive             -- record a received payment
  POST /payments/stk-push            -- M-Pesa STK push by house number
  GET  /payments/{payment_id}/receipt -- receipt PDF download
  POST /payments/{payment_id}        -- update payment
  POST /payments/{payment_id}/delete -- delete payment

Fixed paths are registered before /payments/{payment_id}.

The table state lives in the query string (q, sort, order, page, size and
the filter keys below), so every link the template builds is a plain GET.
"""

import logging
from datetime import date
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from auth.dependencies import require_session
from auth.session import AuthSession
from core import flash
from core.config import get_settings
from core.export import EXPORT_FORMATS, PAYMENT_COLUMNS, build_export, payment_rows
from core.formatting import current_month, person_name
from core.models import (
    DEFAULT_GRACE_PERIOD_DAYS,
    DEFAULT_LATE_FEE_PERCENTAGE,
    PAYMENT_METHOD_LABELS,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
)
from core.receipt import payment_receipt_pdf, receipt_filename
from core.table import TableState, apply_table
from core.validation import GENERATE_RENT_SCHEMA, PAYMENT_SCHEMA, RECEIVE_PAYMENT_SCHEMA, STK_PUSH_SCHEMA
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

FILTER_KEYS = ("status", "paymentMethod", "startDate", "endDate", "amountMin", "amountMax")

# Methods offered on the manual payment form; gateway methods are set by the API.
_MANUAL_METHODS = ["cash", "check", "bank_transfer", "equity_bank", "mobile_money", "online", "other"]
_RECEIVE_METHODS = ["bank_transfer", "cash", "check", "equity_bank", "mobile_money", "paybill", "other"]

_PAYMENT_FIELDS = ["tenant", "house", "amount", "paymentDate", "dueDate", "paymentMethod", "status", "month", "year", "notes"]


def _payment_state(request: Request) -> TableState:
    return TableState.from_query(
        request.query_params,
        filter_keys=FILTER_KEYS,
        default_sort="paymentDate",
        default_order="desc",
        default_page_size=get_settings().default_page_size,
    )


def _payment_body(data: dict) -> dict:
    body = {
        **data,
        "amount": number_or_none(data["amount"]),
        "year": int(number_or_none(data["year"]) or date.today().year),
        "month": data["month"].zfill(2) if data["month"] else current_month(),
        "paymentMethod": data["paymentMethod"] if data["paymentMethod"] in PAYMENT_METHODS else "cash",
        "status": data["status"] if data["status"] in PAYMENT_STATUSES else "pending",
    }
    return drop_blank(body)


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


@router.get("/payments", response_class=HTMLResponse)
def payments_page(request: Request, session: AuthSession = Depends(require_session)) -> HTMLResponse:
    api = session.api
    payments = as_list(fetch(request, api.payments.list, "Error loading payments", []))
    tenants = as_list(fetch(request, api.tenants.list, "Error loading tenants", []))
    houses = as_list(fetch(request, lambda: api.houses.list(), "Error loading houses", []))
    state = _payment_state(request)
    return render(
        request,
        "payments.html",
        {
            "page": apply_table(payments, state),
            "state": state,
            "tenants": [t for t in tenants if t.get("status") == "active"],
            "houses": houses,
            "statuses": PAYMENT_STATUSES,
            "methods": PAYMENT_METHODS,
            "manual_methods": _MANUAL_METHODS,
            "method_labels": PAYMENT_METHOD_LABELS,
            "export_formats": EXPORT_FORMATS,
            "current_month": current_month(),
            "current_year": date.today().year,
            "today": date.today().isoformat(),
            "late_fee_percentage": DEFAULT_LATE_FEE_PERCENTAGE,
            "grace_period_days": DEFAULT_GRACE_PERIOD_DAYS,
        },
        session=session,
    )


@router.get("/payments/export")
def payments_export(
    request: Request,
    format: str = "csv",
    session: AuthSession = Depends(require_session),
) -> Response:
    """Export every row matching the current search and filters."""
    if format not in EXPORT_FORMATS:
        notify(request, flash.ERROR, f"Unsupported export format: {format}")
        return redirect("/payments")
    payments = as_list(fetch(request, session.api.payments.list, "Error loading payments", []))
    rows = apply_table(payments, _payment_state(request)).sorted_items
    if format == "pdf":
        export = build_export(rows, "pdf", "payments-report", "Payments Report", PAYMENT_COLUMNS)
    else:
        export = build_export(payment_rows(rows), format, "payments", "Payments")
    return download(export)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post("/payments")
def payment_create(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    fields = form_dict(form, _PAYMENT_FIELDS)
    if check_form(request, fields, PAYMENT_SCHEMA):
        body = _payment_body(fields)
        perform(
            request,
            lambda: session.api.payments.create(body),
            "Payment created successfully",
            "Error saving payment. Please try again.",
        )
    return redirect("/payments")


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


@router.post("/payments/generate-rent")
def generate_rent(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    data = form_dict(form, ["month", "year", "lateFeePercentage", "gracePeriodDays"])
    if not check_form(request, data, GENERATE_RENT_SCHEMA):
        return redirect("/payments")
    body = {
        "month": data["month"].zfill(2) if data["month"] else current_month(),
        "year": int(number_or_none(data["year"]) or date.today().year),
        "lateFeePercentage": number_or_none(data["lateFeePercentage"]) or DEFAULT_LATE_FEE_PERCENTAGE,
        "gracePeriodDays": int(number_or_none(data["gracePeriodDays"]) or DEFAULT_GRACE_PERIOD_DAYS),
    }
    result = fetch(
        request,
        lambda: session.api.payments.generate_monthly_rent(body),
        "Error generating monthly rent payments",
        None,
    )
    if isinstance(result, dict):
        errors = result.get("errors") or 0
        suffix = f" ({errors} errors)" if errors else ""
        notify(request, flash.SUCCESS, f"Generated {result.get('generated', 0)} payments{suffix}")
    return redirect("/payments")


@router.post("/payments/check-overdue")
def check_overdue(request: Request, session: AuthSession = Depends(require_session)) -> RedirectResponse:
    body = {"lateFeePercentage": DEFAULT_LATE_FEE_PERCENTAGE, "gracePeriodDays": DEFAULT_GRACE_PERIOD_DAYS}
    result = fetch(request, lambda: session.api.payments.check_overdue(body), "Error checking overdue payments", None)
    if isinstance(result, dict):
        notify(request, flash.SUCCESS, f"Updated {result.get('updated', 0)} payments to overdue status")
    return redirect("/payments")


# ---------------------------------------------------------------------------
# Receive payment
# ---------------------------------------------------------------------------


@router.get("/payments/receive", response_class=HTMLResponse)
def receive_page(
    request: Request,
    house: str = "",
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    """Search a house by number; a tenanted house shows the receive form."""
    house_number = house.strip()
    found = None
    if "house" in request.query_params and not house_number:
        notify(request, flash.WARNING, "Please enter a house number")
    elif house_number:
        found = fetch(request, lambda: session.api.payments.search_house(house_number), "House not found", None)
    found_house = found.get("house") if isinstance(found, dict) and isinstance(found.get("house"), dict) else None
    tenant = (found_house or {}).get("tenant")
    return render(
        request,
        "payment_receive.html",
        {
            "search": house_number,
            "result": found if found_house else None,
            "house": found_house,
            "can_receive": bool(found_house and found.get("canReceivePayment")),
            "received_from": person_name(tenant, "") if isinstance(tenant, dict) else "",
            "methods": _RECEIVE_METHODS,
            "method_labels": PAYMENT_METHOD_LABELS,
        },
        session=session,
    )


@router.post("/payments/receive")
def receive_payment(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    data = form_dict(
        form,
        ["houseNumber", "amount", "transactionId", "referenceNumber", "receivedFrom", "paymentMethod", "notes"],
    )
    if not check_form(request, data, RECEIVE_PAYMENT_SCHEMA):
        return redirect(f"/payments/receive?house={quote(data['houseNumber'])}")
    body = drop_blank({**data, "amount": number_or_none(data["amount"])})
    result = fetch(request, lambda: session.api.payments.receive(body), "Error receiving payment", None)
    if result is None:
        return redirect(f"/payments/receive?house={quote(data['houseNumber'])}")
    receipt = result.get("receiptNumber") if isinstance(result, dict) else None
    notify(request, flash.SUCCESS, f"Payment received successfully! Receipt Number: {receipt or 'N/A'}")
    return redirect("/payments")


# ---------------------------------------------------------------------------
# M-Pesa
# ---------------------------------------------------------------------------


@router.post("/payments/stk-push")
def stk_push(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    data = form_dict(form, ["phoneNumber", "amount", "houseNumber", "month", "year"])
    if not (data["houseNumber"] and data["phoneNumber"] and data["amount"]):
        notify(request, flash.WARNING, "Please fill in all required fields")
        return redirect("/payments")
    if not check_form(request, data, STK_PUSH_SCHEMA):
        return redirect("/payments")
    body = {
        "phoneNumber": data["phoneNumber"],
        "amount": number_or_none(data["amount"]),
        "houseNumber": data["houseNumber"],
        "month": data["month"] or current_month(),
        "year": int(number_or_none(data["year"]) or date.today().year),
    }
    result = fetch(request, lambda: session.api.mpesa.stk_push(body), "Error initiating M-Pesa payment", None)
    if result is not None:
        message = result.get("message") if isinstance(result, dict) else None
        notify(
            request,
            flash.SUCCESS,
            f"{message or 'STK push sent'}. Please check your phone to complete the payment.",
        )
    return redirect("/payments")


# ---------------------------------------------------------------------------
# Single payment
# ---------------------------------------------------------------------------


@router.get("/payments/{payment_id}/receipt")
def payment_receipt(
    request: Request,
    payment_id: str,
    session: AuthSession = Depends(require_session),
) -> Response:
    payment = fetch(request, lambda: session.api.payments.get(payment_id), "Error loading payment", None)
    if not isinstance(payment, dict):
        return redirect("/payments")
    content = payment_receipt_pdf(payment, business_name=get_settings().business_name)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{receipt_filename(payment)}"'},
    )


@router.post("/payments/{payment_id}")
def payment_update(
    request: Request,
    payment_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    fields = form_dict(form, _PAYMENT_FIELDS)
    if check_form(request, fields, PAYMENT_SCHEMA):
        body = _payment_body(fields)
        perform(
            request,
            lambda: session.api.payments.update(payment_id, body),
            "Payment updated successfully",
            "Error saving payment. Please try again.",
        )
    return redirect("/payments")


@router.post("/payments/{payment_id}/delete")
def payment_delete(
    request: Request,
    payment_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.payments.delete(payment_id),
        "Payment deleted successfully",
        "Error deleting payment. Please try again.",
    )
    return redirect("/payments")
