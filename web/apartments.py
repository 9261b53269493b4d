"""
web/apartments.py -- Apartments and their units (houses).

Routes:
  GET  /apartments                                        -- apartment cards
  POST /apartments                                        -- create apartment
  GET  /apartments/{apartment_id}                         -- detail + unit grid
  POST /apartments/{apartment_id}                         -- update apartment
  POST /apartments/{apartment_id}/delete                  -- delete apartment
  POST /apartments/{apartment_id}/houses                  -- create unit
  POST /apartments/{apartment_id}/houses/{house_id}       -- update unit
  POST /apartments/{apartment_id}/houses/{house_id}/delete
  POST /apartments/{apartment_id}/houses/{house_id}/assign-tenant
  POST /apartments/{apartment_id}/houses/{house_id}/remove-tenant
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from auth.dependencies import require_session
from auth.session import AuthSession
from core import flash
from core.models import HOUSE_STATUSES
from core.validation import APARTMENT_SCHEMA, HOUSE_SCHEMA
from web.common import (
    as_list,
    check_form,
    fetch,
    form_data,
    form_dict,
    notify,
    number_or_none,
    perform,
    redirect,
    render,
    split_list,
)

logger = logging.getLogger("rentadmin.web")

router = APIRouter()

_HOUSE_STATUS_COLORS = {"available": "#16a34a", "occupied": "#dc2626", "maintenance": "#f59e0b"}


def _apartment_body(form: dict) -> dict:
    data = form_dict(form, ["name", "address", "description", "managerName", "managerPhone", "managerEmail"])
    return {
        "name": data["name"],
        "address": data["address"],
        "description": data["description"],
        "manager": {"name": data["managerName"], "phone": data["managerPhone"], "email": data["managerEmail"]},
    }


def _house_body(apartment_id: str, form: dict) -> dict:
    data = form_dict(form, ["houseNumber", "rentAmount", "status", "description", "amenities"])
    return {
        "houseNumber": data["houseNumber"],
        "rentAmount": number_or_none(data["rentAmount"]),
        "status": data["status"] if data["status"] in HOUSE_STATUSES else "available",
        "description": data["description"],
        "amenities": split_list(data["amenities"]),
        "apartment": apartment_id,
    }


def _detail_url(apartment_id: str) -> str:
    return f"/apartments/{apartment_id}"


# ---------------------------------------------------------------------------
# Apartments
# ---------------------------------------------------------------------------


@router.get("/apartments", response_class=HTMLResponse)
def apartments_page(request: Request, session: AuthSession = Depends(require_session)) -> HTMLResponse:
    apartments = as_list(fetch(request, session.api.apartments.list, "Error loading apartments", []))
    return render(request, "apartments.html", {"apartments": apartments}, session=session)


@router.post("/apartments")
def apartment_create(
    request: Request,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = _apartment_body(form)
    manager = body["manager"]
    fields = {**body, "managerEmail": manager["email"], "managerPhone": manager["phone"]}
    if check_form(request, fields, APARTMENT_SCHEMA):
        perform(
            request,
            lambda: session.api.apartments.create(body),
            "Apartment created successfully!",
            "Error creating apartment. Please try again.",
        )
    return redirect("/apartments")


@router.get("/apartments/{apartment_id}", response_class=HTMLResponse)
def apartment_detail(
    request: Request,
    apartment_id: str,
    session: AuthSession = Depends(require_session),
) -> HTMLResponse:
    api = session.api
    body = fetch(request, lambda: api.apartments.get(apartment_id), "Error loading apartment", {})
    apartment = body.get("apartment", body) if isinstance(body, dict) else None
    if not apartment:
        notify(request, flash.ERROR, "Apartment not found")
        return redirect("/apartments")

    houses = as_list(fetch(request, lambda: api.houses.by_apartment(apartment_id), "Error loading units", []))
    houses = sorted(houses, key=lambda h: str(h.get("houseNumber") or ""))
    tenants = as_list(fetch(request, api.tenants.list, "Error loading tenants", []))
    active_tenants = [t for t in tenants if str(t.get("status") or "").lower() == "active"]

    counts = {status: sum(1 for h in houses if h.get("status") == status) for status in HOUSE_STATUSES}
    return render(
        request,
        "apartment_detail.html",
        {
            "apartment": apartment,
            "houses": houses,
            "tenants": active_tenants,
            "counts": counts,
            "total_houses": apartment.get("totalHouses") or len(houses),
            "house_statuses": HOUSE_STATUSES,
            "house_status_colors": _HOUSE_STATUS_COLORS,
        },
        session=session,
    )


@router.post("/apartments/{apartment_id}")
def apartment_update(
    request: Request,
    apartment_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = _apartment_body(form)
    manager = body["manager"]
    fields = {**body, "managerEmail": manager["email"], "managerPhone": manager["phone"]}
    if check_form(request, fields, APARTMENT_SCHEMA):
        perform(
            request,
            lambda: session.api.apartments.update(apartment_id, body),
            "Apartment updated successfully!",
            "Error updating apartment. Please try again.",
        )
    return redirect(_detail_url(apartment_id))


@router.post("/apartments/{apartment_id}/delete")
def apartment_delete(
    request: Request,
    apartment_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    ok = perform(
        request,
        lambda: session.api.apartments.delete(apartment_id),
        "Apartment deleted successfully",
        "Error deleting apartment. Please try again.",
    )
    return redirect("/apartments" if ok else _detail_url(apartment_id))


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------


@router.post("/apartments/{apartment_id}/houses")
def house_create(
    request: Request,
    apartment_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = _house_body(apartment_id, form)
    if check_form(request, form, HOUSE_SCHEMA):
        perform(
            request,
            lambda: session.api.houses.create(body),
            "Unit created successfully",
            "Error saving house. Please try again.",
        )
    return redirect(_detail_url(apartment_id))


@router.post("/apartments/{apartment_id}/houses/{house_id}")
def house_update(
    request: Request,
    apartment_id: str,
    house_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    body = _house_body(apartment_id, form)
    if check_form(request, form, HOUSE_SCHEMA):
        perform(
            request,
            lambda: session.api.houses.update(house_id, body),
            "Unit updated successfully",
            "Error saving house. Please try again.",
        )
    return redirect(_detail_url(apartment_id))


@router.post("/apartments/{apartment_id}/houses/{house_id}/delete")
def house_delete(
    request: Request,
    apartment_id: str,
    house_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.houses.delete(house_id),
        "Unit deleted successfully",
        "Error deleting house. Please try again.",
    )
    return redirect(_detail_url(apartment_id))


@router.post("/apartments/{apartment_id}/houses/{house_id}/assign-tenant")
def house_assign_tenant(
    request: Request,
    apartment_id: str,
    house_id: str,
    form: dict = Depends(form_data),
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    tenant_id = (form.get("tenantId") or "").strip()
    if not tenant_id:
        notify(request, flash.ERROR, "Please select a tenant")
        return redirect(_detail_url(apartment_id))
    perform(
        request,
        lambda: session.api.houses.assign_tenant(house_id, tenant_id),
        "Tenant assigned successfully",
        "Error assigning tenant. Please try again.",
    )
    return redirect(_detail_url(apartment_id))


@router.post("/apartments/{apartment_id}/houses/{house_id}/remove-tenant")
def house_remove_tenant(
    request: Request,
    apartment_id: str,
    house_id: str,
    session: AuthSession = Depends(require_session),
) -> RedirectResponse:
    perform(
        request,
        lambda: session.api.houses.remove_tenant(house_id),
        "Tenant removed successfully",
        "Error removing tenant. Please try again.",
    )
    return redirect(_detail_url(apartment_id))
