"""
core/formatting.py -- Display helpers shared by templates, exports and receipts.

Registered as Jinja2 filters in web/common.py, so templates write
{{ payment | amount | currency }} rather than repeating fallback logic.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional

from core.models import (
    ACTIVITY_ACTION_STYLES,
    DEFAULT_ACTIVITY_STYLE,
    DEFAULT_STATUS_COLOR,
    PAYMENT_METHOD_LABELS,
    STATUS_COLORS,
)
from core.table import parse_datetime, to_number


def format_number(value: Any) -> str:
    """Group thousands and drop a zero fraction: 12500.0 -> "12,500"."""
    number = to_number(value) or 0.0
    text = f"{number:,.3f}".rstrip("0").rstrip(".")
    return text if text != "-0" else "0"


def format_currency(value: Any) -> str:
    return f"KSh {format_number(value)}"


def format_payment_method(method: Optional[str]) -> str:
    if not method:
        return "N/A"
    return PAYMENT_METHOD_LABELS.get(method, method)


def status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get(status or "", DEFAULT_STATUS_COLOR)


def humanize(value: Optional[str]) -> str:
    """Title-case an API enum value, in_progress -> In Progress."""
    if not value:
        return ""
    return value.replace("_", " ").title()


def person_name(person: Any, default: str = "N/A") -> str:
    """First and last name of an embedded tenant or user record."""
    if not isinstance(person, Mapping):
        return default
    name = f"{person.get('firstName') or ''} {person.get('lastName') or ''}".strip()
    return name or default


def tenant_name(payment_or_tenant: Mapping, default: str = "N/A") -> str:
    """Name of the tenant on a payment, or of the tenant record itself."""
    tenant = payment_or_tenant.get("tenant")
    if isinstance(tenant, Mapping):
        return person_name(tenant, default)
    return person_name(payment_or_tenant, default)


def house_number(record: Mapping, default: str = "N/A") -> str:
    house = record.get("house")
    if isinstance(house, Mapping) and house.get("houseNumber"):
        return str(house["houseNumber"])
    return default


def apartment_name(record: Mapping, default: str = "N/A") -> str:
    """Apartment name from record.apartment or record.house.apartment."""
    apartment = record.get("apartment")
    if not isinstance(apartment, Mapping):
        house = record.get("house")
        apartment = house.get("apartment") if isinstance(house, Mapping) else None
    if isinstance(apartment, Mapping) and apartment.get("name"):
        return str(apartment["name"])
    return default


def format_date(value: Any, fmt: str = "%b %d, %Y", default: str = "N/A") -> str:
    parsed = parse_datetime(value)
    if parsed is None:
        return default
    return parsed.strftime(fmt)


def format_datetime(value: Any, default: str = "N/A") -> str:
    return format_date(value, "%b %d, %Y %I:%M %p", default)


def iso_date(value: Any) -> str:
    """YYYY-MM-DD for <input type="date"> values, "" when absent."""
    parsed = parse_datetime(value)
    return parsed.date().isoformat() if parsed else ""


def relative_time(value: Any, now: Optional[datetime] = None) -> str:
    """Just now, then minutes, hours and days ago, then a short date."""
    parsed = parse_datetime(value)
    if parsed is None:
        return "N/A"
    now = now or datetime.now(timezone.utc)
    seconds = (now - parsed).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    label = f"{parsed.strftime('%b')} {parsed.day}"
    if parsed.year != now.year:
        label += f", {parsed.year}"
    return label


def activity_style(action: Optional[str]) -> tuple[str, str]:
    """(Bootstrap icon name, colour) for an activity log action."""
    return ACTIVITY_ACTION_STYLES.get(action or "", DEFAULT_ACTIVITY_STYLE)


def current_month(today: Optional[date] = None) -> str:
    """Zero-padded month number as the API stores it: "01".."12"."""
    today = today or date.today()
    return f"{today.month:02d}"


def paybill_instructions(config: Mapping) -> str:
    """Tenant-facing paybill instructions built from the system config."""
    provider = (config.get("mobileMoneyProvider") or "mpesa").strip()
    menu = "M-Pesa" if provider == "mpesa" else provider.upper()
    number = config.get("paybillNumber") or "[SET PAYBILL NUMBER]"
    return (
        f"To pay rent via {provider.upper()}:\n"
        "\n"
        f"1. Go to {menu} menu\n"
        '2. Select "Pay Bill"\n'
        f"3. Enter Business Number: {number}\n"
        "4. Enter Account Number: [YOUR HOUSE NUMBER] (e.g., 101, 201, 301)\n"
        "5. Enter Amount: [Your rent amount]\n"
        "6. Enter your PIN\n"
        "7. Confirm payment\n"
        "\n"
        "Your house number is your account number for payment."
    )
