"""
core/validation.py -- Rule-based validation for the console's forms.

Each form declares a schema: a dict of field name to FieldRules. validate_form()
runs get_field_error() over every field and collects the first failing rule
per field. Only presence and shape are checked here; the rental API remains
the authority on business rules and its error message is shown verbatim when
it rejects a submission.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from core.table import parse_datetime

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# +254712345678, 254712345678, 0712345678, 712345678 (and the 1xx ranges)
_PHONE_RE = re.compile(r"^(\+?254|0)?[17]\d{8}$")
_WHITESPACE_RE = re.compile(r"\s")


def validate_email(email: Any) -> bool:
    return bool(_EMAIL_RE.match(str(email or "")))


def validate_phone(phone: Any) -> bool:
    return bool(_PHONE_RE.match(_WHITESPACE_RE.sub("", str(phone or ""))))


def validate_required(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def validate_min_length(value: Any, minimum: int) -> bool:
    return bool(value) and len(str(value)) >= minimum


def validate_max_length(value: Any, maximum: int) -> bool:
    return not value or len(str(value)) <= maximum


def validate_number(value: Any, minimum: Optional[float] = None, maximum: Optional[float] = None) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    if not math.isfinite(number):
        return False
    if minimum is not None and number < minimum:
        return False
    if maximum is not None and number > maximum:
        return False
    return True


def validate_date(value: Any, min_date: Any = None, max_date: Any = None) -> bool:
    if not value:
        return False
    parsed = parse_datetime(value)
    if parsed is None:
        return False
    lower = parse_datetime(min_date) if min_date else None
    upper = parse_datetime(max_date, end_of_day=True) if max_date else None
    if lower is not None and parsed < lower:
        return False
    if upper is not None and parsed > upper:
        return False
    return True


@dataclass
class FieldRules:
    """Rules for one form field. Each *_message overrides the default text."""

    required: bool = False
    email: bool = False
    phone: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    number: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    date: bool = False
    min_date: Optional[str | datetime] = None
    max_date: Optional[str | datetime] = None
    required_message: Optional[str] = None
    email_message: Optional[str] = None
    phone_message: Optional[str] = None
    min_length_message: Optional[str] = None
    max_length_message: Optional[str] = None
    number_message: Optional[str] = None
    date_message: Optional[str] = None


@dataclass
class FormValidation:
    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def get_field_error(value: Any, rules: Optional[FieldRules]) -> Optional[str]:
    """Return the message of the first failing rule, or None when valid.

    Rules after "required" only run when the value is non-empty, so optional
    fields may be left blank.
    """
    if rules is None:
        return None

    if rules.required and not validate_required(value):
        return rules.required_message or "This field is required"

    if not value:
        return None

    if rules.email and not validate_email(value):
        return rules.email_message or "Please enter a valid email address"

    if rules.phone and not validate_phone(value):
        return rules.phone_message or "Please enter a valid phone number"

    if rules.min_length and not validate_min_length(value, rules.min_length):
        return rules.min_length_message or f"Minimum length is {rules.min_length} characters"

    if rules.max_length and not validate_max_length(value, rules.max_length):
        return rules.max_length_message or f"Maximum length is {rules.max_length} characters"

    if rules.number and not validate_number(value, rules.min, rules.max):
        if rules.number_message:
            return rules.number_message
        if not validate_number(value):
            return "Please enter a valid number"
        if rules.min is not None and rules.max is not None:
            return f"Must be between {_fmt(rules.min)} and {_fmt(rules.max)}"
        if rules.min is not None:
            return f"Must be at least {_fmt(rules.min)}"
        return f"Must be at most {_fmt(rules.max)}"

    if rules.date and not validate_date(value, rules.min_date, rules.max_date):
        return rules.date_message or "Please enter a valid date"

    return None


def validate_form(data: Mapping[str, Any], schema: Mapping[str, FieldRules]) -> FormValidation:
    errors: dict[str, str] = {}
    for name, rules in schema.items():
        error = get_field_error(data.get(name), rules)
        if error:
            errors[name] = error
    return FormValidation(is_valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Form schemas
# ---------------------------------------------------------------------------

APARTMENT_SCHEMA: dict[str, FieldRules] = {
    "name": FieldRules(required=True, max_length=100),
    "address": FieldRules(required=True),
    "managerEmail": FieldRules(email=True),
    "managerPhone": FieldRules(phone=True),
}

HOUSE_SCHEMA: dict[str, FieldRules] = {
    "houseNumber": FieldRules(required=True, max_length=20),
    "rentAmount": FieldRules(required=True, number=True, min=0),
}

TENANT_SCHEMA: dict[str, FieldRules] = {
    "firstName": FieldRules(required=True, max_length=50),
    "lastName": FieldRules(required=True, max_length=50),
    "email": FieldRules(required=True, email=True),
    "phone": FieldRules(required=True, phone=True),
    "emergencyContactPhone": FieldRules(phone=True),
    "leaseStartDate": FieldRules(date=True),
    "leaseEndDate": FieldRules(date=True),
}

PAYMENT_SCHEMA: dict[str, FieldRules] = {
    "tenant": FieldRules(required=True, required_message="Please select a tenant"),
    "house": FieldRules(required=True, required_message="Please select a house"),
    "amount": FieldRules(required=True, number=True, min=0),
    "paymentDate": FieldRules(required=True, date=True),
    "dueDate": FieldRules(date=True),
    "month": FieldRules(required=True, number=True, min=1, max=12),
    "year": FieldRules(required=True, number=True, min=2000, max=2100),
}

# Every field is optional; blanks fall back to the current period and the default fees.
GENERATE_RENT_SCHEMA: dict[str, FieldRules] = {
    "month": FieldRules(number=True, min=1, max=12),
    "year": FieldRules(number=True, min=2000, max=2100),
    "lateFeePercentage": FieldRules(number=True, min=0, max=100),
    "gracePeriodDays": FieldRules(number=True, min=0),
}

RECEIVE_PAYMENT_SCHEMA: dict[str, FieldRules] = {
    "houseNumber": FieldRules(required=True),
    "amount": FieldRules(required=True, number=True, min=1),
}

STK_PUSH_SCHEMA: dict[str, FieldRules] = {
    "phoneNumber": FieldRules(required=True, phone=True),
    "amount": FieldRules(required=True, number=True, min=1),
}

MAINTENANCE_SCHEMA: dict[str, FieldRules] = {
    "house": FieldRules(required=True, required_message="Please select a house"),
    "title": FieldRules(required=True, max_length=200),
    "description": FieldRules(required=True),
}

EXPENSE_SCHEMA: dict[str, FieldRules] = {
    "apartment": FieldRules(required=True, required_message="Please select an apartment"),
    "description": FieldRules(required=True),
    "amount": FieldRules(required=True, number=True, min=0),
    "expenseDate": FieldRules(required=True, date=True),
}

USER_SCHEMA: dict[str, FieldRules] = {
    "username": FieldRules(required=True, min_length=3, max_length=50),
    "email": FieldRules(required=True, email=True),
    "firstName": FieldRules(required=True),
    "lastName": FieldRules(required=True),
    "phone": FieldRules(phone=True),
    "password": FieldRules(min_length=6),
}

PAYBILL_TEST_SCHEMA: dict[str, FieldRules] = {
    "paybillNumber": FieldRules(required=True),
    "accountNumber": FieldRules(required=True),
    "amount": FieldRules(required=True, number=True, min=1),
}

EQUITY_PAYMENT_SCHEMA: dict[str, FieldRules] = {
    "accountNumber": FieldRules(required=True),
    "amount": FieldRules(required=True, number=True, min=1),
}
