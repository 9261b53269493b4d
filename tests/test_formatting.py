"""Unit tests for the display helpers in core/formatting.py."""

from datetime import date, datetime, timezone

from core.formatting import (
    activity_style,
    apartment_name,
    current_month,
    format_currency,
    format_date,
    format_number,
    format_payment_method,
    house_number,
    humanize,
    iso_date,
    paybill_instructions,
    person_name,
    relative_time,
    status_color,
    tenant_name,
)
from core.models import DEFAULT_ACTIVITY_STYLE, DEFAULT_STATUS_COLOR


class TestNumbers:
    def test_currency_groups_thousands(self) -> None:
        assert format_currency(15000) == "KSh 15,000"
        assert format_currency("1234.5") == "KSh 1,234.5"

    def test_missing_values_are_zero(self) -> None:
        assert format_currency(None) == "KSh 0"
        assert format_number("not a number") == "0"


class TestDates:
    def test_format_date(self) -> None:
        assert format_date("2024-03-05T10:00:00.000Z") == "Mar 05, 2024"
        assert format_date(None) == "N/A"

    def test_iso_date_for_inputs(self) -> None:
        assert iso_date("2024-03-05T10:00:00.000Z") == "2024-03-05"
        assert iso_date("") == ""

    def test_relative_time_buckets(self) -> None:
        now = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)
        assert relative_time("2024-06-10T11:59:30Z", now) == "Just now"
        assert relative_time("2024-06-10T11:15:00Z", now) == "45m ago"
        assert relative_time("2024-06-10T07:00:00Z", now) == "5h ago"
        assert relative_time("2024-06-07T12:00:00Z", now) == "3d ago"
        assert relative_time("2024-05-01T12:00:00Z", now) == "May 1"
        assert relative_time("2023-05-01T12:00:00Z", now) == "May 1, 2023"

    def test_current_month_is_zero_padded(self) -> None:
        assert current_month(date(2024, 3, 9)) == "03"
        assert current_month(date(2024, 11, 9)) == "11"


class TestRecords:
    PAYMENT = {
        "tenant": {"firstName": "Jane", "lastName": "Wanjiku"},
        "house": {"houseNumber": "101", "apartment": {"name": "Sunrise Court"}},
    }

    def test_names_from_embedded_records(self) -> None:
        assert tenant_name(self.PAYMENT) == "Jane Wanjiku"
        assert house_number(self.PAYMENT) == "101"
        assert apartment_name(self.PAYMENT) == "Sunrise Court"

    def test_unpopulated_references_fall_back(self) -> None:
        payment = {"tenant": "t1", "house": "h1"}
        assert tenant_name(payment) == "N/A"
        assert house_number(payment) == "N/A"
        assert apartment_name(payment, "") == ""

    def test_person_name_ignores_non_mappings(self) -> None:
        assert person_name(None) == "N/A"
        assert person_name({"firstName": "Jane"}) == "Jane"

    def test_enum_labels(self) -> None:
        assert humanize("in_progress") == "In Progress"
        assert format_payment_method("mpesa_stk") == "M-Pesa STK"
        assert format_payment_method(None) == "N/A"
        assert format_payment_method("barter") == "barter"

    def test_unknown_keys_use_defaults(self) -> None:
        assert status_color("mystery") == DEFAULT_STATUS_COLOR
        assert activity_style("mystery") == DEFAULT_ACTIVITY_STYLE
        assert activity_style("login")[0] == "box-arrow-in-right"


class TestPaybillInstructions:
    def test_uses_configured_number(self) -> None:
        text = paybill_instructions({"paybillNumber": "123456", "mobileMoneyProvider": "mpesa"})
        assert "To pay rent via MPESA:" in text
        assert "1. Go to M-Pesa menu" in text
        assert "Enter Business Number: 123456" in text

    def test_placeholder_when_unset(self) -> None:
        text = paybill_instructions({"mobileMoneyProvider": "airtel"})
        assert "1. Go to AIRTEL menu" in text
        assert "[SET PAYBILL NUMBER]" in text
