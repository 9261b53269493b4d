"""
core/table.py -- Search, filter, sort and paginate a list of API records.

The list screens (payments, tenants) receive whole collections from the
rental API and slice them here before rendering. Every function is pure:
rows in, rows out, with no reference to the request or the template layer.

Pipeline order: search -> filter -> sort -> paginate. apply_table() runs the
whole chain and returns a TablePage with the visible slice plus the counts the
pagination bar needs ("Showing X to Y of N entries").

TableState holds the UI state (search text, filters, sort, page) and is
immutable. Transitions return a new state, so a template can render links
such as state.toggle_sort("amount").query_string() without mutating the
state used for the current page.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from typing import Any, Optional
from urllib.parse import urlencode

from core.models import PAGE_SIZES

DEFAULT_PAGE_SIZE = 25

# Payment table search fields. Other screens pass their own list.
DEFAULT_SEARCH_FIELDS: tuple[str, ...] = (
    "tenant.firstName",
    "tenant.lastName",
    "tenant.email",
    "house.houseNumber",
    "house.apartment.name",
    "paymentMethod",
    "status",
    "receiptNumber",
    "transactionId",
    "referenceNumber",
    "month",
    "year",
    "notes",
)

TENANT_SEARCH_FIELDS: tuple[str, ...] = (
    "firstName",
    "lastName",
    "email",
    "phone",
    "house.houseNumber",
)

# Attributes tried, in order, when a sort column holds an embedded record.
_NESTED_SORT_KEYS = ("houseNumber", "name", "firstName", "paidAmount", "amount")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def get_path(item: Mapping, path: str) -> Any:
    """Return the value at a dotted path ("house.apartment.name") or None."""
    value: Any = item
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def display_str(value: Any) -> str:
    """Render a scalar the way the API's JSON would print it.

    Integral floats lose their ".0" (5.0 -> "5"), booleans become "true" and
    "false", None becomes "".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_datetime(value: Any, end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Naive values are taken as UTC. A bare date becomes midnight, or the last
    microsecond of the day when end_of_day is set. Returns None for anything
    unparsable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if end_of_day and "T" not in text and " " not in text:
            parsed = datetime.combine(parsed.date(), time.max)
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return None
    return None


def record_amount(item: Mapping) -> float:
    """paidAmount, falling back to amount, falling back to 0."""
    return to_number(item.get("paidAmount") or item.get("amount") or 0) or 0.0


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def search_rows(
    rows: Iterable[Mapping],
    query: str,
    fields: Iterable[str] = DEFAULT_SEARCH_FIELDS,
) -> list[Mapping]:
    """Keep rows where any of the fields contains query, case-insensitively.

    Falsy field values never match. A blank query returns every row.
    """
    rows = list(rows)
    needle = (query or "").strip().lower()
    if not needle:
        return rows
    fields = tuple(fields)

    def matches(item: Mapping) -> bool:
        for path in fields:
            value = get_path(item, path)
            if value and needle in display_str(value).lower():
                return True
        return False

    return [item for item in rows if matches(item)]


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _date_bound(key: str, date_field: str) -> Optional[tuple[str, str]]:
    """Map a filter key to (field, "start" | "end") when it is a date bound."""
    if key == "startDate":
        return date_field, "start"
    if key == "endDate":
        return date_field, "end"
    for suffix, side in (("Start", "start"), ("End", "end")):
        if key.endswith(suffix) and "Date" in key[: -len(suffix)]:
            return key[: -len(suffix)], side
    return None


def _matches_filter(item: Mapping, key: str, wanted: Any, date_field: str) -> bool:
    bound = _date_bound(key, date_field)
    if bound is not None:
        field_name, side = bound
        limit = parse_datetime(wanted, end_of_day=(side == "end"))
        actual = parse_datetime(get_path(item, field_name))
        if limit is None:
            return True
        if actual is None:
            return False
        return actual >= limit if side == "start" else actual <= limit

    if key in ("amountMin", "amountMax"):
        limit_num = to_number(wanted)
        if limit_num is None:
            return True
        amount = record_amount(item)
        return amount >= limit_num if key == "amountMin" else amount <= limit_num

    value = get_path(item, key)
    if isinstance(value, Mapping):
        if value.get("_id"):
            return display_str(value["_id"]) == display_str(wanted)
        if value.get("status"):
            return display_str(value["status"]) == display_str(wanted)
        return False
    return display_str(value).lower() == display_str(wanted).lower()


def filter_rows(
    rows: Iterable[Mapping],
    filters: Mapping[str, Any],
    date_field: str = "paymentDate",
) -> list[Mapping]:
    """AND together one predicate per filter key. Blank values are skipped.

    Key handling:
      <field>Start / <field>End  inclusive date bound on <field> (a date field)
      startDate / endDate        inclusive date bound on date_field
      amountMin / amountMax      bound on paidAmount -> amount -> 0
      anything else              embedded record matched by _id, then status;
                                 scalars by case-insensitive equality
    """
    result = list(rows)
    for key, wanted in filters.items():
        if wanted is None or wanted == "":
            continue
        result = [item for item in result if _matches_filter(item, key, wanted, date_field)]
    return result


# ---------------------------------------------------------------------------
# Sort
# ---------------------------------------------------------------------------


def _sort_value(item: Mapping, sort_field: str) -> Any:
    value = get_path(item, sort_field)
    if isinstance(value, Mapping):
        value = next((value[k] for k in _NESTED_SORT_KEYS if value.get(k)), "")
    if sort_field == "amount" and not value:
        value = 0
    return value


def _sort_key(value: Any) -> tuple:
    # Rank keeps mixed types comparable: empty < numbers < datetimes < text.
    if value is None or value == "":
        return (0, "")
    if isinstance(value, bool):
        return (1, float(value))
    if isinstance(value, (int, float)):
        return (1, float(value))
    if isinstance(value, (datetime, date)):
        return (2, parse_datetime(value))
    text = str(value)
    if "T" in text:
        parsed = parse_datetime(text)
        if parsed is not None:
            return (2, parsed)
    return (3, text)


def sort_rows(rows: Iterable[Mapping], sort_field: Optional[str], order: str = "asc") -> list[Mapping]:
    """Stable sort by one field. No field leaves the order untouched."""
    rows = list(rows)
    if not sort_field:
        return rows
    return sorted(
        rows,
        key=lambda item: _sort_key(_sort_value(item, sort_field)),
        reverse=(order == "desc"),
    )


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def paginate(rows: list, page: int, size: int) -> list:
    start = (page - 1) * size
    return rows[start : start + size]


def page_numbers(current: int, total: int, max_visible: int = 5) -> list[int]:
    """Page buttons to show: all pages, or a window of max_visible around current."""
    if total <= max_visible:
        return list(range(1, total + 1))
    half = max_visible // 2
    if current <= half + 1:
        return list(range(1, max_visible + 1))
    if current >= total - half:
        return list(range(total - max_visible + 1, total + 1))
    return list(range(current - half, current + half + 1))


@dataclass
class TablePage:
    items: list
    total_items: int
    total_pages: int
    page: int
    page_size: int
    sorted_items: list = field(default_factory=list)

    @property
    def first_item(self) -> int:
        if self.total_items == 0:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def last_item(self) -> int:
        return min(self.page * self.page_size, self.total_items)

    @property
    def page_numbers(self) -> list[int]:
        return page_numbers(self.page, self.total_pages)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


# ---------------------------------------------------------------------------
# Table state
# ---------------------------------------------------------------------------


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


@dataclass(frozen=True)
class TableState:
    search: str = ""
    filters: dict[str, str] = field(default_factory=dict)
    sort_field: Optional[str] = None
    sort_order: str = "asc"
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_query(
        cls,
        params: Mapping[str, str],
        filter_keys: Iterable[str] = (),
        default_sort: Optional[str] = None,
        default_order: str = "asc",
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> "TableState":
        """Build state from a query string (q, sort, order, page, size + filters)."""
        order = params.get("order", default_order)
        if order not in ("asc", "desc"):
            order = default_order
        size = _positive_int(params.get("size"), default_page_size)
        if size not in PAGE_SIZES:
            size = default_page_size
        return cls(
            search=params.get("q", "") or "",
            filters={key: params[key] for key in filter_keys if params.get(key)},
            sort_field=params.get("sort") or default_sort,
            sort_order=order,
            page=_positive_int(params.get("page"), 1),
            page_size=size,
        )

    # -- transitions ----------------------------------------------------

    def toggle_sort(self, sort_field: str) -> "TableState":
        if sort_field == self.sort_field:
            order = "desc" if self.sort_order == "asc" else "asc"
        else:
            order = "asc"
        return replace(self, sort_field=sort_field, sort_order=order, page=1)

    def with_filter(self, key: str, value: Optional[str]) -> "TableState":
        filters = dict(self.filters)
        if value:
            filters[key] = value
        else:
            filters.pop(key, None)
        return replace(self, filters=filters, page=1)

    def with_search(self, query: str) -> "TableState":
        return replace(self, search=query, page=1)

    def cleared(self) -> "TableState":
        return replace(self, search="", filters={}, page=1)

    def with_page(self, page: int) -> "TableState":
        return replace(self, page=max(1, page))

    def with_page_size(self, size: int) -> "TableState":
        return replace(self, page_size=size, page=1)

    # -- rendering helpers ----------------------------------------------

    @property
    def has_active_filters(self) -> bool:
        return bool(self.search or any(self.filters.values()))

    def query_string(self) -> str:
        params: dict[str, Any] = {}
        if self.search:
            params["q"] = self.search
        params.update({k: v for k, v in self.filters.items() if v})
        if self.sort_field:
            params["sort"] = self.sort_field
            params["order"] = self.sort_order
        if self.page != 1:
            params["page"] = self.page
        if self.page_size != DEFAULT_PAGE_SIZE:
            params["size"] = self.page_size
        return urlencode(params)

    def sort_indicator(self, sort_field: str) -> str:
        if sort_field != self.sort_field:
            return ""
        return "↑" if self.sort_order == "asc" else "↓"


def apply_table(
    rows: Iterable[Mapping],
    state: TableState,
    search_fields: Iterable[str] = DEFAULT_SEARCH_FIELDS,
    date_field: str = "paymentDate",
) -> TablePage:
    """Run search -> filter -> sort -> paginate and return the visible page.

    The requested page is clamped into [1, total_pages] so a stale page
    number after a filter change still shows data.
    """
    found = search_rows(rows, state.search, search_fields)
    filtered = filter_rows(found, state.filters, date_field=date_field)
    ordered = sort_rows(filtered, state.sort_field, state.sort_order)
    total_items = len(ordered)
    total_pages = math.ceil(total_items / state.page_size) if total_items else 0
    page = max(1, min(state.page, total_pages or 1))
    return TablePage(
        items=paginate(ordered, page, state.page_size),
        total_items=total_items,
        total_pages=total_pages,
        page=page,
        page_size=state.page_size,
        sorted_items=ordered,
    )
