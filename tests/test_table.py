"""Unit tests for the search -> filter -> sort -> paginate pipeline in core/table.py.

Covers:
- Case-insensitive search over nested fields, falsy values never matching
- Filter keys: embedded records by _id, date bounds inclusive of the end day,
  amount bounds falling back from paidAmount to amount
- Stable sort with mixed and missing values
- Page clamping and the "Showing X to Y of N" counts
- TableState transitions and query-string round trips
"""

from core.table import (
    TENANT_SEARCH_FIELDS,
    TableState,
    apply_table,
    filter_rows,
    page_numbers,
    search_rows,
    sort_rows,
)


def _payment(pid: str, **fields) -> dict:
    return {"_id": pid, **fields}


PAYMENTS = [
    _payment(
        "p1",
        tenant={"_id": "t1", "firstName": "Jane", "lastName": "Wanjiku"},
        house={"_id": "h1", "houseNumber": "101", "apartment": {"name": "Sunrise Court"}},
        amount=15000,
        paidAmount=15000,
        status="paid",
        paymentMethod="mpesa",
        paymentDate="2024-03-05T10:00:00.000Z",
        month="03",
        year=2024,
    ),
    _payment(
        "p2",
        tenant={"_id": "t2", "firstName": "Otieno", "lastName": "Kamau"},
        house={"_id": "h2", "houseNumber": "202", "apartment": {"name": "Lakeview"}},
        amount=12000,
        status="pending",
        paymentMethod="cash",
        paymentDate="2024-03-31T23:30:00.000Z",
        month="03",
        year=2024,
    ),
    _payment(
        "p3",
        tenant={"_id": "t1", "firstName": "Jane", "lastName": "Wanjiku"},
        house={"_id": "h1", "houseNumber": "101", "apartment": {"name": "Sunrise Court"}},
        amount=15000,
        paidAmount=9000,
        status="partial",
        paymentMethod="bank_transfer",
        paymentDate="2024-04-02T08:00:00.000Z",
        month="04",
        year=2024,
        notes="",
    ),
]


class TestSearch:
    def test_blank_query_returns_everything(self) -> None:
        assert search_rows(PAYMENTS, "   ") == PAYMENTS

    def test_matches_nested_fields_case_insensitively(self) -> None:
        ids = [p["_id"] for p in search_rows(PAYMENTS, "sunrise")]
        assert ids == ["p1", "p3"]

    def test_numbers_match_as_text(self) -> None:
        assert [p["_id"] for p in search_rows(PAYMENTS, "2024")] == ["p1", "p2", "p3"]
        assert [p["_id"] for p in search_rows(PAYMENTS, "lakeview")] == ["p2"]

    def test_falsy_values_never_match(self) -> None:
        rows = [{"firstName": "", "lastName": None, "email": "x@example.com"}]
        assert search_rows(rows, "none", TENANT_SEARCH_FIELDS) == []


class TestFilter:
    def test_embedded_record_matches_by_id(self) -> None:
        assert [p["_id"] for p in filter_rows(PAYMENTS, {"tenant": "t1"})] == ["p1", "p3"]

    def test_scalar_filter_is_case_insensitive(self) -> None:
        assert [p["_id"] for p in filter_rows(PAYMENTS, {"status": "PAID"})] == ["p1"]

    def test_blank_filters_are_ignored(self) -> None:
        assert filter_rows(PAYMENTS, {"status": "", "paymentMethod": None}) == PAYMENTS

    def test_end_date_includes_whole_day(self) -> None:
        """A payment at 23:30 on the end date is still inside the range."""
        rows = filter_rows(PAYMENTS, {"startDate": "2024-03-01", "endDate": "2024-03-31"})
        assert [p["_id"] for p in rows] == ["p1", "p2"]

    def test_field_specific_date_bounds(self) -> None:
        rows = filter_rows(PAYMENTS, {"paymentDateStart": "2024-04-01"})
        assert [p["_id"] for p in rows] == ["p3"]

    def test_amount_bounds_use_paid_amount_first(self) -> None:
        rows = filter_rows(PAYMENTS, {"amountMax": "10000"})
        assert [p["_id"] for p in rows] == ["p3"]

    def test_unparsable_bound_is_ignored(self) -> None:
        assert filter_rows(PAYMENTS, {"amountMin": "lots"}) == PAYMENTS


class TestSort:
    def test_no_field_keeps_order(self) -> None:
        assert sort_rows(PAYMENTS, None) == PAYMENTS

    def test_sort_by_amount_desc(self) -> None:
        assert [p["_id"] for p in sort_rows(PAYMENTS, "amount", "desc")] == ["p1", "p3", "p2"]

    def test_ties_keep_input_order(self) -> None:
        rows = sort_rows(PAYMENTS, "month")
        assert [p["_id"] for p in rows] == ["p1", "p2", "p3"]

    def test_embedded_record_sorts_by_display_key(self) -> None:
        assert [p["_id"] for p in sort_rows(PAYMENTS, "house")] == ["p1", "p3", "p2"]

    def test_missing_values_sort_first_ascending(self) -> None:
        rows = [{"name": "b"}, {}, {"name": "a"}]
        assert sort_rows(rows, "name") == [{}, {"name": "a"}, {"name": "b"}]

    def test_datetimes_sort_chronologically(self) -> None:
        rows = sort_rows(PAYMENTS, "paymentDate", "desc")
        assert [p["_id"] for p in rows] == ["p3", "p2", "p1"]


class TestPagination:
    def test_counts_for_the_footer(self) -> None:
        rows = [{"n": i} for i in range(23)]
        page = apply_table(rows, TableState(page=3, page_size=10), search_fields=())
        assert len(page.items) == 3
        assert (page.first_item, page.last_item, page.total_items) == (21, 23, 23)
        assert page.total_pages == 3
        assert page.has_previous and not page.has_next

    def test_page_beyond_range_is_clamped(self) -> None:
        page = apply_table(PAYMENTS, TableState(page=9, page_size=10))
        assert page.page == 1
        assert len(page.items) == 3

    def test_empty_result(self) -> None:
        page = apply_table(PAYMENTS, TableState(search="nobody"))
        assert page.total_items == 0
        assert page.total_pages == 0
        assert (page.first_item, page.last_item) == (0, 0)
        assert page.items == []

    def test_sorted_items_hold_every_match(self) -> None:
        page = apply_table(PAYMENTS, TableState(filters={"tenant": "t1"}, page_size=10))
        assert [p["_id"] for p in page.sorted_items] == ["p1", "p3"]

    def test_page_number_window(self) -> None:
        assert page_numbers(1, 3) == [1, 2, 3]
        assert page_numbers(1, 10) == [1, 2, 3, 4, 5]
        assert page_numbers(6, 10) == [4, 5, 6, 7, 8]
        assert page_numbers(10, 10) == [6, 7, 8, 9, 10]


class TestTableState:
    def test_from_query_reads_known_keys(self) -> None:
        state = TableState.from_query(
            {"q": "jane", "status": "paid", "other": "x", "sort": "amount", "order": "desc", "page": "2", "size": "50"},
            filter_keys=("status",),
        )
        assert state.search == "jane"
        assert state.filters == {"status": "paid"}
        assert (state.sort_field, state.sort_order, state.page, state.page_size) == ("amount", "desc", 2, 50)

    def test_from_query_rejects_bad_values(self) -> None:
        state = TableState.from_query({"order": "sideways", "page": "-4", "size": "7"}, default_sort="paymentDate")
        assert state.sort_order == "asc"
        assert state.page == 1
        assert state.page_size == 25
        assert state.sort_field == "paymentDate"

    def test_toggle_sort_flips_order_and_resets_page(self) -> None:
        state = TableState(sort_field="amount", sort_order="asc", page=4)
        toggled = state.toggle_sort("amount")
        assert (toggled.sort_order, toggled.page) == ("desc", 1)
        assert state.toggle_sort("status").sort_order == "asc"

    def test_filter_change_resets_page(self) -> None:
        state = TableState(page=3).with_filter("status", "paid")
        assert state.page == 1
        assert state.with_filter("status", "").filters == {}

    def test_cleared_keeps_sort(self) -> None:
        state = TableState(search="x", filters={"status": "paid"}, sort_field="amount").cleared()
        assert not state.has_active_filters
        assert state.sort_field == "amount"

    def test_query_string_omits_defaults(self) -> None:
        assert TableState().query_string() == ""
        state = TableState(search="a b", filters={"status": "paid"}, page=2, page_size=50)
        assert state.query_string() == "q=a+b&status=paid&page=2&size=50"

    def test_query_string_round_trip(self) -> None:
        state = TableState(filters={"status": "paid"}, sort_field="amount", sort_order="desc", page=2)
        params = dict(pair.split("=") for pair in state.query_string().split("&"))
        assert TableState.from_query(params, filter_keys=("status",)) == state

    def test_sort_indicator(self) -> None:
        state = TableState(sort_field="amount", sort_order="desc")
        assert state.sort_indicator("amount") == "↓"
        assert state.sort_indicator("status") == ""

    def test_search_change_resets_page(self) -> None:
        state = TableState(search="jane", filters={"status": "paid"}, page=3)
        searched = state.with_search("otieno")
        assert (searched.search, searched.page) == ("otieno", 1)
        assert searched.filters == {"status": "paid"}
        assert state.with_search("").query_string() == "status=paid"

    def test_page_size_change_resets_page(self) -> None:
        state = TableState(sort_field="amount", page=4).with_page_size(50)
        assert (state.page_size, state.page) == (50, 1)
        assert state.query_string() == "sort=amount&order=asc&size=50"


def _generated_rows(count: int = 47) -> list[dict]:
    statuses = ("paid", "pending", "overdue", "partial")
    return [
        {
            "_id": f"g{i}",
            "tenant": {"_id": f"t{i % 6}", "firstName": f"Tenant{i % 6}", "lastName": "Test"},
            "status": statuses[i % len(statuses)],
            "amount": (i % 5) * 1000,
            "paymentDate": f"2024-{(i % 12) + 1:02d}-{(i % 28) + 1:02d}T09:00:00.000Z",
        }
        for i in range(count)
    ]


class TestPipelineProperties:
    """Properties that hold for any row set, checked over a generated one."""

    ROWS = _generated_rows()

    def test_filter_is_idempotent(self) -> None:
        filters = {"status": "pending", "startDate": "2024-03-01", "endDate": "2024-09-30"}
        once = filter_rows(self.ROWS, filters)
        assert once
        assert filter_rows(once, filters) == once

    def test_search_is_idempotent(self) -> None:
        once = search_rows(self.ROWS, "tenant3")
        assert search_rows(once, "tenant3") == once

    def test_pages_partition_the_sorted_rows(self) -> None:
        state = TableState(sort_field="amount", sort_order="desc", page_size=10)
        first = apply_table(self.ROWS, state)
        assert first.total_pages == 5

        seen: list[str] = []
        for number in range(1, first.total_pages + 1):
            page = apply_table(self.ROWS, state.with_page(number))
            assert page.page == number
            assert (page.first_item, page.last_item) == ((number - 1) * 10 + 1, min(number * 10, 47))
            seen.extend(row["_id"] for row in page.items)

        assert len(seen) == len(set(seen)) == first.total_items
        assert seen == [row["_id"] for row in first.sorted_items]

    def test_desc_ties_keep_input_order(self) -> None:
        ordered = sort_rows(self.ROWS, "amount", "desc")
        for amount in {row["amount"] for row in self.ROWS}:
            tied = [row["_id"] for row in ordered if row["amount"] == amount]
            assert tied == [row["_id"] for row in self.ROWS if row["amount"] == amount]
        amounts = [row["amount"] for row in ordered]
        assert amounts == sorted(amounts, reverse=True)

    def test_filtered_total_matches_filter(self) -> None:
        state = TableState(filters={"status": "paid"}, page_size=10)
        page = apply_table(self.ROWS, state)
        assert page.total_items == len([row for row in self.ROWS if row["status"] == "paid"])
        assert all(row["status"] == "paid" for row in page.sorted_items)
