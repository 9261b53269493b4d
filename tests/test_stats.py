"""Unit tests for the display-only summaries in core/stats.py.

Covers:
- Dashboard counts and current-month revenue (paid only, paidAmount first)
- Tenant detail totals (paid, pending with late fees, deficit)
- Chart bar percentages and occupancy shares, including the all-zero case
"""

from datetime import date

from core.stats import chart_bars, dashboard_stats, occupancy_shares, tenant_totals

TODAY = date(2024, 3, 15)


class TestDashboardStats:
    def test_counts_and_monthly_revenue(self) -> None:
        houses = [{"status": "occupied"}, {"status": "occupied"}, {"status": "available"}, {"status": "maintenance"}]
        tenants = [{"status": "active"}, {"status": "inactive"}, {"status": "active"}]
        payments = [
            {"status": "paid", "month": "03", "year": 2024, "amount": 15000, "paidAmount": 14000},
            {"status": "paid", "month": "03", "year": "2024", "amount": 12000},
            {"status": "pending", "month": "03", "year": 2024, "amount": 9000},
            {"status": "paid", "month": "02", "year": 2024, "amount": 15000},
            {"status": "paid", "month": "03", "year": 2023, "amount": 15000},
        ]
        stats = dashboard_stats([{}, {}], houses, tenants, payments, today=TODAY)
        assert stats.total_apartments == 2
        assert (stats.total_houses, stats.occupied_houses, stats.available_houses, stats.maintenance_houses) == (4, 2, 1, 1)
        assert stats.total_tenants == 2
        assert stats.total_payments == 5
        assert stats.monthly_revenue == 26000
        assert stats.occupancy_rate == 50.0

    def test_occupancy_rate_without_houses(self) -> None:
        assert dashboard_stats([], [], [], [], today=TODAY).occupancy_rate == 0.0


class TestTenantTotals:
    def test_paid_pending_and_deficit(self) -> None:
        payments = [
            {"status": "paid", "amount": 15000, "lateFee": 500},
            {"status": "partial", "amount": 15000, "paidAmount": 10000, "deficit": 5000},
            {"status": "overdue", "expectedAmount": 15000, "lateFee": 750},
            {"status": "cancelled", "amount": 99999},
        ]
        totals = tenant_totals(payments)
        assert totals.paid == 15500
        assert totals.pending == 5000 + 15750
        assert totals.deficit == 5000


class TestCharts:
    def test_bars_relative_to_peak(self) -> None:
        bars = chart_bars([{"month": "Jan", "revenue": 50}, {"month": "Feb", "revenue": 200}], ("revenue",))
        assert [b["pct"]["revenue"] for b in bars] == [25.0, 100.0]

    def test_bars_all_zero(self) -> None:
        bars = chart_bars([{"paid": 0, "pending": 0}], ("paid", "pending"))
        assert bars[0]["pct"] == {"paid": 0.0, "pending": 0.0}

    def test_input_items_not_mutated(self) -> None:
        items = [{"revenue": 10}]
        chart_bars(items, ("revenue",))
        assert "pct" not in items[0]

    def test_occupancy_shares(self) -> None:
        shares = occupancy_shares({"occupied": 6, "available": 3, "maintenance": 1})
        assert shares == {"occupied": 60.0, "available": 30.0, "maintenance": 10.0}
        assert occupancy_shares({}) == {"occupied": 0.0, "available": 0.0, "maintenance": 0.0}
