"""
core/stats.py -- Display-only summaries over records the API already returned.

These are counts and sums for cards and chart bars. Balances, deficits and
late fees themselves are computed by the rental API; nothing here writes back.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from core.formatting import current_month
from core.table import record_amount, to_number


@dataclass
class DashboardStats:
    total_apartments: int = 0
    total_houses: int = 0
    occupied_houses: int = 0
    available_houses: int = 0
    maintenance_houses: int = 0
    total_tenants: int = 0
    total_payments: int = 0
    monthly_revenue: float = 0.0

    @property
    def occupancy_rate(self) -> float:
        if not self.total_houses:
            return 0.0
        return round(self.occupied_houses / self.total_houses * 100, 1)


def _count_status(records: list, status: str) -> int:
    return sum(1 for r in records if r.get("status") == status)


def _same_year(value: Any, year: int) -> bool:
    number = to_number(value)
    return number is not None and int(number) == year


def dashboard_stats(
    apartments: Iterable[Mapping],
    houses: Iterable[Mapping],
    tenants: Iterable[Mapping],
    payments: Iterable[Mapping],
    today: Optional[date] = None,
) -> DashboardStats:
    """Headline numbers for the dashboard.

    Monthly revenue sums paid payments whose month/year match today, using
    paidAmount and falling back to amount.
    """
    today = today or date.today()
    houses = list(houses)
    payments = list(payments)
    month = current_month(today)
    revenue = sum(
        record_amount(p)
        for p in payments
        if p.get("status") == "paid" and str(p.get("month")) == month and _same_year(p.get("year"), today.year)
    )
    return DashboardStats(
        total_apartments=len(list(apartments)),
        total_houses=len(houses),
        occupied_houses=_count_status(houses, "occupied"),
        available_houses=_count_status(houses, "available"),
        maintenance_houses=_count_status(houses, "maintenance"),
        total_tenants=_count_status(list(tenants), "active"),
        total_payments=len(payments),
        monthly_revenue=revenue,
    )


@dataclass
class TenantTotals:
    paid: float = 0.0
    pending: float = 0.0
    deficit: float = 0.0


def tenant_totals(payments: Iterable[Mapping]) -> TenantTotals:
    """Paid, outstanding and deficit figures for the tenant detail header.

    paid     paid payments: paidAmount/amount plus any late fee
    pending  pending, overdue and partial: deficit, else expected, else amount,
             plus any late fee
    deficit  sum of deficit across every payment
    """
    totals = TenantTotals()
    for p in payments:
        late_fee = to_number(p.get("lateFee")) or 0.0
        status = p.get("status")
        if status == "paid":
            totals.paid += record_amount(p) + late_fee
        elif status in ("pending", "overdue", "partial"):
            owed = p.get("deficit") or p.get("expectedAmount") or p.get("amount") or 0
            totals.pending += (to_number(owed) or 0.0) + late_fee
        totals.deficit += to_number(p.get("deficit")) or 0.0
    return totals


def chart_bars(items: Iterable[Mapping], keys: Iterable[str]) -> list[dict]:
    """Attach a 0-100 "pct" per key so templates can draw CSS bar charts.

    Percentages are relative to the largest value of any listed key.
    """
    items = [dict(i) for i in items]
    keys = tuple(keys)
    peak = max((to_number(i.get(k)) or 0.0 for i in items for k in keys), default=0.0)
    for item in items:
        item["pct"] = {k: (round((to_number(item.get(k)) or 0.0) / peak * 100, 1) if peak else 0.0) for k in keys}
    return items


def occupancy_shares(occupancy: Mapping) -> dict[str, float]:
    """Percent of houses per occupancy bucket from /houses/analytics/occupancy."""
    buckets = ("occupied", "available", "maintenance")
    counts = {b: to_number(occupancy.get(b)) or 0.0 for b in buckets}
    total = sum(counts.values())
    return {b: (round(counts[b] / total * 100, 1) if total else 0.0) for b in buckets}
