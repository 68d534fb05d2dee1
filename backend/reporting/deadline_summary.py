"""
Dashboard and calendar-grid views over a scheduled deadline list.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import Iterable, List

from models import (
    URGENCY_RANK,
    ContractTerm,
    DeadlineRecord,
    MonthWorkload,
    PortfolioSummary,
    UrgencyLevel,
)

# HIGH and anything more severe counts as pressing on the dashboard.
PRESSING_FROM = UrgencyLevel.HIGH


def is_pressing(record: DeadlineRecord) -> bool:
    return URGENCY_RANK[record.urgency] >= URGENCY_RANK[PRESSING_FROM]


def _month_sequence(start: date, months: int) -> list[tuple[int, int]]:
    """(year, month) pairs for `months` calendar months starting at start's month."""
    out = []
    year, month = start.year, start.month
    for _ in range(max(0, months)):
        out.append((year, month))
        month += 1
        if month > 12:
            month = 1
            year += 1
    return out


def summarize_portfolio(
    contracts: Iterable[ContractTerm],
    deadlines: List[DeadlineRecord],
    today: date,
    months: int = 6,
) -> PortfolioSummary:
    """
    Headline numbers for the dashboard: active contracts, their annual rent,
    pressing (HIGH or CRITICAL) deadlines and the per-month deadline workload
    for the next `months` calendar months.
    """
    active = [c for c in contracts if c.is_active]
    pressing = sum(1 for d in deadlines if is_pressing(d))
    workload = [
        MonthWorkload(
            year=year,
            month=month,
            count=len(deadlines_in_month(deadlines, year, month)),
        )
        for year, month in _month_sequence(today, months)
    ]
    return PortfolioSummary(
        active_contracts=len(active),
        annual_revenue=round(sum(c.annual_rent for c in active), 2),
        pressing_deadlines=pressing,
        workload=workload,
    )


def bucket_by_date(deadlines: Iterable[DeadlineRecord]) -> "OrderedDict[date, List[DeadlineRecord]]":
    """Group records by date for the calendar grid, dates ascending."""
    buckets: dict[date, List[DeadlineRecord]] = {}
    for record in deadlines:
        buckets.setdefault(record.date, []).append(record)
    return OrderedDict(sorted(buckets.items(), key=lambda item: item[0]))


def deadlines_in_month(deadlines: Iterable[DeadlineRecord], year: int, month: int) -> List[DeadlineRecord]:
    return [d for d in deadlines if d.date.year == year and d.date.month == month]
