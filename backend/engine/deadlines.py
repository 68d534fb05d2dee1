"""
Lease deadline engine: expiration, notice cutoff and tax filing dates per contract.

Every entry point takes `now` explicitly. The portfolio scheduler and the
single-contract preview share the same advancer/deriver pair.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional, Tuple, Union

from models import (
    ClientSide,
    ContractCategory,
    ContractPreview,
    ContractTerm,
    CursorInfo,
    DeadlineKind,
    DeadlineRecord,
    ExpirationCursor,
    UrgencyLevel,
    coerce_category,
)

_LOG = logging.getLogger(__name__)

# Upper bound on renewal cycles applied in one advance. Reaching it is not an
# error: the partially advanced cursor is returned.
MAX_RENEWAL_CYCLES = 50

# Flat filing window after each expiration. Kept constant pending product
# clarification of the statutory window.
TAX_FILING_OFFSET_DAYS = 30

DEFAULT_NOTICE_MONTHS = 6

HIGH_URGENCY_DAYS = 30
MEDIUM_URGENCY_DAYS = 60

# (initial_years, renewal_years); renewal 0 means the lease never renews.
CATEGORY_DURATIONS = {
    ContractCategory.FREE_MARKET: (4, 4),
    ContractCategory.RENT_CONTROLLED: (3, 2),
    ContractCategory.COMMERCIAL: (6, 6),
    ContractCategory.TRANSITORY: (1, 0),
    ContractCategory.STUDENT: (3, 2),
}
FALLBACK_DURATIONS = (4, 4)

DateLike = Union[date, datetime]


# --- Calendar arithmetic ---


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def add_years(d: date, years: int) -> date:
    """Add calendar years keeping month/day; Feb 29 clamps to Feb 28."""
    year = d.year + years
    day = min(d.day, calendar.monthrange(year, d.month)[1])
    return date(year, d.month, day)


def add_months(d: date, months: int) -> date:
    """Add (or subtract, when negative) calendar months, clamping to month end."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_between(deadline_date: DateLike, now: DateLike) -> int:
    """Whole days from now until deadline_date (negative once passed)."""
    return (_as_date(deadline_date) - _as_date(now)).days


# --- Components ---


def resolve_durations(category: Any) -> Tuple[int, int]:
    """Return (initial_years, renewal_years) for a category or free-text label."""
    cat = coerce_category(category)
    if cat is None or cat not in CATEGORY_DURATIONS:
        return FALLBACK_DURATIONS
    return CATEGORY_DURATIONS[cat]


def classify_urgency(deadline_date: DateLike, now: DateLike) -> UrgencyLevel:
    d = days_between(deadline_date, now)
    if d < 0:
        return UrgencyLevel.CRITICAL
    if d <= HIGH_URGENCY_DAYS:
        return UrgencyLevel.HIGH
    if d <= MEDIUM_URGENCY_DAYS:
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def advance_expiration(anchor: date, renewal_years: int, now: DateLike) -> ExpirationCursor:
    """
    Advance anchor by renewal_years until it is no longer before now.

    Non-renewing terms (renewal_years <= 0) are never advanced; if their anchor is
    already past they are reported as expired. At most MAX_RENEWAL_CYCLES cycles
    are applied; when the bound stops the loop the cursor is flagged as capped.
    """
    today = _as_date(now)
    if renewal_years <= 0:
        return ExpirationCursor(date=anchor, expired=anchor < today)

    cursor = anchor
    cycles = 0
    while cursor < today and cycles < MAX_RENEWAL_CYCLES:
        cursor = add_years(cursor, renewal_years)
        cycles += 1
    capped = cursor < today
    if capped:
        _LOG.warning(
            "renewal cycle cap reached anchor=%s renewal_years=%s cursor=%s",
            anchor, renewal_years, cursor,
        )
    return ExpirationCursor(date=cursor, renewal_count=cycles, capped=capped)


def notice_period_months(contract: ContractTerm) -> int:
    """Notice months for the side the user represents; 6 when unset or non-positive."""
    if contract.client_side == ClientSide.TENANT:
        months = contract.notice_months_tenant
    else:
        months = contract.notice_months_owner
    if not months or months <= 0:
        return DEFAULT_NOTICE_MONTHS
    return months


def _expiration_anchor(contract: ContractTerm, initial_years: int) -> date:
    if contract.first_expiration_date is not None:
        return contract.first_expiration_date
    return add_years(contract.start_date, initial_years)


def _expiration_label(cursor: ExpirationCursor, renewal_years: int, early: bool) -> str:
    if early:
        return "Early termination / release date"
    if renewal_years <= 0:
        if cursor.expired:
            return "Natural expiration (lease expired, no renewal)"
        return "Final natural expiration"
    if cursor.renewed:
        cycles = "cycle" if cursor.renewal_count == 1 else "cycles"
        return f"Term expiration (tacit renewal, {cursor.renewal_count} renewal {cycles} elapsed)"
    return "First term expiration (tacit renewal)"


def _tax_label(contract: ContractTerm) -> str:
    if contract.tax_exempt_regime:
        return "Renewal filing due: exemption notice (flat-rate regime, no registration tax)"
    return f"Renewal filing due: registration tax payment within {TAX_FILING_OFFSET_DAYS} days"


def _record(contract: ContractTerm, kind: DeadlineKind, when: date, label: str, now: DateLike) -> DeadlineRecord:
    return DeadlineRecord(
        id=f"{kind.value}-{contract.id}-{when.year}",
        contract_id=contract.id,
        kind=kind,
        date=when,
        urgency=classify_urgency(when, now),
        label=label,
        client_side=contract.client_side,
        property_address=contract.property_address,
        owner_name=contract.owner_name,
        tenant_name=contract.tenant_name,
    )


def _derive(contract: ContractTerm, now: DateLike) -> Tuple[Optional[ExpirationCursor], List[DeadlineRecord]]:
    if contract.start_date is None:
        _LOG.debug("contract not schedulable id=%s reason=start_date", contract.id)
        return None, []

    initial_years, renewal_years = resolve_durations(contract.category)
    early = contract.early_termination_date is not None
    months = notice_period_months(contract)
    try:
        if early:
            cursor = ExpirationCursor(date=contract.early_termination_date)
        else:
            anchor = _expiration_anchor(contract, initial_years)
            cursor = advance_expiration(anchor, renewal_years, now)
        expiration = cursor.date
        notice = add_months(expiration, -months)
        filing = expiration + timedelta(days=TAX_FILING_OFFSET_DAYS)
    except (ValueError, OverflowError) as e:
        # Only reachable at the edges of the supported date range (year 1 / 9999).
        _LOG.warning("contract not schedulable id=%s reason=date_range err=%s", contract.id, e)
        return None, []

    records = [
        _record(contract, DeadlineKind.EXPIRATION, expiration,
                _expiration_label(cursor, renewal_years, early), now),
        _record(contract, DeadlineKind.NOTICE_CUTOFF, notice,
                f"Last day to serve termination notice ({months} months before expiration)", now),
        _record(contract, DeadlineKind.TAX_FILING, filing, _tax_label(contract), now),
    ]
    return cursor, records


def derive_deadlines(contract: ContractTerm, now: DateLike) -> List[DeadlineRecord]:
    """Expiration, notice cutoff and tax filing records; empty when not schedulable."""
    _, records = _derive(contract, now)
    return records


def schedule_portfolio(contracts: Iterable[ContractTerm], now: DateLike) -> List[DeadlineRecord]:
    """All deadlines of active contracts, sorted by date (stable on contract order)."""
    deadlines: List[DeadlineRecord] = []
    for contract in contracts:
        if not contract.is_active:
            continue
        deadlines.extend(derive_deadlines(contract, now))
    deadlines.sort(key=lambda r: r.date)
    return deadlines


def preview_contract(contract: ContractTerm, now: DateLike) -> ContractPreview:
    """Preview one contract's next deadlines while it is being edited (ignores is_active)."""
    initial_years, renewal_years = resolve_durations(contract.category)
    cursor, records = _derive(contract, now)
    info = None
    if cursor is not None:
        info = CursorInfo(
            date=cursor.date,
            renewal_count=cursor.renewal_count,
            renewed=cursor.renewed,
            expired=cursor.expired,
            capped=cursor.capped,
            early_termination=contract.early_termination_date is not None,
        )
    return ContractPreview(
        contract_id=contract.id,
        schedulable=cursor is not None,
        initial_term_years=initial_years,
        renewal_term_years=renewal_years,
        notice_period_months=notice_period_months(contract),
        cursor=info,
        deadlines=records,
    )
