"""
Event payloads for third-party calendar sync.

Only builds the payloads; the sync transport (OAuth, API calls) lives with the
calendar client.
"""
from __future__ import annotations

import os
from datetime import date
from typing import Any, Iterable, List, Optional

from models import ClientSide, DeadlineKind, DeadlineRecord

DEFAULT_TIME_ZONE = "Europe/Rome"
DEFAULT_SYNC_LIMIT = 20
EVENT_PREFIX = "[LEASE]"

_KIND_TITLES = {
    DeadlineKind.EXPIRATION: "Lease expiration",
    DeadlineKind.NOTICE_CUTOFF: "Termination notice cutoff",
    DeadlineKind.TAX_FILING: "Registration filing",
}


def calendar_time_zone() -> str:
    return (os.environ.get("CALENDAR_TIME_ZONE") or "").strip() or DEFAULT_TIME_ZONE


def sync_limit() -> int:
    raw = (os.environ.get("CALENDAR_SYNC_LIMIT") or "").strip()
    try:
        return max(0, int(raw)) if raw else DEFAULT_SYNC_LIMIT
    except ValueError:
        return DEFAULT_SYNC_LIMIT


def select_for_sync(
    deadlines: Iterable[DeadlineRecord],
    today: date,
    limit: Optional[int] = DEFAULT_SYNC_LIMIT,
) -> List[DeadlineRecord]:
    """Future-dated records (date >= today) in their given order, at most `limit`."""
    upcoming = [d for d in deadlines if d.date >= today]
    if limit is None:
        return upcoming
    return upcoming[:limit]


def _counterparty(record: DeadlineRecord) -> str:
    # Name the party the user represents first, falling back to the other one.
    if record.client_side == ClientSide.TENANT:
        return record.tenant_name or record.owner_name
    return record.owner_name or record.tenant_name


def to_calendar_event(record: DeadlineRecord, time_zone: Optional[str] = None) -> dict[str, Any]:
    """All-day event with summary, location and description for one record."""
    tz = time_zone or calendar_time_zone()
    day = record.date.isoformat()
    description = record.label
    party = _counterparty(record)
    if party:
        description = f"{description}\nParty: {party}"
    return {
        "summary": f"{EVENT_PREFIX} {_KIND_TITLES[record.kind]}",
        "location": record.property_address,
        "description": description,
        "start": {"date": day, "timeZone": tz},
        "end": {"date": day, "timeZone": tz},
    }
