from datetime import date

from engine.deadlines import schedule_portfolio
from models import ClientSide, ContractCategory, ContractTerm, DeadlineKind, DeadlineRecord, UrgencyLevel
from reporting.calendar_export import (
    DEFAULT_SYNC_LIMIT,
    calendar_time_zone,
    select_for_sync,
    sync_limit,
    to_calendar_event,
)
from reporting.deadline_summary import bucket_by_date, deadlines_in_month, is_pressing, summarize_portfolio


def _record(d: date, urgency=UrgencyLevel.LOW, kind=DeadlineKind.EXPIRATION, **overrides) -> DeadlineRecord:
    base = dict(
        id=f"{kind.value}-c1-{d.year}",
        contract_id="c1",
        kind=kind,
        date=d,
        urgency=urgency,
        label="First term expiration (tacit renewal)",
        property_address="Via Roma 10, Milano",
        owner_name="Giuseppe Verdi",
        tenant_name="Mario Rossi",
    )
    base.update(overrides)
    return DeadlineRecord(**base)


def test_summarize_portfolio_counts():
    contracts = [
        ContractTerm(id="a", start_date=date(2023, 2, 1), annual_rent=12000),
        ContractTerm(id="b", start_date=date(2023, 2, 1), annual_rent=9600.5),
        ContractTerm(id="c", start_date=date(2023, 2, 1), annual_rent=50000, is_active=False),
    ]
    deadlines = [
        _record(date(2024, 10, 1), UrgencyLevel.CRITICAL),
        _record(date(2024, 11, 20), UrgencyLevel.HIGH),
        _record(date(2024, 12, 5), UrgencyLevel.MEDIUM),
        _record(date(2025, 1, 10), UrgencyLevel.LOW),
        _record(date(2025, 6, 1), UrgencyLevel.LOW),
    ]
    summary = summarize_portfolio(contracts, deadlines, date(2024, 11, 15), months=3)
    assert summary.active_contracts == 2
    assert summary.annual_revenue == 21600.5
    assert summary.pressing_deadlines == 2
    assert [(w.year, w.month, w.count) for w in summary.workload] == [
        (2024, 11, 1),
        (2024, 12, 1),
        (2025, 1, 1),
    ]


def test_summarize_empty_portfolio():
    summary = summarize_portfolio([], [], date(2024, 6, 1))
    assert summary.active_contracts == 0
    assert summary.pressing_deadlines == 0
    assert len(summary.workload) == 6
    assert all(w.count == 0 for w in summary.workload)


def test_bucket_by_date_groups_and_orders():
    a = _record(date(2025, 3, 1), kind=DeadlineKind.NOTICE_CUTOFF)
    b = _record(date(2024, 12, 1))
    c = _record(date(2025, 3, 1), kind=DeadlineKind.TAX_FILING)
    buckets = bucket_by_date([a, b, c])
    assert list(buckets.keys()) == [date(2024, 12, 1), date(2025, 3, 1)]
    assert buckets[date(2025, 3, 1)] == [a, c]


def test_deadlines_in_month():
    records = [_record(date(2025, 3, 1)), _record(date(2025, 3, 31)), _record(date(2024, 3, 15))]
    assert len(deadlines_in_month(records, 2025, 3)) == 2


def test_select_for_sync_keeps_today_and_future_only():
    today = date(2024, 6, 1)
    records = [_record(date(2024, 5, 31)), _record(date(2024, 6, 1)), _record(date(2024, 7, 1))]
    selected = select_for_sync(records, today)
    assert [r.date for r in selected] == [date(2024, 6, 1), date(2024, 7, 1)]
    assert select_for_sync(records, today, limit=1) == [records[1]]
    assert select_for_sync(records, today, limit=None) == records[1:]


def test_select_for_sync_on_scheduled_portfolio():
    now = date(2024, 6, 1)
    contracts = [
        ContractTerm(id=str(i), start_date=date(2020, 1, 1), category=ContractCategory.COMMERCIAL)
        for i in range(10)
    ]
    selected = select_for_sync(schedule_portfolio(contracts, now), now)
    assert len(selected) == DEFAULT_SYNC_LIMIT
    assert all(r.date >= now for r in selected)


def test_to_calendar_event_payload():
    record = _record(date(2027, 5, 1), UrgencyLevel.LOW, DeadlineKind.NOTICE_CUTOFF,
                     label="Last day to serve termination notice (6 months before expiration)")
    event = to_calendar_event(record, "UTC")
    assert event["summary"] == "[LEASE] Termination notice cutoff"
    assert event["location"] == "Via Roma 10, Milano"
    assert event["description"].startswith("Last day to serve termination notice")
    assert event["description"].endswith("Party: Giuseppe Verdi")
    assert event["start"] == {"date": "2027-05-01", "timeZone": "UTC"}
    assert event["end"] == event["start"]


def test_to_calendar_event_names_tenant_when_representing_tenant():
    record = _record(date(2027, 5, 1), client_side=ClientSide.TENANT)
    assert to_calendar_event(record, "UTC")["description"].endswith("Party: Mario Rossi")


def test_to_calendar_event_without_party():
    record = _record(date(2027, 5, 1), owner_name="", tenant_name="")
    assert to_calendar_event(record, "UTC")["description"] == record.label


def test_calendar_settings_from_environment(monkeypatch):
    monkeypatch.delenv("CALENDAR_TIME_ZONE", raising=False)
    monkeypatch.delenv("CALENDAR_SYNC_LIMIT", raising=False)
    assert calendar_time_zone() == "Europe/Rome"
    assert sync_limit() == DEFAULT_SYNC_LIMIT

    monkeypatch.setenv("CALENDAR_TIME_ZONE", "America/New_York")
    monkeypatch.setenv("CALENDAR_SYNC_LIMIT", "5")
    assert calendar_time_zone() == "America/New_York"
    assert sync_limit() == 5
    assert to_calendar_event(_record(date(2027, 5, 1)))["start"]["timeZone"] == "America/New_York"

    monkeypatch.setenv("CALENDAR_SYNC_LIMIT", "many")
    assert sync_limit() == DEFAULT_SYNC_LIMIT


def test_is_pressing_follows_urgency_rank():
    assert is_pressing(_record(date(2024, 6, 1), UrgencyLevel.CRITICAL))
    assert is_pressing(_record(date(2024, 6, 1), UrgencyLevel.HIGH))
    assert not is_pressing(_record(date(2024, 6, 1), UrgencyLevel.MEDIUM))
    assert not is_pressing(_record(date(2024, 6, 1), UrgencyLevel.LOW))
