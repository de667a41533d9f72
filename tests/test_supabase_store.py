from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from jarops.data import AdapterConfig, InMemoryDirectory, InMemoryLedger, SupabaseDirectory, SupabaseLedger
from jarops.data.supabase_store import format_address, parse_delivery_row, parse_policy, parse_route_row, parse_weekday
from jarops.errors import CollaboratorUnavailableError
from jarops.models.domain import CustomerScheduleRecord, DeliveryOutcome, DeliveryRecord, ScheduleKind, Weekday
from jarops.services.scheduling import AnomalyLog

CONFIG = AdapterConfig(timezone="Asia/Kolkata", page_size=2)


class DummyQuery:
    """Records the PostgREST builder calls and serves ``range`` slices of fixed rows."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []
        self._slice = slice(None)
        client.queries.append(self)

    def _chain(self, name, *args, **kwargs):
        self.calls.append((name, args))
        return self

    def select(self, *args, **kwargs):
        return self._chain("select", *args)

    def eq(self, *args):
        return self._chain("eq", *args)

    def in_(self, *args):
        return self._chain("in_", *args)

    def gte(self, *args):
        return self._chain("gte", *args)

    def lte(self, *args):
        return self._chain("lte", *args)

    def order(self, *args, **kwargs):
        return self._chain("order", *args)

    def range(self, start, end):
        self._slice = slice(start, end + 1)
        return self._chain("range", start, end)

    def execute(self):
        if self.client.error is not None:
            raise self.client.error
        return SimpleNamespace(data=self.client.tables.get(self.table, [])[self._slice])


class DummyClient:
    def __init__(self, tables=None, error=None):
        self.tables = tables or {}
        self.error = error
        self.queries = []

    def table(self, name):
        return DummyQuery(self, name)


def _customer_row(cid, **extra):
    row = {"customer_id": cid, "route_id": "R1", "schedule_type": "daily", "is_active": True}
    row.update(extra)
    return row


def test_directory_reads_every_page():
    rows = [_customer_row(f"C{i}") for i in range(5)]
    client = DummyClient({"customer_profiles": rows})

    customers = SupabaseDirectory(client, CONFIG).fetch_active_customers()

    assert [customer.customer_id for customer in customers] == ["C0", "C1", "C2", "C3", "C4"]
    assert [query.calls[-1] for query in client.queries] == [("range", (0, 1)), ("range", (2, 3)), ("range", (4, 5))]
    assert ("eq", ("is_active", True)) in client.queries[0].calls


def test_malformed_rows_are_skipped_and_counted():
    rows = [
        _customer_row("C1"),
        _customer_row(None),
        _customer_row("C3", schedule_type="weekly"),
        _customer_row("C4", schedule_type="custom", custom_days=["Mon", "Funday"]),
    ]
    anomalies = AnomalyLog()
    directory = SupabaseDirectory(DummyClient({"customer_profiles": rows}), AdapterConfig(), anomalies)

    customers = directory.fetch_customers()

    assert [customer.customer_id for customer in customers] == ["C1"]
    assert anomalies.count("malformed_row") == 3


def test_store_failure_raises_collaborator_error():
    ledger = SupabaseLedger(DummyClient(error=RuntimeError("connection refused")), CONFIG)

    with pytest.raises(CollaboratorUnavailableError) as excinfo:
        ledger.fetch_deliveries(date(2025, 1, 8), date(2025, 1, 8))

    assert excinfo.value.collaborator == "ledger"
    assert "connection refused" in excinfo.value.reason


def test_ledger_filters_by_local_day_bounds():
    client = DummyClient({"deliveries": []})

    SupabaseLedger(client, CONFIG).fetch_deliveries(
        date(2025, 1, 6),
        date(2025, 1, 8),
        agent_id="A1",
        statuses=[DeliveryOutcome.NOT_DELIVERED],
    )

    calls = client.queries[0].calls
    assert ("gte", ("date", "2025-01-06T00:00:00+05:30")) in calls
    assert ("lte", ("date", "2025-01-08T23:59:59.999000+05:30")) in calls
    assert ("eq", ("delivery_boy_id", "A1")) in calls
    assert ("in_", ("status", ["not_delivered"])) in calls


def test_ledger_batches_customer_filters():
    client = DummyClient({"deliveries": []})
    customer_ids = [f"C{i:03d}" for i in range(250)]

    SupabaseLedger(client, AdapterConfig()).fetch_deliveries(None, None, customer_ids=customer_ids)

    batches = [args[1] for query in client.queries for name, args in query.calls if name == "in_"]
    assert [len(batch) for batch in batches] == [100, 100, 50]
    assert not any(name == "gte" for query in client.queries for name, _ in query.calls)


def test_delivery_timestamps_map_to_local_business_day():
    utc_row = {
        "id": "D1",
        "customer_id": "C1",
        "delivery_boy_id": "A1",
        "date": "2025-01-07T20:00:00Z",
        "delivered_qty": 2,
        "returned_qty": 1,
        "status": "delivered",
        "created_at": "2025-01-07T20:00:05+00:00",
    }
    naive_row = dict(utc_row, id="D2", date="2025-01-08T00:30:00")

    assert parse_delivery_row(utc_row, CONFIG).date == date(2025, 1, 8)
    assert parse_delivery_row(naive_row, CONFIG).date == date(2025, 1, 8)
    assert parse_delivery_row(utc_row, AdapterConfig(timezone="UTC")).date == date(2025, 1, 7)


def test_delivery_rows_with_bad_values_are_rejected():
    base = {"id": "D1", "customer_id": "C1", "date": "2025-01-08", "status": "delivered"}

    with pytest.raises(ValueError):
        parse_delivery_row(dict(base, status="lost"), CONFIG)
    with pytest.raises(ValueError):
        parse_delivery_row(dict(base, delivered_qty=-1), CONFIG)
    with pytest.raises(ValueError):
        parse_delivery_row(dict(base, date=None), CONFIG)


def test_parse_policy_reads_custom_days_and_reference():
    policy = parse_policy(
        {"schedule_type": "custom", "custom_days": ["Monday", "wed"], "schedule_reference_date": None}
    )
    assert policy.kind is ScheduleKind.CUSTOM
    assert policy.custom_days == frozenset({Weekday.MON, Weekday.WED})

    alternate = parse_policy({"schedule_type": "alternate", "schedule_reference_date": "2025-01-06"})
    assert alternate.reference_date == date(2025, 1, 6)

    assert parse_policy({}).kind is ScheduleKind.DAILY


def test_parse_weekday_rejects_unknown_names():
    assert parse_weekday(" FRI ") is Weekday.FRI
    with pytest.raises(ValueError):
        parse_weekday("Funday")


def test_format_address_joins_known_parts():
    address = {"flat": "12B", "building": "Lotus", "area": "", "city": "Pune", "pincode": 411001}
    assert format_address(address) == "12B, Lotus, Pune, 411001"
    assert format_address("  ") is None


def test_route_name_falls_back_to_id():
    route = parse_route_row({"id": "R9", "assigned_delivery_boy": "A1", "areas": ["Baner"]})
    assert route.name == "R9"
    assert route.areas == ("Baner",)


def test_in_memory_ledger_notifies_subscribers_and_stores_record():
    ledger = InMemoryLedger()
    seen = []
    ledger.subscribe(seen.append)
    record = DeliveryRecord(
        id="D1",
        customer_id="C1",
        agent_id="A1",
        date=date(2025, 1, 8),
        delivered_qty=3,
        returned_qty=1,
        status=DeliveryOutcome.DELIVERED,
    )

    ledger.on_delivery_completed(record)

    assert seen == [record]
    assert ledger.fetch_deliveries(date(2025, 1, 8), date(2025, 1, 8), customer_ids=["C1"]) == [record]
    assert ledger.fetch_deliveries(date(2025, 1, 9), None) == []


def test_in_memory_directory_filters_active_customers_by_route():
    directory = InMemoryDirectory(
        customers=[
            CustomerScheduleRecord(customer_id="C1", route_id="R1", policy=None),
            CustomerScheduleRecord(customer_id="C2", route_id="R2", policy=None),
            CustomerScheduleRecord(customer_id="C3", route_id="R1", policy=None, is_active=False),
        ]
    )

    assert [c.customer_id for c in directory.fetch_active_customers(["R1"])] == ["C1"]
    assert len(directory.fetch_customers()) == 3
    assert directory.get_agent("A1") is None


def test_creation_times_are_normalised_to_business_timezone():
    base = {"id": "D1", "customer_id": "C1", "date": "2025-01-08T09:00:00+05:30", "status": "delivered"}

    naive = parse_delivery_row(dict(base, created_at="2025-01-08T09:00:00"), CONFIG)
    aware = parse_delivery_row(dict(base, created_at="2025-01-08T03:30:00+00:00"), CONFIG)

    assert naive.created_at.utcoffset() == aware.created_at.utcoffset() == timedelta(hours=5, minutes=30)
    assert naive.created_at == aware.created_at
    assert parse_delivery_row(base, CONFIG).created_at is None
