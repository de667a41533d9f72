from datetime import date, datetime, time, timezone

from jarops.models.domain import (
    CustomerScheduleRecord,
    DeliveryAgent,
    DeliveryOutcome,
    DeliveryRecord,
    GpsLocation,
    Route,
)
from jarops.services.scheduling import latest_locations, operational_alerts, severity_counts

WEDNESDAY = date(2025, 1, 8)
TUESDAY = date(2025, 1, 7)

ROUTES = [
    Route(id="R1", name="North", assigned_agent_id="A1"),
    Route(id="R2", name="South", assigned_agent_id="A2"),
    Route(id="R3", name="East", assigned_agent_id="A1"),
    Route(id="R4", name="West"),
]
AGENTS = [
    DeliveryAgent(id="A1", name="Ravi", mobile="900"),
    DeliveryAgent(id="A2", name="Sunil", mobile="901", is_active=False),
    DeliveryAgent(id="A3", name="Spare"),
]
CUSTOMERS = [CustomerScheduleRecord(customer_id="C1", route_id="R1", policy=None, name="Asha")]


def _delivery(did, status, agent="A1", on=WEDNESDAY, hour=9, minute=0, gps=None, notes=None, aware=True):
    created = datetime(on.year, on.month, on.day, hour, minute, tzinfo=timezone.utc if aware else None)
    return DeliveryRecord(
        id=did,
        customer_id="C1",
        agent_id=agent,
        date=on,
        delivered_qty=1,
        returned_qty=0,
        status=status,
        notes=notes,
        gps=gps,
        created_at=created,
    )


LEDGER = [
    _delivery("P1", DeliveryOutcome.PARTIAL, minute=30),
    _delivery("F1", DeliveryOutcome.NOT_DELIVERED),
    _delivery("OLD", DeliveryOutcome.NOT_DELIVERED, agent="A2", on=TUESDAY),
]


def _alerts(current, cutoff=time(10, 0)):
    return operational_alerts(
        LEDGER,
        ROUTES,
        AGENTS,
        CUSTOMERS,
        WEDNESDAY,
        current_time=current,
        inactive_after=cutoff,
        raised_at=datetime(2025, 1, 8, 6, tzinfo=timezone.utc),
    )


def test_alerts_are_ordered_by_severity():
    alerts = _alerts(time(11, 0))

    assert [alert["type"] for alert in alerts] == ["failed_delivery", "inactive_delivery_boy", "partial_delivery"]
    assert alerts[0]["message"] == "Delivery failed for Asha (Boy: Ravi)"
    assert alerts[0]["metadata"]["reason"] == "No reason provided"
    assert alerts[1]["metadata"] == {"delivery_boy_id": "A2", "mobile": "901"}
    assert severity_counts(alerts) == {"high": 1, "medium": 1, "low": 1}


def test_idle_agent_alert_waits_for_the_cutoff():
    early = _alerts(time(9, 59))
    assert all(alert["type"] != "inactive_delivery_boy" for alert in early)
    assert severity_counts(early)["medium"] == 0

    early_cutoff = _alerts(time(9, 0), cutoff=time(8, 0))
    assert [alert["metadata"].get("delivery_boy_id") for alert in early_cutoff if alert["severity"] == "medium"] == ["A2"]


def test_agent_with_two_routes_is_reported_once():
    alerts = operational_alerts([], ROUTES, AGENTS, CUSTOMERS, WEDNESDAY, current_time=time(12, 0))

    assert [alert["metadata"]["delivery_boy_id"] for alert in alerts] == ["A1", "A2"]
    assert alerts[0]["timestamp"] is None


def test_no_alerts_for_a_quiet_morning():
    assert operational_alerts([], ROUTES, AGENTS, CUSTOMERS, WEDNESDAY, current_time=time(7, 0)) == []
    assert severity_counts([]) == {"high": 0, "medium": 0, "low": 0}


def test_latest_locations_pick_newest_gps_attempt_per_agent():
    ledger = [
        _delivery("G1", DeliveryOutcome.DELIVERED, hour=9, gps=GpsLocation(18.1, 73.1)),
        _delivery("G2", DeliveryOutcome.PARTIAL, hour=10, gps=GpsLocation(18.2, 73.2)),
        _delivery("NOGPS", DeliveryOutcome.DELIVERED, hour=11),
        _delivery("G3", DeliveryOutcome.DELIVERED, agent="A9", hour=8, gps=GpsLocation(18.3, 73.3)),
        _delivery("YESTERDAY", DeliveryOutcome.DELIVERED, agent="A2", on=TUESDAY, gps=GpsLocation(18.4, 73.4)),
    ]

    rows = latest_locations(ledger, AGENTS, WEDNESDAY)

    assert [row["delivery_id"] for row in rows] == ["G2", "G3"]
    assert rows[0]["last_location"]["lat"] == 18.2
    assert rows[0]["last_action"] == "partial"
    assert rows[0]["delivery_boy"]["mobile"] == "900"
    assert rows[1]["delivery_boy"]["name"] == "Unknown"


def test_latest_locations_tolerate_naive_and_aware_creation_times():
    ledger = [
        _delivery("AWARE", DeliveryOutcome.DELIVERED, hour=9, gps=GpsLocation(18.1, 73.1)),
        _delivery("NAIVE", DeliveryOutcome.DELIVERED, hour=10, gps=GpsLocation(18.2, 73.2), aware=False),
    ]

    rows = latest_locations(ledger, AGENTS, WEDNESDAY)

    assert len(rows) == 1
    assert rows[0]["delivery_id"] in {"AWARE", "NAIVE"}
