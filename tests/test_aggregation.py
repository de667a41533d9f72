from datetime import date

import pytest

from jarops.models.domain import (
    CustomerScheduleRecord,
    DeliveryAgent,
    DeliveryOutcome,
    DeliveryRecord,
    Route,
    SchedulePolicy,
    ScheduleKind,
    Weekday,
)
from jarops.services.scheduling import (
    AnomalyLog,
    aggregate_by_agent,
    aggregate_by_route,
    count_active_agents,
    group_tasks_by_route,
    reconcile,
    summarize_day,
    task_stats,
)
from jarops.services.scheduling.aggregation import percentage, round_half_up

WEDNESDAY = date(2025, 1, 8)

ROUTES = [
    Route(id="R1", name="North", assigned_agent_id="A1"),
    Route(id="R2", name="South", assigned_agent_id="A2"),
    Route(id="R3", name="East"),
]
AGENTS = [DeliveryAgent(id="A1", name="Ravi"), DeliveryAgent(id="A2", name="Sunil"), DeliveryAgent(id="A3", name="Idle")]


def _customer(cid: str, route_id: str | None, policy: SchedulePolicy | None = None) -> CustomerScheduleRecord:
    return CustomerScheduleRecord(customer_id=cid, route_id=route_id, policy=policy)


def _delivery(cid: str, status: DeliveryOutcome, on: date = WEDNESDAY) -> DeliveryRecord:
    return DeliveryRecord(
        id=f"D-{cid}-{on.isoformat()}",
        customer_id=cid,
        agent_id="A1",
        date=on,
        delivered_qty=2,
        returned_qty=1,
        status=status,
    )


def _route_scenario():
    """Ten due customers on North, six of them attempted."""
    customers = [_customer(f"N{i}", "R1") for i in range(10)]
    outcomes = [
        DeliveryOutcome.DELIVERED,
        DeliveryOutcome.DELIVERED,
        DeliveryOutcome.DELIVERED,
        DeliveryOutcome.PARTIAL,
        DeliveryOutcome.PARTIAL,
        DeliveryOutcome.NOT_DELIVERED,
    ]
    deliveries = [_delivery(f"N{i}", outcome) for i, outcome in enumerate(outcomes)]
    return customers, deliveries


def test_route_counts_with_mixed_outcomes():
    customers, deliveries = _route_scenario()
    tasks = reconcile(customers, deliveries, WEDNESDAY, ROUTES)

    rows = aggregate_by_route(tasks, ROUTES)

    assert len(rows) == 1
    north = rows[0]
    assert north["name"] == "North"
    assert north["scheduled"] == 10
    assert north["completed"] == 6
    assert north["pending"] == 4
    assert north["percentage"] == 60
    assert north["failed"] == 1
    assert north["delivered"] == 3
    assert north["partial"] == 2


def test_route_scheduled_counts_are_conserved_with_unassigned_bucket():
    mwf = SchedulePolicy(kind=ScheduleKind.CUSTOM, custom_days=frozenset({Weekday.MON}))
    customers = [
        _customer("C1", "R1"),
        _customer("C2", "R2"),
        _customer("C3", "R2"),
        _customer("C4", None),
        _customer("C5", "MISSING"),
        _customer("C6", "R1", policy=mwf),
    ]
    tasks = reconcile(customers, [], WEDNESDAY, ROUTES)

    rows = aggregate_by_route(tasks, ROUTES)
    unassigned = [row for row in rows if row["route_id"] is None]

    assert sum(row["scheduled"] for row in rows) == len(tasks) == 5
    assert unassigned[0]["name"] == "Unassigned"
    assert unassigned[0]["scheduled"] == 2


def test_empty_routes_are_dropped_unless_requested():
    tasks = reconcile([_customer("C1", "R1")], [], WEDNESDAY, ROUTES)

    default_rows = aggregate_by_route(tasks, ROUTES)
    zero_rows = aggregate_by_route(tasks, ROUTES, include_empty=True)

    assert [row["route_id"] for row in default_rows] == ["R1"]
    east = next(row for row in zero_rows if row["route_id"] == "R3")
    assert east["scheduled"] == 0
    assert east["percentage"] == 0


def test_percentages_stay_within_bounds():
    customers, deliveries = _route_scenario()
    customers += [_customer("S1", "R2"), _customer("S2", "R2")]
    deliveries += [_delivery("S1", DeliveryOutcome.DELIVERED), _delivery("S2", DeliveryOutcome.NOT_DELIVERED)]
    tasks = reconcile(customers, deliveries, WEDNESDAY, ROUTES)

    for row in aggregate_by_route(tasks, ROUTES, include_empty=True):
        assert 0 <= row["percentage"] <= 100
        if row["scheduled"] == 0:
            assert row["percentage"] == 0


def test_routes_sorted_by_most_pending():
    customers = [_customer("C1", "R1"), _customer("C2", "R2"), _customer("C3", "R2")]
    tasks = reconcile(customers, [], WEDNESDAY, ROUTES)

    assert [row["route_id"] for row in aggregate_by_route(tasks, ROUTES)] == ["R2", "R1"]


@pytest.mark.parametrize(
    ("part", "whole", "expected"),
    [(1, 8, 13), (5, 8, 63), (1, 3, 33), (2, 3, 67), (0, 0, 0), (4, 4, 100)],
)
def test_percentage_rounds_half_up(part, whole, expected):
    assert percentage(part, whole) == expected


def test_round_half_up_differs_from_bankers_rounding():
    assert round(2.5) == 2
    assert round_half_up(2.5) == 3


def test_group_tasks_by_route_keeps_route_order_and_unassigned_last():
    customers = [_customer("C1", None), _customer("C2", "R2"), _customer("C3", "R1")]
    tasks = reconcile(customers, [], WEDNESDAY, ROUTES)

    groups = group_tasks_by_route(tasks, ROUTES)

    assert [group.name for group in groups] == ["North", "South", "Unassigned"]


def test_aggregate_by_agent_follows_route_assignment():
    customers = [_customer("C1", "R1"), _customer("C2", "R1"), _customer("C3", "R2"), _customer("C4", "R3")]
    deliveries = [_delivery("C1", DeliveryOutcome.DELIVERED)]
    tasks = reconcile(customers, deliveries, WEDNESDAY, ROUTES)

    rows = {row["agent_id"]: row for row in aggregate_by_agent(tasks, AGENTS)}

    assert rows["A1"]["name"] == "Ravi"
    assert rows["A1"]["scheduled"] == 2
    assert rows["A1"]["completed"] == 1
    assert rows["A1"]["percentage"] == 50
    assert rows["A2"]["pending"] == 1
    assert rows[None]["name"] == "Unassigned"
    assert "A3" not in rows

    with_idle = {row["agent_id"]: row for row in aggregate_by_agent(tasks, AGENTS, include_empty=True)}
    assert with_idle["A3"]["scheduled"] == 0


def test_count_active_agents_only_counts_routes_with_work():
    tasks = reconcile([_customer("C1", "R1"), _customer("C2", "R3")], [], WEDNESDAY, ROUTES)
    assert count_active_agents(tasks) == 1


def test_summarize_day_counts_failed_attempts_as_completed():
    customers = [_customer("C1", "R1"), _customer("C2", "R1"), _customer("C3", "R1")]
    deliveries = [
        _delivery("C1", DeliveryOutcome.DELIVERED),
        _delivery("C2", DeliveryOutcome.NOT_DELIVERED),
        _delivery("STRAY", DeliveryOutcome.DELIVERED),
    ]
    tasks = reconcile(customers, deliveries, WEDNESDAY, ROUTES)

    summary = summarize_day(tasks, deliveries, WEDNESDAY)

    assert summary["total_scheduled"] == 3
    assert summary["completed"] == 2
    assert summary["failed"] == 1
    assert summary["delivered"] == 1
    assert summary["pending"] == 1
    assert summary["completion_rate"] == 66.7
    assert summary["total_attempted"] == 3
    assert summary["unscheduled_attempts"] == 1


def test_task_stats_for_empty_list():
    assert task_stats([]) == {"total": 0, "completed": 0, "pending": 0, "completion_rate": 0.0}


def test_route_aggregation_completes_around_bad_customer_records():
    anomalies = AnomalyLog()
    customers = [_customer("C1", "R1"), None, _customer("", "R1"), _customer("C2", "GONE"), _customer("C3", "R2")]
    deliveries = [_delivery("C1", DeliveryOutcome.DELIVERED), _delivery("C3", DeliveryOutcome.PARTIAL)]

    tasks = reconcile(customers, deliveries, WEDNESDAY, ROUTES, anomalies)
    rows = {row["route_id"]: row for row in aggregate_by_route(tasks, ROUTES)}

    assert anomalies.count("missing_customer") == 2
    assert anomalies.count("orphaned_route") == 1
    assert sum(row["scheduled"] for row in rows.values()) == 3
    assert rows["R1"]["completed"] == 1
    assert rows["R2"]["partial"] == 1
    assert rows[None]["pending"] == 1
