"""Route, agent and day level aggregation of tasks and ledger history."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence

from ...models.domain import (
    CustomerScheduleRecord,
    DeliveryAgent,
    DeliveryOutcome,
    DeliveryRecord,
    Route,
    ScheduledTask,
    TaskStatus,
)
from .anomalies import MISSING_CUSTOMER, MALFORMED_ROW, ORPHANED_ROUTE, AnomalyLog
from .reconciliation import date_range

UNASSIGNED_LABEL = "Unassigned"
UNKNOWN_AGENT_LABEL = "Unknown"
FEEDBACK_LIMIT = 5


def round_half_up(value: float) -> int:
    """Integer rounding with .5 going up, unlike the built-in banker's ``round``."""
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def success_rate(delivered: int, total: int, digits: int = 2) -> float:
    if total <= 0:
        return 0.0
    return round(delivered / total * 100, digits)


def _ratio(value: float, count: int, digits: int) -> float:
    if count <= 0:
        return 0.0
    return round(value / count, digits)


def _created_key(record: DeliveryRecord) -> tuple:
    # Epoch seconds, so naive and aware creation times stay comparable.
    created = record.created_at
    return (created is not None, created.timestamp() if created else 0.0)


# ---------------------------------------------------------------------------
# Reconciled tasks
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _TaskTally:
    scheduled: int = 0
    delivered: int = 0
    partial: int = 0
    failed: int = 0
    pending: int = 0

    def add(self, task: ScheduledTask) -> None:
        self.scheduled += 1
        if task.status is TaskStatus.PENDING:
            self.pending += 1
        elif task.status is TaskStatus.DELIVERED:
            self.delivered += 1
        elif task.status is TaskStatus.PARTIAL:
            self.partial += 1
        elif task.status is TaskStatus.NOT_DELIVERED:
            self.failed += 1

    @property
    def completed(self) -> int:
        # A failed attempt still closes the task for the day.
        return self.delivered + self.partial + self.failed

    def as_dict(self) -> dict:
        return {
            "scheduled": self.scheduled,
            "completed": self.completed,
            "delivered": self.delivered,
            "partial": self.partial,
            "failed": self.failed,
            "pending": self.pending,
            "percentage": percentage(self.completed, self.scheduled),
        }


@dataclass(slots=True)
class RouteGroup:
    route: Optional[Route]
    tasks: List[ScheduledTask] = field(default_factory=list)

    @property
    def route_id(self) -> Optional[str]:
        return self.route.id if self.route else None

    @property
    def name(self) -> str:
        return self.route.name if self.route else UNASSIGNED_LABEL


def group_tasks_by_route(
    tasks: Iterable[ScheduledTask],
    routes: Iterable[Route] = (),
    include_empty: bool = False,
) -> List[RouteGroup]:
    """Bucket tasks per route, keeping route order and an ``Unassigned`` tail bucket."""
    groups: Dict[Optional[str], RouteGroup] = {route.id: RouteGroup(route) for route in routes}
    for task in tasks:
        key = task.route.id if task.route else None
        group = groups.get(key)
        if group is None:
            group = groups[key] = RouteGroup(task.route)
        group.tasks.append(task)

    ordered = [group for key, group in groups.items() if key is not None]
    if None in groups:
        ordered.append(groups[None])
    if include_empty:
        return ordered
    return [group for group in ordered if group.tasks]


def aggregate_by_route(
    tasks: Iterable[ScheduledTask],
    routes: Iterable[Route] = (),
    include_empty: bool = False,
) -> List[dict]:
    """Per-route scheduled/completed/pending counts, most pending first."""
    rows: List[dict] = []
    for group in group_tasks_by_route(tasks, routes, include_empty):
        tally = _TaskTally()
        for task in group.tasks:
            tally.add(task)
        rows.append(
            {
                "route_id": group.route_id,
                "name": group.name,
                "assigned_agent_id": group.route.assigned_agent_id if group.route else None,
                **tally.as_dict(),
            }
        )
    return sorted(rows, key=lambda row: (-row["pending"], -row["scheduled"], row["name"].lower()))


def aggregate_by_agent(
    tasks: Iterable[ScheduledTask],
    agents: Iterable[DeliveryAgent] = (),
    include_empty: bool = False,
) -> List[dict]:
    """Per-agent counters, keyed through each task's route assignment."""
    agent_map = {agent.id: agent for agent in agents}
    tallies: Dict[Optional[str], _TaskTally] = {}
    if include_empty:
        for agent_id in agent_map:
            tallies[agent_id] = _TaskTally()
    for task in tasks:
        agent_id = task.route.assigned_agent_id if task.route else None
        tallies.setdefault(agent_id, _TaskTally()).add(task)

    rows: List[dict] = []
    for agent_id, tally in tallies.items():
        if agent_id is None:
            name = UNASSIGNED_LABEL
        else:
            agent = agent_map.get(agent_id)
            name = agent.name if agent else UNKNOWN_AGENT_LABEL
        rows.append({"agent_id": agent_id, "name": name, **tally.as_dict()})
    return sorted(rows, key=lambda row: (-row["pending"], -row["scheduled"], row["name"].lower()))


def count_active_agents(tasks: Iterable[ScheduledTask]) -> int:
    """Agents assigned to a route that has scheduled work."""
    return len({task.route.assigned_agent_id for task in tasks if task.route and task.route.assigned_agent_id})


def task_stats(tasks: Sequence[ScheduledTask]) -> dict:
    total = len(tasks)
    pending = sum(1 for task in tasks if task.is_pending)
    completed = total - pending
    return {
        "total": total,
        "completed": completed,
        "pending": pending,
        "completion_rate": success_rate(completed, total, digits=1),
    }


def summarize_day(
    tasks: Sequence[ScheduledTask],
    deliveries: Iterable[DeliveryRecord],
    target_date: date,
) -> dict:
    """Scalar overview of one day: plan, attempts against it, and stray attempts."""
    tally = _TaskTally()
    for task in tasks:
        tally.add(task)
    due_ids = {task.customer.customer_id for task in tasks}
    attempts = [record for record in deliveries if record.date == target_date]
    unscheduled = sum(1 for record in attempts if record.customer_id not in due_ids)
    return {
        "total_scheduled": tally.scheduled,
        "completed": tally.completed,
        "delivered": tally.delivered,
        "partial": tally.partial,
        "failed": tally.failed,
        "pending": tally.pending,
        "completion_rate": success_rate(tally.completed, tally.scheduled, digits=1),
        "total_attempted": len(attempts),
        "unscheduled_attempts": unscheduled,
    }


# ---------------------------------------------------------------------------
# Ledger history
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _LedgerTally:
    total: int = 0
    delivered: int = 0
    partial: int = 0
    failed: int = 0
    delivered_qty: int = 0
    returned_qty: int = 0
    active_days: set = field(default_factory=set)

    def add(self, record: DeliveryRecord) -> None:
        self.total += 1
        if record.status is DeliveryOutcome.DELIVERED:
            self.delivered += 1
        elif record.status is DeliveryOutcome.PARTIAL:
            self.partial += 1
        elif record.status is DeliveryOutcome.NOT_DELIVERED:
            self.failed += 1
        self.delivered_qty += record.delivered_qty
        self.returned_qty += record.returned_qty
        self.active_days.add(record.date)

    def as_dict(self) -> dict:
        return {
            "total_deliveries": self.total,
            "delivered_count": self.delivered,
            "partial_count": self.partial,
            "failed_count": self.failed,
            "total_delivered_qty": self.delivered_qty,
            "total_returned_qty": self.returned_qty,
            "net_jars": self.delivered_qty - self.returned_qty,
            "success_rate": success_rate(self.delivered, self.total),
        }


def aggregate_by_day(
    deliveries: Iterable[DeliveryRecord],
    date_from: date,
    date_to: date,
) -> List[dict]:
    """Daily ledger trend over ``[date_from, date_to]``, zero-filled, newest first."""
    tallies: Dict[date, _LedgerTally] = {day: _LedgerTally() for day in date_range(date_from, date_to)}
    for record in deliveries:
        tally = tallies.get(record.date)
        if tally is not None:
            tally.add(record)
    return [
        {"date": day.isoformat(), **tallies[day].as_dict()}
        for day in sorted(tallies, reverse=True)
    ]


def route_performance(
    deliveries: Iterable[DeliveryRecord],
    customers: Iterable[CustomerScheduleRecord],
    routes: Iterable[Route],
    include_empty: bool = True,
    anomalies: Optional[AnomalyLog] = None,
) -> List[dict]:
    """Historical success per route, joined through each customer's current route."""
    if anomalies is None:
        anomalies = AnomalyLog()
    route_map = {route.id: route for route in routes}
    customer_routes = {customer.customer_id: customer.route_id for customer in customers if customer.customer_id}

    tallies: Dict[Optional[str], _LedgerTally] = {}
    if include_empty:
        for route_id in route_map:
            tallies[route_id] = _LedgerTally()

    for record in deliveries:
        if record.customer_id not in customer_routes:
            anomalies.record(MISSING_CUSTOMER, f"delivery {record.id} references unknown customer {record.customer_id}")
            continue
        route_id = customer_routes[record.customer_id]
        if route_id and route_id not in route_map:
            anomalies.record(ORPHANED_ROUTE, f"customer {record.customer_id} references unknown route {route_id}")
            route_id = None
        tallies.setdefault(route_id or None, _LedgerTally()).add(record)

    rows = []
    for route_id, tally in tallies.items():
        route = route_map.get(route_id) if route_id else None
        rows.append(
            {
                "route_id": route_id,
                "route_name": route.name if route else UNASSIGNED_LABEL,
                **tally.as_dict(),
            }
        )
    return sorted(rows, key=lambda row: (-row["total_deliveries"], row["route_name"].lower()))


def _agent_row(agent_id: str, name: str, mobile: Optional[str], tally: _LedgerTally) -> dict:
    days_active = len(tally.active_days)
    return {
        "delivery_boy_id": agent_id,
        "name": name,
        "mobile": mobile,
        "total_deliveries": tally.total,
        "delivered_count": tally.delivered,
        "partial_count": tally.partial,
        "failed_count": tally.failed,
        "completion_rate": success_rate(tally.delivered, tally.total),
        "days_active": days_active,
        "avg_deliveries_per_day": _ratio(tally.total, days_active, 1),
        "total_qty_delivered": tally.delivered_qty,
    }


def agent_performance(
    deliveries: Iterable[DeliveryRecord],
    agents: Iterable[DeliveryAgent],
    include_empty: bool = True,
    anomalies: Optional[AnomalyLog] = None,
) -> List[dict]:
    """Historical per-agent performance, best completion rate first."""
    if anomalies is None:
        anomalies = AnomalyLog()
    agent_map = {agent.id: agent for agent in agents}
    tallies: Dict[str, _LedgerTally] = {}
    if include_empty:
        for agent_id in agent_map:
            tallies[agent_id] = _LedgerTally()

    for record in deliveries:
        if not record.agent_id:
            anomalies.record(MALFORMED_ROW, f"delivery {record.id} has no delivery boy reference")
            continue
        tallies.setdefault(record.agent_id, _LedgerTally()).add(record)

    rows = []
    for agent_id, tally in tallies.items():
        agent = agent_map.get(agent_id)
        rows.append(
            _agent_row(
                agent_id,
                agent.name if agent else UNKNOWN_AGENT_LABEL,
                agent.mobile if agent else None,
                tally,
            )
        )
    return sorted(rows, key=lambda row: (-row["completion_rate"], -row["total_deliveries"]))


def agent_scorecard(deliveries: Iterable[DeliveryRecord], agent: DeliveryAgent) -> dict:
    """Lifetime metrics for one agent with the latest failure notes."""
    tally = _LedgerTally()
    feedback: List[DeliveryRecord] = []
    for record in deliveries:
        if record.agent_id != agent.id:
            continue
        tally.add(record)
        if record.status in (DeliveryOutcome.NOT_DELIVERED, DeliveryOutcome.PARTIAL):
            feedback.append(record)

    feedback.sort(key=lambda record: (record.date, _created_key(record)), reverse=True)
    row = _agent_row(agent.id, agent.name, agent.mobile, tally)
    row["success_rate"] = row.pop("completion_rate")
    row["total_delivered_qty"] = row.pop("total_qty_delivered")
    row["customer_feedback"] = [
        {"date": record.date.isoformat(), "note": record.notes, "status": record.status.value}
        for record in feedback[:FEEDBACK_LIMIT]
    ]
    return row


def ledger_statistics(deliveries: Iterable[DeliveryRecord]) -> dict:
    """Totals and outcome rates over an already filtered set of attempts."""
    tally = _LedgerTally()
    for record in deliveries:
        tally.add(record)
    stats = tally.as_dict()
    stats.update(
        {
            "partial_rate": success_rate(tally.partial, tally.total),
            "failure_rate": success_rate(tally.failed, tally.total),
            "avg_delivered_qty": _ratio(tally.delivered_qty, tally.total, 2),
            "avg_returned_qty": _ratio(tally.returned_qty, tally.total, 2),
        }
    )
    return stats


def outcome_counts(deliveries: Iterable[DeliveryRecord]) -> Dict[str, int]:
    counts: Counter[str] = Counter(record.status.value for record in deliveries)
    return {outcome.value: counts.get(outcome.value, 0) for outcome in DeliveryOutcome}


# ---------------------------------------------------------------------------
# Live operations
# ---------------------------------------------------------------------------

SEVERITY_ORDER = ("high", "medium", "low")
INACTIVE_AGENT_CUTOFF = time(10, 0)


def operational_alerts(
    deliveries: Iterable[DeliveryRecord],
    routes: Iterable[Route],
    agents: Iterable[DeliveryAgent],
    customers: Iterable[CustomerScheduleRecord],
    target_date: date,
    current_time: time,
    inactive_after: time = INACTIVE_AGENT_CUTOFF,
    raised_at: Optional[datetime] = None,
) -> List[dict]:
    """Alerts for one day: failed attempts, idle assigned agents and partial drops.

    Idle agents are only reported once ``current_time`` has reached
    ``inactive_after``. Alerts are ordered high, medium, low; within a severity
    they keep ledger order.
    """
    agent_map = {agent.id: agent for agent in agents}
    customer_names = {customer.customer_id: customer.name for customer in customers if customer.customer_id}
    attempts = [record for record in deliveries if record.date == target_date]

    def agent_name(agent_id: Optional[str]) -> str:
        agent = agent_map.get(agent_id) if agent_id else None
        return agent.name if agent else UNKNOWN_AGENT_LABEL

    alerts: List[dict] = []
    for record in attempts:
        if record.status is DeliveryOutcome.NOT_DELIVERED:
            alerts.append(
                {
                    "type": "failed_delivery",
                    "severity": "high",
                    "message": (
                        f"Delivery failed for {customer_names.get(record.customer_id) or 'Customer'} "
                        f"(Boy: {agent_name(record.agent_id)})"
                    ),
                    "timestamp": record.created_at,
                    "metadata": {
                        "delivery_id": record.id,
                        "customer_id": record.customer_id,
                        "reason": record.notes or "No reason provided",
                    },
                }
            )
        elif record.status is DeliveryOutcome.PARTIAL:
            alerts.append(
                {
                    "type": "partial_delivery",
                    "severity": "low",
                    "message": f"Partial delivery for customer. Boy: {agent_name(record.agent_id)}",
                    "timestamp": record.created_at,
                    "metadata": {"delivery_id": record.id, "customer_id": record.customer_id},
                }
            )

    if current_time >= inactive_after:
        active_ids = {record.agent_id for record in attempts if record.agent_id}
        assigned_ids: List[str] = []
        for route in routes:
            agent_id = route.assigned_agent_id
            if agent_id and agent_id not in assigned_ids:
                assigned_ids.append(agent_id)
        for agent_id in assigned_ids:
            if agent_id in active_ids:
                continue
            agent = agent_map.get(agent_id)
            alerts.append(
                {
                    "type": "inactive_delivery_boy",
                    "severity": "medium",
                    "message": f"Delivery Boy {agent_name(agent_id)} has assigned route but no deliveries today",
                    "timestamp": raised_at,
                    "metadata": {"delivery_boy_id": agent_id, "mobile": agent.mobile if agent else None},
                }
            )

    return sorted(alerts, key=lambda alert: SEVERITY_ORDER.index(alert["severity"]))


def severity_counts(alerts: Iterable[dict]) -> Dict[str, int]:
    counts: Counter[str] = Counter(alert["severity"] for alert in alerts)
    return {severity: counts.get(severity, 0) for severity in SEVERITY_ORDER}


def latest_locations(
    deliveries: Iterable[DeliveryRecord],
    agents: Iterable[DeliveryAgent],
    target_date: date,
) -> List[dict]:
    """Each agent's most recent GPS-tagged attempt on ``target_date``, newest first."""
    agent_map = {agent.id: agent for agent in agents}
    latest: Dict[str, DeliveryRecord] = {}
    for record in deliveries:
        if record.date != target_date or record.gps is None or not record.agent_id:
            continue
        current = latest.get(record.agent_id)
        if current is None or (_created_key(record), record.id) > (_created_key(current), current.id):
            latest[record.agent_id] = record

    rows = []
    for agent_id, record in latest.items():
        agent = agent_map.get(agent_id)
        rows.append(
            {
                "delivery_boy": {
                    "id": agent_id,
                    "name": agent.name if agent else UNKNOWN_AGENT_LABEL,
                    "mobile": agent.mobile if agent else None,
                    "is_active": agent.is_active if agent else None,
                },
                "last_location": {
                    "lat": record.gps.lat,
                    "lng": record.gps.lng,
                    "timestamp": record.created_at,
                },
                "last_action": record.status.value,
                "last_customer_id": record.customer_id,
                "delivery_id": record.id,
            }
        )
    rows.sort(key=lambda row: (_created_key(latest[row["delivery_boy"]["id"]]), row["delivery_boy"]["id"]), reverse=True)
    return rows
