"""Planned manifests and reconciliation of due customers against the ledger."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from ...models.domain import (
    CustomerScheduleRecord,
    DeliveryRecord,
    Route,
    ScheduledTask,
    TaskStatus,
)
from .anomalies import DUPLICATE_DELIVERY, MISSING_CUSTOMER, ORPHANED_ROUTE, AnomalyLog
from .resolver import is_due

_END_OF_DAY = time(23, 59, 59, 999000)


def day_bounds(target_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Local start and end instants (00:00:00.000 to 23:59:59.999) of ``target_date``."""
    start = datetime.combine(target_date, time.min, tzinfo=tz)
    end = datetime.combine(target_date, _END_OF_DAY, tzinfo=tz)
    return start, end


def date_range(date_from: date, date_to: date) -> List[date]:
    days = (date_to - date_from).days
    return [date_from + timedelta(days=offset) for offset in range(days + 1)]


def _tie_break_key(record: DeliveryRecord) -> tuple:
    # Records without created_at sort before any record that has one.
    created = record.created_at
    return (created is not None, created.timestamp() if created else 0.0, record.id)


def select_daily_record(records: Sequence[DeliveryRecord]) -> Optional[DeliveryRecord]:
    """Pick the record that represents a customer's day.

    The ledger does not enforce one attempt per customer per day. When several
    exist the most recently created wins; equal creation times fall back to the
    greatest record id.
    """
    if not records:
        return None
    return max(records, key=_tie_break_key)


def _index_daily_deliveries(
    deliveries: Iterable[DeliveryRecord],
    target_date: date,
    anomalies: AnomalyLog,
) -> Dict[str, DeliveryRecord]:
    grouped: Dict[str, List[DeliveryRecord]] = {}
    for record in deliveries:
        if record.date != target_date:
            continue
        if not record.customer_id:
            anomalies.record(MISSING_CUSTOMER, f"delivery {record.id} has no customer reference")
            continue
        grouped.setdefault(record.customer_id, []).append(record)

    lookup: Dict[str, DeliveryRecord] = {}
    for customer_id, records in grouped.items():
        chosen = select_daily_record(records)
        for _ in records[1:]:
            anomalies.record(
                DUPLICATE_DELIVERY,
                f"customer {customer_id} has {len(records)} deliveries on {target_date.isoformat()}",
            )
        lookup[customer_id] = chosen
    return lookup


def _due_customers(
    customers: Iterable[CustomerScheduleRecord],
    target_date: date,
    anomalies: AnomalyLog,
) -> List[CustomerScheduleRecord]:
    due: List[CustomerScheduleRecord] = []
    for customer in customers:
        if customer is None or not customer.customer_id:
            anomalies.record(MISSING_CUSTOMER, "customer profile without identity")
            continue
        if not customer.is_active:
            continue
        if is_due(customer.policy, target_date):
            due.append(customer)
    return due


def _resolve_route(
    customer: CustomerScheduleRecord,
    route_map: Optional[Dict[str, Route]],
    anomalies: AnomalyLog,
) -> Optional[Route]:
    if not customer.route_id or route_map is None:
        return None
    route = route_map.get(customer.route_id)
    if route is None:
        anomalies.record(
            ORPHANED_ROUTE,
            f"customer {customer.customer_id} references unknown route {customer.route_id}",
        )
    return route


def build_manifest(
    customers: Iterable[CustomerScheduleRecord],
    target_date: date,
    routes: Optional[Iterable[Route]] = None,
    anomalies: Optional[AnomalyLog] = None,
) -> List[ScheduledTask]:
    """Planned due-list for ``target_date`` without looking at the ledger."""
    if anomalies is None:
        anomalies = AnomalyLog()
    route_map = {route.id: route for route in routes} if routes is not None else None
    return [
        ScheduledTask(
            customer=customer,
            route=_resolve_route(customer, route_map, anomalies),
            due=True,
            status=TaskStatus.PENDING,
            target_date=target_date,
        )
        for customer in _due_customers(customers, target_date, anomalies)
    ]


def reconcile(
    customers: Iterable[CustomerScheduleRecord],
    deliveries: Iterable[DeliveryRecord],
    target_date: date,
    routes: Optional[Iterable[Route]] = None,
    anomalies: Optional[AnomalyLog] = None,
) -> List[ScheduledTask]:
    """Join the due-set for ``target_date`` with the attempts recorded that day.

    Inactive and non-due customers produce no task. Tasks keep input order
    within two groups, pending first. When ``routes`` is given, customers whose
    route id is not among them are treated as unassigned.
    """
    if anomalies is None:
        anomalies = AnomalyLog()
    route_map = {route.id: route for route in routes} if routes is not None else None
    due = _due_customers(customers, target_date, anomalies)
    lookup = _index_daily_deliveries(deliveries, target_date, anomalies)

    tasks: List[ScheduledTask] = []
    for customer in due:
        record = lookup.get(customer.customer_id)
        status = TaskStatus.from_outcome(record.status) if record else TaskStatus.PENDING
        tasks.append(
            ScheduledTask(
                customer=customer,
                route=_resolve_route(customer, route_map, anomalies),
                due=True,
                status=status,
                delivery=record,
                target_date=target_date,
            )
        )
    # sorted() is stable, so input order survives inside each group.
    return sorted(tasks, key=lambda task: not task.is_pending)
