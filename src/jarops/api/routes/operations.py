"""Operations dashboard endpoints."""

from __future__ import annotations

from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...data import Directory, Ledger
from ...models.domain import DeliveryOutcome
from ...schemas.operations import (
    AlertModel,
    AlertsMeta,
    AlertsResponse,
    DashboardResponse,
    DaySummaryModel,
    LiveTrackingItemModel,
    LiveTrackingMeta,
    LiveTrackingResponse,
    RouteStatusModel,
    TodayResponse,
    UndeliveredItemModel,
    UndeliveredMeta,
    UndeliveredResponse,
)
from ...services.scheduling import (
    AnomalyLog,
    aggregate_by_route,
    count_active_agents,
    latest_locations,
    operational_alerts,
    outcome_counts,
    reconcile,
    severity_counts,
    summarize_day,
    weekday_label,
)
from ...services.scheduling.aggregation import UNKNOWN_AGENT_LABEL
from ..deps import get_anomaly_log, get_directory, get_ledger, get_now, get_today, require_admin
from ..params import parse_date_range

router = APIRouter(prefix="/operations", tags=["operations"], dependencies=[Depends(require_admin)])


@router.get("/dashboard", response_model=DashboardResponse, status_code=status.HTTP_200_OK)
def get_dashboard(
    include_empty: bool = Query(default=False, description="Keep routes with nothing scheduled today"),
    today: date = Depends(get_today),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> DashboardResponse:
    customers = directory.fetch_active_customers()
    routes = directory.fetch_routes()
    deliveries = ledger.fetch_deliveries(today, today)
    tasks = reconcile(customers, deliveries, today, routes, anomalies)

    return DashboardResponse(
        date=today.isoformat(),
        day=weekday_label(today).value,
        summary=DaySummaryModel(**summarize_day(tasks, deliveries, today)),
        active_delivery_boys=count_active_agents(tasks),
        route_status=[RouteStatusModel(**row) for row in aggregate_by_route(tasks, routes, include_empty)],
        skipped=anomalies.as_dict(),
    )


@router.get("/today", response_model=TodayResponse, status_code=status.HTTP_200_OK)
def get_today_overview(
    today: date = Depends(get_today),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> TodayResponse:
    customers = directory.fetch_active_customers()
    deliveries = ledger.fetch_deliveries(today, today)
    tasks = reconcile(customers, deliveries, today, anomalies=anomalies)
    return TodayResponse(
        date=today.isoformat(),
        day=weekday_label(today).value,
        summary=DaySummaryModel(**summarize_day(tasks, deliveries, today)),
        skipped=anomalies.as_dict(),
    )


@router.get("/undelivered", response_model=UndeliveredResponse, status_code=status.HTTP_200_OK)
def list_undelivered(
    date_from: str | None = Query(default=None, description="Start date (YYYY-MM-DD)"),
    date_to: str | None = Query(default=None, description="End date (YYYY-MM-DD)"),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
) -> UndeliveredResponse:
    """Failed and partial attempts, newest first."""
    start, end = parse_date_range(date_from, date_to)
    deliveries = ledger.fetch_deliveries(
        start,
        end,
        statuses=(DeliveryOutcome.NOT_DELIVERED, DeliveryOutcome.PARTIAL),
    )
    deliveries.sort(key=lambda record: (record.date, record.id), reverse=True)

    customers = {customer.customer_id: customer for customer in directory.fetch_customers()}
    agents = {agent.id: agent for agent in directory.fetch_agents()}

    items = []
    for record in deliveries:
        customer = customers.get(record.customer_id)
        agent = agents.get(record.agent_id) if record.agent_id else None
        items.append(
            UndeliveredItemModel(
                delivery_id=record.id,
                date=record.date,
                status=record.status.value,
                customer_id=record.customer_id,
                customer_name=(customer.name if customer and customer.name else "Unknown"),
                customer_mobile=customer.mobile if customer else None,
                address=customer.address if customer else None,
                delivery_boy_id=record.agent_id,
                delivery_boy_name=agent.name if agent else UNKNOWN_AGENT_LABEL,
                notes=record.notes,
                delivered_qty=record.delivered_qty,
                returned_qty=record.returned_qty,
            )
        )

    counts = outcome_counts(deliveries)
    return UndeliveredResponse(
        data=items,
        meta=UndeliveredMeta(
            total=len(items),
            count_failed=counts[DeliveryOutcome.NOT_DELIVERED.value],
            count_partial=counts[DeliveryOutcome.PARTIAL.value],
            date_from=start,
            date_to=end,
        ),
    )


@router.get("/alerts", response_model=AlertsResponse, status_code=status.HTTP_200_OK)
def get_alerts(
    today: date = Depends(get_today),
    now: datetime = Depends(get_now),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
) -> AlertsResponse:
    """Failed deliveries (high), idle assigned delivery boys (medium) and partial deliveries (low)."""
    deliveries = ledger.fetch_deliveries(today, today)
    alerts = operational_alerts(
        deliveries,
        directory.fetch_routes(),
        directory.fetch_agents(),
        directory.fetch_customers(),
        today,
        current_time=now.time(),
        inactive_after=time(settings.inactive_agent_cutoff_hour),
        raised_at=now,
    )
    counts = severity_counts(alerts)
    return AlertsResponse(
        date=today.isoformat(),
        data=[AlertModel(**alert) for alert in alerts],
        meta=AlertsMeta(total=len(alerts), **counts),
    )


@router.get("/live-tracking", response_model=LiveTrackingResponse, status_code=status.HTTP_200_OK)
def get_live_tracking(
    today: date = Depends(get_today),
    now: datetime = Depends(get_now),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
) -> LiveTrackingResponse:
    """Latest GPS-tagged attempt of every delivery boy today."""
    deliveries = ledger.fetch_deliveries(today, today)
    rows = latest_locations(deliveries, directory.fetch_agents(), today)
    return LiveTrackingResponse(
        data=[LiveTrackingItemModel(**row) for row in rows],
        meta=LiveTrackingMeta(date=today.isoformat(), active_agents=len(rows), timestamp=now),
    )
