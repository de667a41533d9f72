"""Delivery schedule endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from ...data import Directory, Ledger
from ...schemas.schedule import (
    CustomerSummaryModel,
    ManifestResponse,
    ManifestTaskModel,
    RouteRefModel,
    RouteScheduleModel,
    ScheduleMetaModel,
    ScheduleResponse,
)
from ...services.scheduling import (
    AnomalyLog,
    build_manifest,
    group_tasks_by_route,
    reconcile,
    weekday_label,
)
from ..deps import get_anomaly_log, get_directory, get_ledger, require_admin
from ..params import parse_iso_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["schedule"], dependencies=[Depends(require_admin)])


@router.get("/generate", response_model=ManifestResponse, status_code=status.HTTP_200_OK)
def generate_manifest(
    date: str = Query(..., description="Calendar date (YYYY-MM-DD)"),
    route_id: List[str] | None = Query(default=None, description="Restrict the manifest to these routes"),
    directory: Directory = Depends(get_directory),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> ManifestResponse:
    """Planned due-list for a date, before any delivery has been recorded."""
    target = parse_iso_date(date)
    route_ids = [value for value in (route_id or []) if value] or None

    customers = directory.fetch_active_customers(route_ids)
    routes = directory.fetch_routes(route_ids)
    tasks = build_manifest(customers, target, routes, anomalies)
    logger.info("Generated manifest for %s with %d tasks", target.isoformat(), len(tasks))

    return ManifestResponse(
        date=target.isoformat(),
        day=weekday_label(target).value,
        total_tasks=len(tasks),
        tasks=[
            ManifestTaskModel(
                customer=CustomerSummaryModel.from_record(task.customer),
                route=RouteRefModel.from_route(task.route) if task.route else None,
            )
            for task in tasks
        ],
        skipped=anomalies.as_dict(),
    )


@router.get("/{date}", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
def get_schedule(
    date: str = Path(..., description="Calendar date (YYYY-MM-DD)"),
    include_empty: bool = Query(default=False, description="Keep routes without due customers"),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> ScheduleResponse:
    """Reconciled schedule for a date grouped by route, biggest routes first."""
    target = parse_iso_date(date)

    customers = directory.fetch_active_customers()
    routes = directory.fetch_routes()
    deliveries = ledger.fetch_deliveries(target, target)
    tasks = reconcile(customers, deliveries, target, routes, anomalies)

    groups = group_tasks_by_route(tasks, routes, include_empty=include_empty)
    groups.sort(key=lambda group: len(group.tasks), reverse=True)

    return ScheduleResponse(
        data=[RouteScheduleModel.from_group(group) for group in groups],
        meta=ScheduleMetaModel(
            date=target.isoformat(),
            day=weekday_label(target).value,
            total_routes_active=sum(1 for group in groups if group.tasks),
            total_deliveries=len(tasks),
            skipped=anomalies.as_dict(),
        ),
    )
