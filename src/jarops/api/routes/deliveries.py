"""Historical delivery analytics endpoints."""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status

from ...data import Directory, Ledger
from ...schemas.analytics import (
    AnalyticsFilters,
    DailyAnalyticsResponse,
    DailyTrendModel,
    DeliveryBoyAnalyticsResponse,
    DeliveryBoyPerformanceModel,
    LedgerStatsModel,
    LedgerStatsResponse,
    RouteAnalyticsResponse,
    RoutePerformanceModel,
)
from ...services.scheduling import (
    AnomalyLog,
    agent_performance,
    aggregate_by_day,
    ledger_statistics,
    route_performance,
)
from ..deps import get_anomaly_log, get_directory, get_ledger, get_today, require_admin
from ..params import check_date_order, parse_date_range

router = APIRouter(prefix="/deliveries", tags=["deliveries"], dependencies=[Depends(require_admin)])


@router.get("/analytics/by-route", response_model=RouteAnalyticsResponse, status_code=status.HTTP_200_OK)
def analytics_by_route(
    date_from: str | None = Query(default=None, description="Start date (YYYY-MM-DD)"),
    date_to: str | None = Query(default=None, description="End date (YYYY-MM-DD)"),
    include_empty: bool = Query(default=True, description="Report routes without deliveries as zero rows"),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> RouteAnalyticsResponse:
    start, end = parse_date_range(date_from, date_to)
    deliveries = ledger.fetch_deliveries(start, end)
    rows = route_performance(
        deliveries,
        directory.fetch_customers(),
        directory.fetch_routes(),
        include_empty=include_empty,
        anomalies=anomalies,
    )
    return RouteAnalyticsResponse(
        data=[RoutePerformanceModel(**row) for row in rows],
        filters=AnalyticsFilters(date_from=start, date_to=end),
        skipped=anomalies.as_dict(),
    )


@router.get(
    "/analytics/by-delivery-boy",
    response_model=DeliveryBoyAnalyticsResponse,
    status_code=status.HTTP_200_OK,
)
def analytics_by_delivery_boy(
    date_from: str | None = Query(default=None, description="Start date (YYYY-MM-DD)"),
    date_to: str | None = Query(default=None, description="End date (YYYY-MM-DD)"),
    include_empty: bool = Query(default=True, description="Report delivery boys without deliveries as zero rows"),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> DeliveryBoyAnalyticsResponse:
    start, end = parse_date_range(date_from, date_to)
    deliveries = ledger.fetch_deliveries(start, end)
    rows = agent_performance(deliveries, directory.fetch_agents(), include_empty=include_empty, anomalies=anomalies)
    return DeliveryBoyAnalyticsResponse(
        data=[DeliveryBoyPerformanceModel(**row) for row in rows],
        filters=AnalyticsFilters(date_from=start, date_to=end),
        skipped=anomalies.as_dict(),
    )


@router.get("/analytics/daily", response_model=DailyAnalyticsResponse, status_code=status.HTTP_200_OK)
def analytics_daily(
    days: int = Query(default=30, ge=1, le=366, description="Trailing window ending today"),
    date_from: str | None = Query(default=None, description="Start date (YYYY-MM-DD), overrides days"),
    date_to: str | None = Query(default=None, description="End date (YYYY-MM-DD)"),
    today: date = Depends(get_today),
    ledger: Ledger = Depends(get_ledger),
) -> DailyAnalyticsResponse:
    start, end = parse_date_range(date_from, date_to)
    end = end or today
    start = start or end - timedelta(days=days - 1)
    check_date_order(start, end)

    deliveries = ledger.fetch_deliveries(start, end)
    rows = aggregate_by_day(deliveries, start, end)
    return DailyAnalyticsResponse(
        data=[DailyTrendModel(**row) for row in rows],
        filters=AnalyticsFilters(date_from=start, date_to=end),
        days_analyzed=len(rows),
    )


@router.get("/stats", response_model=LedgerStatsResponse, status_code=status.HTTP_200_OK)
def delivery_stats(
    date_from: str | None = Query(default=None, description="Start date (YYYY-MM-DD)"),
    date_to: str | None = Query(default=None, description="End date (YYYY-MM-DD)"),
    route_id: str | None = Query(default=None, description="Only customers currently on this route"),
    delivery_boy_id: str | None = Query(default=None, description="Only attempts by this delivery boy"),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
) -> LedgerStatsResponse:
    start, end = parse_date_range(date_from, date_to)
    customer_ids = None
    if route_id:
        customer_ids = [customer.customer_id for customer in directory.fetch_customers() if customer.route_id == route_id]

    deliveries = ledger.fetch_deliveries(start, end, customer_ids=customer_ids, agent_id=delivery_boy_id)
    return LedgerStatsResponse(
        data=LedgerStatsModel(**ledger_statistics(deliveries)),
        filters=AnalyticsFilters(
            date_from=start,
            date_to=end,
            route_id=route_id,
            delivery_boy_id=delivery_boy_id,
        ),
    )
