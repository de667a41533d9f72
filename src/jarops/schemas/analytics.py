"""Historical delivery analytics schemas."""

from __future__ import annotations

from datetime import date as date_type
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class LedgerTotalsModel(BaseModel):
    total_deliveries: int
    delivered_count: int
    partial_count: int
    failed_count: int
    total_delivered_qty: int
    total_returned_qty: int
    net_jars: int
    success_rate: float


class RoutePerformanceModel(LedgerTotalsModel):
    route_id: Optional[str] = None
    route_name: str


class DailyTrendModel(LedgerTotalsModel):
    date: date_type


class DeliveryBoyPerformanceModel(BaseModel):
    delivery_boy_id: str
    name: str
    mobile: Optional[str] = None
    total_deliveries: int
    delivered_count: int
    partial_count: int
    failed_count: int
    completion_rate: float
    days_active: int
    avg_deliveries_per_day: float
    total_qty_delivered: int


class FeedbackModel(BaseModel):
    date: date_type
    note: Optional[str] = None
    status: str


class DeliveryBoyScorecardModel(BaseModel):
    delivery_boy_id: str
    name: str
    mobile: Optional[str] = None
    total_deliveries: int
    delivered_count: int
    partial_count: int
    failed_count: int
    success_rate: float
    days_active: int
    avg_deliveries_per_day: float
    total_delivered_qty: int
    customer_feedback: List[FeedbackModel]


class LedgerStatsModel(LedgerTotalsModel):
    partial_rate: float
    failure_rate: float
    avg_delivered_qty: float
    avg_returned_qty: float


class AnalyticsFilters(BaseModel):
    date_from: Optional[date_type] = None
    date_to: Optional[date_type] = None
    route_id: Optional[str] = None
    delivery_boy_id: Optional[str] = None


class RouteAnalyticsResponse(BaseModel):
    data: List[RoutePerformanceModel]
    filters: AnalyticsFilters
    skipped: Dict[str, int] = Field(default_factory=dict)


class DeliveryBoyAnalyticsResponse(BaseModel):
    data: List[DeliveryBoyPerformanceModel]
    filters: AnalyticsFilters
    skipped: Dict[str, int] = Field(default_factory=dict)


class DailyAnalyticsResponse(BaseModel):
    data: List[DailyTrendModel]
    filters: AnalyticsFilters
    days_analyzed: int


class LedgerStatsResponse(BaseModel):
    data: LedgerStatsModel
    filters: AnalyticsFilters
