"""Operations dashboard API schemas."""

from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .schedule import TaskModel


class DaySummaryModel(BaseModel):
    total_scheduled: int
    completed: int
    delivered: int
    partial: int
    failed: int
    pending: int
    completion_rate: float
    total_attempted: int = 0
    unscheduled_attempts: int = 0


class RouteStatusModel(BaseModel):
    route_id: Optional[str] = None
    name: str
    assigned_agent_id: Optional[str] = None
    scheduled: int
    completed: int
    delivered: int
    partial: int
    failed: int
    pending: int
    percentage: int


class DashboardResponse(BaseModel):
    date: str
    day: str
    summary: DaySummaryModel
    active_delivery_boys: int
    route_status: List[RouteStatusModel]
    skipped: Dict[str, int] = Field(default_factory=dict)


class TodayResponse(BaseModel):
    date: str
    day: str
    summary: DaySummaryModel
    skipped: Dict[str, int] = Field(default_factory=dict)


class TaskStatsModel(BaseModel):
    total: int
    completed: int
    pending: int
    completion_rate: float


class DeliveryBoyRefModel(BaseModel):
    id: str
    name: str
    mobile: Optional[str] = None


class DeliveryBoyTodayMeta(BaseModel):
    date: str
    day: str
    delivery_boy: DeliveryBoyRefModel
    skipped: Dict[str, int] = Field(default_factory=dict)


class DeliveryBoyTodayResponse(BaseModel):
    message: Optional[str] = None
    data: List[TaskModel]
    stats: TaskStatsModel
    meta: DeliveryBoyTodayMeta


class UndeliveredItemModel(BaseModel):
    delivery_id: str
    date: date_type
    status: str
    customer_id: str
    customer_name: str
    customer_mobile: Optional[str] = None
    address: Optional[str] = None
    delivery_boy_id: Optional[str] = None
    delivery_boy_name: str
    notes: Optional[str] = None
    delivered_qty: int
    returned_qty: int


class UndeliveredMeta(BaseModel):
    total: int
    count_failed: int
    count_partial: int
    date_from: Optional[date_type] = None
    date_to: Optional[date_type] = None


class UndeliveredResponse(BaseModel):
    data: List[UndeliveredItemModel]
    meta: UndeliveredMeta


class AlertModel(BaseModel):
    type: str
    severity: str
    message: str
    timestamp: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AlertsMeta(BaseModel):
    total: int
    high: int
    medium: int
    low: int


class AlertsResponse(BaseModel):
    date: str
    data: List[AlertModel]
    meta: AlertsMeta


class TrackedDeliveryBoyModel(BaseModel):
    id: str
    name: str
    mobile: Optional[str] = None
    is_active: Optional[bool] = None


class LastLocationModel(BaseModel):
    lat: float
    lng: float
    timestamp: Optional[datetime] = None


class LiveTrackingItemModel(BaseModel):
    delivery_boy: TrackedDeliveryBoyModel
    last_location: LastLocationModel
    last_action: str
    last_customer_id: str
    delivery_id: str


class LiveTrackingMeta(BaseModel):
    date: str
    active_agents: int
    timestamp: datetime


class LiveTrackingResponse(BaseModel):
    data: List[LiveTrackingItemModel]
    meta: LiveTrackingMeta
