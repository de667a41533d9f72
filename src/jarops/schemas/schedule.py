"""Schedule and task API schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.domain import CustomerScheduleRecord, Route, ScheduledTask
from ..services.scheduling.aggregation import UNASSIGNED_LABEL, RouteGroup


class CustomerSummaryModel(BaseModel):
    customer_id: str
    name: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    jar_balance: int = 0
    delivery_instructions: Optional[str] = None

    @classmethod
    def from_record(cls, customer: CustomerScheduleRecord) -> "CustomerSummaryModel":
        return cls(
            customer_id=customer.customer_id,
            name=customer.name,
            mobile=customer.mobile,
            address=customer.address,
            jar_balance=customer.jar_balance,
            delivery_instructions=customer.delivery_instructions,
        )


class RouteRefModel(BaseModel):
    route_id: Optional[str] = None
    name: str = UNASSIGNED_LABEL
    areas: List[str] = Field(default_factory=list)
    assigned_delivery_boy: Optional[str] = None

    @classmethod
    def from_route(cls, route: Optional[Route]) -> "RouteRefModel":
        if route is None:
            return cls()
        return cls(
            route_id=route.id,
            name=route.name,
            areas=list(route.areas),
            assigned_delivery_boy=route.assigned_agent_id,
        )


class TaskModel(BaseModel):
    customer: CustomerSummaryModel
    route: Optional[RouteRefModel] = None
    status: str
    delivery_id: Optional[str] = None
    delivered_qty: Optional[int] = None
    returned_qty: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_task(cls, task: ScheduledTask) -> "TaskModel":
        record = task.delivery
        return cls(
            customer=CustomerSummaryModel.from_record(task.customer),
            route=RouteRefModel.from_route(task.route) if task.route else None,
            status=task.status.value,
            delivery_id=record.id if record else None,
            delivered_qty=record.delivered_qty if record else None,
            returned_qty=record.returned_qty if record else None,
            notes=record.notes if record else None,
        )


class RouteScheduleModel(BaseModel):
    route: RouteRefModel
    scheduled: int
    completed: int
    pending: int
    tasks: List[TaskModel]

    @classmethod
    def from_group(cls, group: RouteGroup) -> "RouteScheduleModel":
        pending = sum(1 for task in group.tasks if task.is_pending)
        return cls(
            route=RouteRefModel.from_route(group.route),
            scheduled=len(group.tasks),
            completed=len(group.tasks) - pending,
            pending=pending,
            tasks=[TaskModel.from_task(task) for task in group.tasks],
        )


class ScheduleMetaModel(BaseModel):
    date: str
    day: str
    total_routes_active: int
    total_deliveries: int
    skipped: Dict[str, int] = Field(default_factory=dict)


class ScheduleResponse(BaseModel):
    data: List[RouteScheduleModel]
    meta: ScheduleMetaModel


class ManifestTaskModel(BaseModel):
    customer: CustomerSummaryModel
    route: Optional[RouteRefModel] = None


class ManifestResponse(BaseModel):
    date: str
    day: str
    total_tasks: int
    tasks: List[ManifestTaskModel]
    skipped: Dict[str, int] = Field(default_factory=dict)
