"""Per delivery boy task list and performance endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, status

from ...data import Directory, Ledger
from ...errors import AgentNotFoundError
from ...models.domain import DeliveryAgent
from ...schemas.analytics import DeliveryBoyScorecardModel
from ...schemas.operations import (
    DeliveryBoyRefModel,
    DeliveryBoyTodayMeta,
    DeliveryBoyTodayResponse,
    TaskStatsModel,
)
from ...schemas.schedule import TaskModel
from ...services.scheduling import AnomalyLog, agent_scorecard, reconcile, task_stats, weekday_label
from ..deps import get_anomaly_log, get_directory, get_ledger, get_today, require_admin

router = APIRouter(prefix="/delivery-boys", tags=["delivery-boys"], dependencies=[Depends(require_admin)])


def _load_agent(directory: Directory, agent_id: str) -> DeliveryAgent:
    agent = directory.get_agent(agent_id)
    if agent is None:
        raise AgentNotFoundError(agent_id)
    return agent


@router.get("/{delivery_boy_id}/today", response_model=DeliveryBoyTodayResponse, status_code=status.HTTP_200_OK)
def get_today_tasks(
    delivery_boy_id: str = Path(..., description="Delivery boy identifier"),
    today: date = Depends(get_today),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> DeliveryBoyTodayResponse:
    """Today's reconciled tasks on the routes assigned to one delivery boy, pending first."""
    agent = _load_agent(directory, delivery_boy_id)
    routes = [route for route in directory.fetch_routes() if route.assigned_agent_id == agent.id]

    message = None
    tasks = []
    if not routes:
        message = "No routes assigned to this delivery boy"
    else:
        customers = directory.fetch_active_customers([route.id for route in routes])
        deliveries = ledger.fetch_deliveries(
            today,
            today,
            customer_ids=[customer.customer_id for customer in customers],
        )
        tasks = reconcile(customers, deliveries, today, routes, anomalies)
        if not tasks:
            message = "No customers scheduled for today"

    return DeliveryBoyTodayResponse(
        message=message,
        data=[TaskModel.from_task(task) for task in tasks],
        stats=TaskStatsModel(**task_stats(tasks)),
        meta=DeliveryBoyTodayMeta(
            date=today.isoformat(),
            day=weekday_label(today).value,
            delivery_boy=DeliveryBoyRefModel(id=agent.id, name=agent.name, mobile=agent.mobile),
            skipped=anomalies.as_dict(),
        ),
    )


@router.get(
    "/{delivery_boy_id}/performance",
    response_model=DeliveryBoyScorecardModel,
    status_code=status.HTTP_200_OK,
)
def get_performance(
    delivery_boy_id: str = Path(..., description="Delivery boy identifier"),
    directory: Directory = Depends(get_directory),
    ledger: Ledger = Depends(get_ledger),
) -> DeliveryBoyScorecardModel:
    agent = _load_agent(directory, delivery_boy_id)
    deliveries = ledger.fetch_deliveries(None, None, agent_id=agent.id)
    return DeliveryBoyScorecardModel.model_validate(agent_scorecard(deliveries, agent))
