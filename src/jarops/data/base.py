"""Collaborator interfaces consumed by the scheduling services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, List, Optional, Protocol, Sequence
from zoneinfo import ZoneInfo

from ..models.domain import (
    CustomerScheduleRecord,
    DeliveryAgent,
    DeliveryOutcome,
    DeliveryRecord,
    Route,
)

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[DeliveryRecord], None]


@dataclass(frozen=True, slots=True)
class AdapterConfig:
    """Explicit adapter configuration, built once from settings by the API layer."""

    timezone: str = "Asia/Kolkata"
    page_size: int = 1000
    customers_table: str = "customer_profiles"
    deliveries_table: str = "deliveries"
    routes_table: str = "routes"
    users_table: str = "users"
    agent_role: str = "delivery_boy"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class Directory(Protocol):
    def fetch_active_customers(self, route_ids: Optional[Sequence[str]] = None) -> List[CustomerScheduleRecord]:
        ...

    def fetch_customers(self, include_inactive: bool = True) -> List[CustomerScheduleRecord]:
        ...

    def fetch_routes(self, route_ids: Optional[Sequence[str]] = None) -> List[Route]:
        ...

    def fetch_agents(self) -> List[DeliveryAgent]:
        ...

    def get_agent(self, agent_id: str) -> Optional[DeliveryAgent]:
        ...


class Ledger(Protocol):
    def fetch_deliveries(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
        *,
        customer_ids: Optional[Iterable[str]] = None,
        agent_id: Optional[str] = None,
        statuses: Optional[Iterable[DeliveryOutcome]] = None,
    ) -> List[DeliveryRecord]:
        ...

    def subscribe(self, callback: CompletionCallback) -> None:
        ...

    def on_delivery_completed(self, record: DeliveryRecord) -> None:
        ...


class CompletionHooks:
    """Subscriber list notified when the completion workflow records an attempt."""

    def __init__(self) -> None:
        self._subscribers: List[CompletionCallback] = []

    def subscribe(self, callback: CompletionCallback) -> None:
        self._subscribers.append(callback)

    def on_delivery_completed(self, record: DeliveryRecord) -> None:
        logger.info(
            "Delivery %s completed for customer %s on %s (%s, net jars %+d)",
            record.id,
            record.customer_id,
            record.date.isoformat(),
            record.status.value,
            record.net_jars,
        )
        for callback in self._subscribers:
            callback(record)
