"""In-memory directory and ledger used for local runs and tests."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence

from ..models.domain import (
    CustomerScheduleRecord,
    DeliveryAgent,
    DeliveryOutcome,
    DeliveryRecord,
    Route,
)
from .base import CompletionHooks


class InMemoryDirectory:
    def __init__(
        self,
        customers: Iterable[CustomerScheduleRecord] = (),
        routes: Iterable[Route] = (),
        agents: Iterable[DeliveryAgent] = (),
    ) -> None:
        self.customers = list(customers)
        self.routes = list(routes)
        self.agents = list(agents)

    def fetch_active_customers(self, route_ids: Optional[Sequence[str]] = None) -> List[CustomerScheduleRecord]:
        wanted = set(route_ids) if route_ids else None
        return [
            customer
            for customer in self.customers
            if customer.is_active and (wanted is None or customer.route_id in wanted)
        ]

    def fetch_customers(self, include_inactive: bool = True) -> List[CustomerScheduleRecord]:
        return [customer for customer in self.customers if include_inactive or customer.is_active]

    def fetch_routes(self, route_ids: Optional[Sequence[str]] = None) -> List[Route]:
        wanted = set(route_ids) if route_ids else None
        return [route for route in self.routes if wanted is None or route.id in wanted]

    def fetch_agents(self) -> List[DeliveryAgent]:
        return list(self.agents)

    def get_agent(self, agent_id: str) -> Optional[DeliveryAgent]:
        return next((agent for agent in self.agents if agent.id == agent_id), None)


class InMemoryLedger(CompletionHooks):
    def __init__(self, deliveries: Iterable[DeliveryRecord] = ()) -> None:
        super().__init__()
        self.deliveries = list(deliveries)

    def fetch_deliveries(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
        *,
        customer_ids: Optional[Iterable[str]] = None,
        agent_id: Optional[str] = None,
        statuses: Optional[Iterable[DeliveryOutcome]] = None,
    ) -> List[DeliveryRecord]:
        wanted_customers = set(customer_ids) if customer_ids is not None else None
        wanted_statuses = set(statuses) if statuses is not None else None
        results = []
        for record in self.deliveries:
            if date_from and record.date < date_from:
                continue
            if date_to and record.date > date_to:
                continue
            if wanted_customers is not None and record.customer_id not in wanted_customers:
                continue
            if agent_id and record.agent_id != agent_id:
                continue
            if wanted_statuses is not None and record.status not in wanted_statuses:
                continue
            results.append(record)
        return results

    def on_delivery_completed(self, record: DeliveryRecord) -> None:
        self.deliveries.append(record)
        super().on_delivery_completed(record)
