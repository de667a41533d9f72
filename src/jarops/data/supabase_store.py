"""Supabase-backed directory and ledger adapters."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional, Sequence

from supabase import Client

from ..errors import CollaboratorUnavailableError
from ..models.domain import (
    CustomerScheduleRecord,
    DeliveryAgent,
    DeliveryOutcome,
    DeliveryRecord,
    GpsLocation,
    Route,
    SchedulePolicy,
    ScheduleKind,
    Weekday,
)
from ..services.scheduling.anomalies import MALFORMED_ROW, AnomalyLog
from ..services.scheduling.reconciliation import day_bounds
from .base import AdapterConfig, CompletionHooks

logger = logging.getLogger(__name__)

# Keeps PostgREST `in.(...)` filters well below URL length limits.
IN_FILTER_BATCH_SIZE = 100

_ADDRESS_PARTS = ("flat", "building", "society", "area", "city", "pincode", "landmark")
_WEEKDAY_LOOKUP = {day.value.lower(): day for day in Weekday}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _to_local(value: datetime, config: AdapterConfig) -> datetime:
    # Naive store timestamps are business-local.
    if value.tzinfo is None:
        value = value.replace(tzinfo=config.tz)
    return value.astimezone(config.tz)


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return date.fromisoformat(str(value)[:10])


def format_address(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        parts = [_clean(value.get(key)) for key in _ADDRESS_PARTS]
        return ", ".join(part for part in parts if part) or None
    return _clean(value)


def parse_weekday(value: Any) -> Weekday:
    key = str(value).strip().lower()[:3]
    try:
        return _WEEKDAY_LOOKUP[key]
    except KeyError as exc:
        raise ValueError(f"Unknown weekday '{value}'") from exc


def parse_policy(row: dict) -> SchedulePolicy:
    raw_kind = _clean(row.get("schedule_type")) or ScheduleKind.DAILY.value
    kind = ScheduleKind(raw_kind.lower())
    days: frozenset[Weekday] = frozenset()
    if kind is ScheduleKind.CUSTOM:
        days = frozenset(parse_weekday(day) for day in (row.get("custom_days") or []))
    return SchedulePolicy(
        kind=kind,
        custom_days=days,
        reference_date=_parse_date(row.get("schedule_reference_date")),
    )


def parse_customer_row(row: dict) -> CustomerScheduleRecord:
    customer_id = _clean(row.get("customer_id"))
    if not customer_id:
        raise ValueError("customer profile row without customer_id")
    is_active = row.get("is_active")
    return CustomerScheduleRecord(
        customer_id=customer_id,
        route_id=_clean(row.get("route_id")),
        policy=parse_policy(row),
        jar_balance=_coerce_int(row.get("jar_balance")),
        is_active=True if is_active is None else bool(is_active),
        name=_clean(row.get("name")),
        mobile=_clean(row.get("mobile")),
        address=format_address(row.get("address")),
        delivery_instructions=_clean(row.get("delivery_instructions")),
    )


def parse_delivery_row(row: dict, config: AdapterConfig) -> DeliveryRecord:
    record_id = _clean(row.get("id"))
    customer_id = _clean(row.get("customer_id"))
    if not record_id or not customer_id:
        raise ValueError("delivery row without id or customer_id")

    occurred = _parse_datetime(row.get("date"))
    if occurred is None:
        raise ValueError(f"delivery {record_id} has no date")
    local_day = _to_local(occurred, config).date()
    created_at = _parse_datetime(row.get("created_at"))
    if created_at is not None:
        created_at = _to_local(created_at, config)

    delivered_qty = _coerce_int(row.get("delivered_qty"))
    returned_qty = _coerce_int(row.get("returned_qty"))
    if delivered_qty < 0 or returned_qty < 0:
        raise ValueError(f"delivery {record_id} has negative quantities")

    gps = None
    if row.get("gps_lat") is not None and row.get("gps_lng") is not None:
        gps = GpsLocation(lat=float(row["gps_lat"]), lng=float(row["gps_lng"]))

    return DeliveryRecord(
        id=record_id,
        customer_id=customer_id,
        agent_id=_clean(row.get("delivery_boy_id")),
        date=local_day,
        delivered_qty=delivered_qty,
        returned_qty=returned_qty,
        status=DeliveryOutcome(str(row.get("status"))),
        notes=_clean(row.get("notes")),
        photo_url=_clean(row.get("photo_url")),
        signature_url=_clean(row.get("signature_url")),
        gps=gps,
        created_at=created_at,
    )


def parse_route_row(row: dict) -> Route:
    route_id = _clean(row.get("id"))
    if not route_id:
        raise ValueError("route row without id")
    return Route(
        id=route_id,
        name=_clean(row.get("route_name")) or route_id,
        assigned_agent_id=_clean(row.get("assigned_delivery_boy")),
        areas=tuple(str(area) for area in (row.get("areas") or [])),
    )


def parse_agent_row(row: dict) -> DeliveryAgent:
    agent_id = _clean(row.get("id"))
    if not agent_id:
        raise ValueError("user row without id")
    is_active = row.get("is_active")
    return DeliveryAgent(
        id=agent_id,
        name=_clean(row.get("name")) or agent_id,
        mobile=_clean(row.get("mobile")),
        is_active=True if is_active is None else bool(is_active),
    )


def _batched(values: Sequence[str], size: int = IN_FILTER_BATCH_SIZE) -> Iterable[list[str]]:
    for start in range(0, len(values), size):
        yield list(values[start:start + size])


class _SupabaseTableReader:
    """Paged reads with row parsing; failures surface as collaborator errors."""

    collaborator = "store"

    def __init__(self, client: Client, config: AdapterConfig, anomalies: AnomalyLog | None = None) -> None:
        self.client = client
        self.config = config
        self.anomalies = anomalies if anomalies is not None else AnomalyLog()

    def _select_all(self, build_query: Callable[[], Any]) -> list[dict]:
        page_size = self.config.page_size
        rows: list[dict] = []
        start = 0
        try:
            while True:
                response = build_query().range(start, start + page_size - 1).execute()
                page = response.data or []
                rows.extend(page)
                if len(page) < page_size:
                    break
                start += page_size
        except Exception as exc:
            logger.error(f"{self.collaborator} query failed: {exc}")
            raise CollaboratorUnavailableError(self.collaborator, str(exc)) from exc
        return rows

    def _parse_rows(self, rows: Iterable[dict], parser: Callable[[dict], Any]) -> list:
        parsed = []
        for row in rows:
            try:
                parsed.append(parser(row))
            except (ValueError, TypeError) as exc:
                self.anomalies.record(MALFORMED_ROW, f"{self.collaborator}: {exc}")
        return parsed


class SupabaseDirectory(_SupabaseTableReader):
    collaborator = "directory"

    def _customer_query(self, active_only: bool, route_ids: Optional[Sequence[str]] = None):
        query = self.client.table(self.config.customers_table).select("*")
        if active_only:
            query = query.eq("is_active", True)
        if route_ids:
            query = query.in_("route_id", list(route_ids))
        return query.order("customer_id")

    def fetch_active_customers(self, route_ids: Optional[Sequence[str]] = None) -> List[CustomerScheduleRecord]:
        rows = self._select_all(lambda: self._customer_query(True, route_ids))
        return self._parse_rows(rows, parse_customer_row)

    def fetch_customers(self, include_inactive: bool = True) -> List[CustomerScheduleRecord]:
        rows = self._select_all(lambda: self._customer_query(not include_inactive))
        return self._parse_rows(rows, parse_customer_row)

    def fetch_routes(self, route_ids: Optional[Sequence[str]] = None) -> List[Route]:
        def build():
            query = self.client.table(self.config.routes_table).select("*")
            if route_ids:
                query = query.in_("id", list(route_ids))
            return query.order("route_name")

        return self._parse_rows(self._select_all(build), parse_route_row)

    def fetch_agents(self) -> List[DeliveryAgent]:
        rows = self._select_all(
            lambda: self.client.table(self.config.users_table)
            .select("id,name,mobile,is_active")
            .eq("role", self.config.agent_role)
            .order("name")
        )
        return self._parse_rows(rows, parse_agent_row)

    def get_agent(self, agent_id: str) -> Optional[DeliveryAgent]:
        rows = self._select_all(
            lambda: self.client.table(self.config.users_table)
            .select("id,name,mobile,is_active")
            .eq("id", agent_id)
            .eq("role", self.config.agent_role)
        )
        agents = self._parse_rows(rows, parse_agent_row)
        return agents[0] if agents else None


class SupabaseLedger(_SupabaseTableReader, CompletionHooks):
    collaborator = "ledger"

    def __init__(self, client: Client, config: AdapterConfig, anomalies: AnomalyLog | None = None) -> None:
        _SupabaseTableReader.__init__(self, client, config, anomalies)
        CompletionHooks.__init__(self)

    def fetch_deliveries(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
        *,
        customer_ids: Optional[Iterable[str]] = None,
        agent_id: Optional[str] = None,
        statuses: Optional[Iterable[DeliveryOutcome]] = None,
    ) -> List[DeliveryRecord]:
        tz = self.config.tz
        lower = day_bounds(date_from, tz)[0].isoformat() if date_from else None
        upper = day_bounds(date_to, tz)[1].isoformat() if date_to else None
        status_values = [status.value for status in statuses] if statuses is not None else None

        def build(batch: Optional[list[str]] = None):
            query = self.client.table(self.config.deliveries_table).select("*")
            if lower:
                query = query.gte("date", lower)
            if upper:
                query = query.lte("date", upper)
            if batch is not None:
                query = query.in_("customer_id", batch)
            if agent_id:
                query = query.eq("delivery_boy_id", agent_id)
            if status_values is not None:
                query = query.in_("status", status_values)
            return query.order("date", desc=True).order("id")

        if customer_ids is None:
            rows = self._select_all(build)
        else:
            rows = []
            for batch in _batched(sorted(set(customer_ids))):
                rows.extend(self._select_all(lambda: build(batch)))
        return self._parse_rows(rows, lambda row: parse_delivery_row(row, self.config))
