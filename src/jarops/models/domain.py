"""Domain models for customers, routes, agents and delivery attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class Weekday(str, Enum):
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"
    SUN = "Sun"


# Indexed by date.weekday() (Monday == 0).
WEEKDAYS: tuple[Weekday, ...] = tuple(Weekday)


class ScheduleKind(str, Enum):
    DAILY = "daily"
    ALTERNATE = "alternate"
    CUSTOM = "custom"


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    NOT_DELIVERED = "not_delivered"
    PARTIAL = "partial"


class TaskStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    NOT_DELIVERED = "not_delivered"
    PARTIAL = "partial"

    @classmethod
    def from_outcome(cls, outcome: DeliveryOutcome) -> "TaskStatus":
        return cls(outcome.value)


@dataclass(frozen=True, slots=True)
class SchedulePolicy:
    """Recurring delivery policy embedded in a customer profile.

    ``reference_date`` anchors the alternate-day cycle. Profiles created before
    the anchor existed carry ``None`` and keep the always-due behaviour.
    """

    kind: ScheduleKind = ScheduleKind.DAILY
    custom_days: frozenset[Weekday] = frozenset()
    reference_date: Optional[date] = None

    def validate(self) -> None:
        """Write-time shape check; resolution never calls this."""
        if self.kind is ScheduleKind.CUSTOM and not self.custom_days:
            raise ValueError("Custom schedule requires at least one delivery day.")
        if self.kind is not ScheduleKind.CUSTOM and self.custom_days:
            raise ValueError(f"Schedule '{self.kind.value}' does not take custom days.")


@dataclass(slots=True)
class CustomerScheduleRecord:
    """Delivery-relevant state of one customer profile."""

    customer_id: str
    route_id: Optional[str]
    policy: Optional[SchedulePolicy]
    jar_balance: int = 0
    is_active: bool = True
    name: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    delivery_instructions: Optional[str] = None


@dataclass(frozen=True, slots=True)
class GpsLocation:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class DeliveryRecord:
    """One delivery attempt. Historical fact, never edited in place."""

    id: str
    customer_id: str
    agent_id: Optional[str]
    date: date
    delivered_qty: int
    returned_qty: int
    status: DeliveryOutcome
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    signature_url: Optional[str] = None
    gps: Optional[GpsLocation] = None
    created_at: Optional[datetime] = None

    @property
    def net_jars(self) -> int:
        return self.delivered_qty - self.returned_qty


@dataclass(slots=True)
class Route:
    id: str
    name: str
    assigned_agent_id: Optional[str] = None
    areas: tuple[str, ...] = ()


@dataclass(slots=True)
class DeliveryAgent:
    id: str
    name: str
    mobile: Optional[str] = None
    is_active: bool = True


@dataclass(slots=True)
class ScheduledTask:
    """Reconciliation output for one due customer on one date."""

    customer: CustomerScheduleRecord
    route: Optional[Route]
    due: bool
    status: TaskStatus
    delivery: Optional[DeliveryRecord] = None
    target_date: Optional[date] = field(default=None, compare=False)

    @property
    def is_pending(self) -> bool:
        return self.status is TaskStatus.PENDING
