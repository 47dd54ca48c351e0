"""Domain models for zone and pickup-slot allocation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional


class PriorityTier(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ZoneClass(str, Enum):
    PRIORITY = "Priority"
    STANDARD = "Standard"
    ECONOMY = "Economy"


class OrderStatus(str, Enum):
    PREPARING = "Preparing"
    READY_FOR_PICKUP = "Ready for Pickup"
    COMPLETED = "Completed"
    CANCELED = "Canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELED)


@dataclass(frozen=True)
class Zone:
    """Point-in-time view of a zone; the registry owns the live counter."""

    zone_id: str
    capacity: int
    utilization: int
    zone_class: ZoneClass

    @property
    def remaining(self) -> int:
        return self.capacity - self.utilization


@dataclass(frozen=True)
class TimeSlot:
    slot_id: int
    start_time: time
    end_time: time
    capacity: int
    booked: int

    @property
    def remaining(self) -> int:
        return self.capacity - self.booked


@dataclass(frozen=True)
class StaffMember:
    staff_id: int
    name: str
    role: str
    zone_id: str


@dataclass(frozen=True)
class OrderDraft:
    """Order as submitted by intake, before a zone is bound."""

    order_id: int
    customer_id: int
    created_at: datetime
    amount: Decimal
    priority: PriorityTier


@dataclass(frozen=True)
class Order:
    order_id: int
    customer_id: int
    created_at: datetime
    status: OrderStatus
    amount: Decimal
    priority: PriorityTier
    zone_id: Optional[str]


@dataclass(frozen=True)
class Appointment:
    """Pickup appointment as known to the booking desk."""

    appointment_id: int
    order_id: int
    customer_id: int
    appointment_time: Optional[datetime] = None


@dataclass(frozen=True)
class AppointmentAssignment:
    assignment_id: int
    appointment_id: int
    slot_id: int
    staff_id: int
