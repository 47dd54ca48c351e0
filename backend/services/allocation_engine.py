"""Facade over zone, slot, order and appointment components."""

from __future__ import annotations

from typing import Mapping, Optional

from backend.domain.constraints import EngineConfig, validate_engine_config
from backend.domain.errors import AllocationError
from backend.domain.models import (
    Appointment,
    AppointmentAssignment,
    Order,
    OrderDraft,
    OrderStatus,
    StaffMember,
    TimeSlot,
    Zone,
)
from backend.repository.data_repository import DataRepository
from backend.services.appointment_binding import AppointmentBinding
from backend.services.order_lifecycle import OrderLifecycle
from backend.services.slot_registry import SlotRegistry
from backend.services.zone_registry import ZoneRegistry
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class StaffNotFoundError(AllocationError):
    """Raised when an assignment references staff missing from the directory."""


def validate_settings(settings: Settings) -> None:
    """Reject slot window, capacity or tier routing values before anything is provisioned."""
    validate_engine_config(
        EngineConfig(
            slot_default_capacity=settings.slot_default_capacity,
            slot_day_start_hour=settings.slot_day_start_hour,
            slot_day_end_hour=settings.slot_day_end_hour,
            tier_zone_classes=settings.tier_zone_classes,
        )
    )


class AllocationEngine:
    """Single entry point for order intake and appointment booking.

    Order placement only touches zones and appointment booking only touches
    slots, so no call path ever holds locks on both resources.
    """

    def __init__(
        self,
        zone_registry: ZoneRegistry,
        slot_registry: SlotRegistry,
        staff_directory: Optional[Mapping[int, StaffMember]] = None,
    ) -> None:
        self._zone_registry = zone_registry
        self._slot_registry = slot_registry
        self._orders = OrderLifecycle(zone_registry)
        self._appointments = AppointmentBinding(slot_registry)
        self._staff_directory = staff_directory

    @classmethod
    def from_repository(
        cls,
        repository: DataRepository,
        settings: Optional[Settings] = None,
    ) -> "AllocationEngine":
        """Provision registries from a snapshot of the persisted catalog."""
        resolved = settings or get_settings()
        validate_settings(resolved)
        zones = repository.list_zones()
        slots = repository.list_time_slots()
        staff = {member.staff_id: member for member in repository.list_staff()}
        logger.info(
            "Engine provisioned with %d zones, %d slots, %d staff",
            len(zones),
            len(slots),
            len(staff),
        )
        return cls(
            zone_registry=ZoneRegistry(zones, tier_zone_classes=resolved.tier_zone_classes),
            slot_registry=SlotRegistry(slots),
            staff_directory=staff,
        )

    def place_order(self, order: OrderDraft) -> Order:
        return self._orders.create(order)

    def update_order_status(self, order_id: int, new_status: OrderStatus) -> Order:
        return self._orders.transition(order_id, new_status)

    def schedule_appointment(
        self,
        appointment: Appointment,
        slot_id: int,
        staff_id: int,
    ) -> AppointmentAssignment:
        if self._staff_directory is not None and staff_id not in self._staff_directory:
            raise StaffNotFoundError(f"staff_id {staff_id} not found")
        return self._appointments.bind(appointment.appointment_id, slot_id, staff_id)

    def cancel_assignment(self, assignment_id: int) -> AppointmentAssignment:
        return self._appointments.unbind(assignment_id)

    def get_order(self, order_id: int) -> Order:
        return self._orders.get_order(order_id)

    def list_orders(self, status: Optional[OrderStatus] = None) -> list[Order]:
        return self._orders.list_orders(status)

    def get_assignment(self, assignment_id: int) -> AppointmentAssignment:
        return self._appointments.get_assignment(assignment_id)

    def list_assignments(self, slot_id: Optional[int] = None) -> list[AppointmentAssignment]:
        return self._appointments.list_assignments(slot_id)

    def get_zone(self, zone_id: str) -> Zone:
        return self._zone_registry.get_zone(zone_id)

    def list_zones(self) -> list[Zone]:
        return self._zone_registry.list_zones()

    def get_slot(self, slot_id: int) -> TimeSlot:
        return self._slot_registry.get_slot(slot_id)

    def list_slots(self) -> list[TimeSlot]:
        return self._slot_registry.list_slots()

    def list_staff(self) -> list[StaffMember]:
        if self._staff_directory is None:
            return []
        return [self._staff_directory[key] for key in sorted(self._staff_directory)]
