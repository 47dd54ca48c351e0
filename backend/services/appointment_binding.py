"""Binding of pickup appointments to time slots and staff."""

from __future__ import annotations

from itertools import count
from threading import RLock
from typing import Optional

from backend.domain.errors import AllocationError
from backend.domain.models import AppointmentAssignment
from backend.services.slot_registry import SlotRegistry
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AppointmentBindingError(AllocationError):
    """Base exception for appointment binding failures."""


class AssignmentNotFoundError(AppointmentBindingError):
    """Raised when an assignment id is unknown or already cancelled."""


class AppointmentAlreadyAssignedError(AppointmentBindingError):
    """Raised when an appointment already holds a live assignment."""


class AppointmentBinding:
    """Keeps live assignments in step with slot booking counters.

    Records are created and dropped from hooks that ``SlotRegistry`` runs
    under the slot lock, so a slot's ``booked`` counter and its live
    assignments change in the same critical section. Lock order is always
    slot lock then ``self._lock``; the binding lock is never held while a
    slot lock is requested.
    """

    def __init__(self, slot_registry: SlotRegistry) -> None:
        self._slot_registry = slot_registry
        self._assignments: dict[int, AppointmentAssignment] = {}
        self._by_appointment: dict[int, int] = {}
        self._claimed_appointments: set[int] = set()
        self._ids = count(1)
        self._lock = RLock()

    def bind(self, appointment_id: int, slot_id: int, staff_id: int) -> AppointmentAssignment:
        with self._lock:
            if (
                appointment_id in self._by_appointment
                or appointment_id in self._claimed_appointments
            ):
                raise AppointmentAlreadyAssignedError(
                    f"appointment_id {appointment_id} already has a live assignment"
                )
            self._claimed_appointments.add(appointment_id)

        created: list[AppointmentAssignment] = []

        def record() -> None:
            with self._lock:
                assignment = AppointmentAssignment(
                    assignment_id=next(self._ids),
                    appointment_id=appointment_id,
                    slot_id=slot_id,
                    staff_id=staff_id,
                )
                self._assignments[assignment.assignment_id] = assignment
                self._by_appointment[appointment_id] = assignment.assignment_id
            created.append(assignment)

        try:
            self._slot_registry.reserve(slot_id, on_reserve=record)
        finally:
            with self._lock:
                self._claimed_appointments.discard(appointment_id)

        assignment = created[0]
        logger.info(
            "Assignment %d bound appointment=%d slot=%d staff=%d",
            assignment.assignment_id,
            appointment_id,
            slot_id,
            staff_id,
        )
        return assignment

    def unbind(self, assignment_id: int) -> AppointmentAssignment:
        assignment = self.get_assignment(assignment_id)

        def drop() -> None:
            with self._lock:
                if self._assignments.pop(assignment_id, None) is None:
                    # lost the race to a concurrent unbind of the same id
                    raise AssignmentNotFoundError(f"assignment_id {assignment_id} not found")
                self._by_appointment.pop(assignment.appointment_id, None)

        self._slot_registry.release(assignment.slot_id, on_release=drop)
        logger.info(
            "Assignment %d removed; slot=%d released",
            assignment_id,
            assignment.slot_id,
        )
        return assignment

    def get_assignment(self, assignment_id: int) -> AppointmentAssignment:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(f"assignment_id {assignment_id} not found")
        return assignment

    def list_assignments(self, slot_id: Optional[int] = None) -> list[AppointmentAssignment]:
        with self._lock:
            assignments = [self._assignments[key] for key in sorted(self._assignments)]
        if slot_id is None:
            return assignments
        return [item for item in assignments if item.slot_id == slot_id]

    def count_live_assignments(self, slot_id: int) -> int:
        return len(self.list_assignments(slot_id=slot_id))
