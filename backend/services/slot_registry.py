"""Pickup time-slot booking with overbooking prevention."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from threading import Lock
from typing import Callable, Iterable, Optional

from backend.domain.errors import AllocationError
from backend.domain.models import TimeSlot
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class SlotRegistryError(AllocationError):
    """Base exception for slot booking failures."""


class SlotFullError(SlotRegistryError):
    """Raised when a slot has no remaining capacity. Callers offer another slot."""


class SlotNotFoundError(SlotRegistryError):
    """Raised when a slot id is not provisioned."""


@dataclass
class _SlotState:
    slot_id: int
    start_time: time
    end_time: time
    capacity: int
    booked: int
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def snapshot(self) -> TimeSlot:
        return TimeSlot(
            slot_id=self.slot_id,
            start_time=self.start_time,
            end_time=self.end_time,
            capacity=self.capacity,
            booked=self.booked,
        )


class SlotRegistry:
    """Owns slot booking counters behind one lock per slot."""

    def __init__(self, slots: Iterable[TimeSlot]) -> None:
        self._slots: dict[int, _SlotState] = {}
        for slot in slots:
            if slot.capacity <= 0:
                raise ValueError(f"slot {slot.slot_id} capacity must be > 0")
            if not 0 <= slot.booked <= slot.capacity:
                raise ValueError(f"slot {slot.slot_id} booked must be within [0, capacity]")
            if slot.start_time >= slot.end_time:
                raise ValueError(f"slot {slot.slot_id} must start before it ends")
            if slot.slot_id in self._slots:
                raise ValueError(f"slot {slot.slot_id} is provisioned twice")
            self._slots[slot.slot_id] = _SlotState(
                slot_id=slot.slot_id,
                start_time=slot.start_time,
                end_time=slot.end_time,
                capacity=slot.capacity,
                booked=slot.booked,
            )

    def reserve(
        self,
        slot_id: int,
        on_reserve: Optional[Callable[[], None]] = None,
    ) -> TimeSlot:
        """Check remaining capacity and book one unit under the slot lock.

        ``on_reserve`` runs inside the lock after the capacity check; if it
        raises, the booking counter is left untouched.
        """
        state = self._require(slot_id)
        with state.lock:
            remaining = state.capacity - state.booked
            if remaining <= 0:
                logger.warning(
                    "Slot full slot=%d booked=%d/%d",
                    slot_id,
                    state.booked,
                    state.capacity,
                )
                raise SlotFullError(f"slot_id {slot_id} has no remaining capacity")
            if on_reserve is not None:
                on_reserve()
            state.booked += 1
            snapshot = state.snapshot()
        logger.info(
            "Reserved slot=%d booked=%d/%d",
            slot_id,
            snapshot.booked,
            snapshot.capacity,
        )
        return snapshot

    def release(
        self,
        slot_id: int,
        on_release: Optional[Callable[[], None]] = None,
    ) -> TimeSlot:
        """Return one unit; ``on_release`` runs first under the slot lock and may veto."""
        state = self._require(slot_id)
        with state.lock:
            if on_release is not None:
                on_release()
            released = state.booked > 0
            if released:
                state.booked -= 1
            snapshot = state.snapshot()
        if released:
            logger.info(
                "Released slot=%d booked=%d/%d",
                slot_id,
                snapshot.booked,
                snapshot.capacity,
            )
        else:
            logger.warning("Release on empty slot=%d ignored", slot_id)
        return snapshot

    def get_slot(self, slot_id: int) -> TimeSlot:
        state = self._require(slot_id)
        with state.lock:
            return state.snapshot()

    def list_slots(self) -> list[TimeSlot]:
        return [self.get_slot(slot_id) for slot_id in sorted(self._slots)]

    def _require(self, slot_id: int) -> _SlotState:
        state = self._slots.get(slot_id)
        if state is None:
            raise SlotNotFoundError(f"slot_id {slot_id} not found")
        return state
