"""Zone selection and utilization accounting."""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass, field
from threading import Lock
from typing import Iterable, Optional

from backend.domain.constraints import resolve_tier_routing
from backend.domain.errors import AllocationError
from backend.domain.models import PriorityTier, Zone, ZoneClass
from backend.utils.config import DEFAULT_TIER_ZONE_CLASSES
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class ZoneRegistryError(AllocationError):
    """Base exception for zone allocation failures."""


class CapacityExhaustedError(ZoneRegistryError):
    """Raised when no zone of the required class has a free unit."""


class ZoneNotFoundError(ZoneRegistryError):
    """Raised when a zone id is not provisioned."""


@dataclass
class _ZoneState:
    zone_id: str
    capacity: int
    utilization: int
    zone_class: ZoneClass
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def snapshot(self) -> Zone:
        return Zone(
            zone_id=self.zone_id,
            capacity=self.capacity,
            utilization=self.utilization,
            zone_class=self.zone_class,
        )


class ZoneRegistry:
    """Owns zone utilization counters and resolves a priority tier to a zone.

    Every zone carries its own lock. ``allocate`` takes the locks of all
    zones in the requested class, always in ascending zone id order, so two
    allocations for the same class serialize while traffic against other
    classes proceeds untouched. ``release`` only needs the one zone lock.
    """

    def __init__(
        self,
        zones: Iterable[Zone],
        tier_zone_classes: Optional[dict[str, str]] = None,
    ) -> None:
        self._zones: dict[str, _ZoneState] = {}
        for zone in zones:
            if zone.capacity <= 0:
                raise ValueError(f"zone {zone.zone_id} capacity must be > 0")
            if not 0 <= zone.utilization <= zone.capacity:
                raise ValueError(
                    f"zone {zone.zone_id} utilization must be within [0, capacity]"
                )
            if zone.zone_id in self._zones:
                raise ValueError(f"zone {zone.zone_id} is provisioned twice")
            self._zones[zone.zone_id] = _ZoneState(
                zone_id=zone.zone_id,
                capacity=zone.capacity,
                utilization=zone.utilization,
                zone_class=ZoneClass(zone.zone_class),
            )
        self._routing = resolve_tier_routing(tier_zone_classes or DEFAULT_TIER_ZONE_CLASSES)

    def zone_class_for(self, priority_tier: PriorityTier) -> ZoneClass:
        try:
            return self._routing[PriorityTier(priority_tier)]
        except KeyError as exc:
            raise CapacityExhaustedError(
                f"no zone class is routed for priority tier {priority_tier}"
            ) from exc

    def allocate(self, priority_tier: PriorityTier) -> str:
        """Pick the freest zone for the tier and count one unit against it.

        Ties on remaining capacity go to the lowest zone id.
        """
        zone_class = self.zone_class_for(priority_tier)
        candidates = sorted(
            (state for state in self._zones.values() if state.zone_class == zone_class),
            key=lambda state: state.zone_id,
        )
        with ExitStack() as stack:
            for state in candidates:
                stack.enter_context(state.lock)

            chosen: Optional[_ZoneState] = None
            for state in candidates:
                remaining = state.capacity - state.utilization
                if remaining <= 0:
                    continue
                if chosen is None or remaining > chosen.capacity - chosen.utilization:
                    chosen = state

            if chosen is None:
                logger.warning(
                    "Capacity exhausted for tier=%s class=%s",
                    PriorityTier(priority_tier).value,
                    zone_class.value,
                )
                raise CapacityExhaustedError(
                    f"no {zone_class.value} zone has free capacity"
                )
            chosen.utilization += 1
            utilization = chosen.utilization

        logger.info(
            "Allocated zone=%s tier=%s utilization=%d/%d",
            chosen.zone_id,
            PriorityTier(priority_tier).value,
            utilization,
            chosen.capacity,
        )
        return chosen.zone_id

    def release(self, zone_id: str) -> Zone:
        state = self._require(zone_id)
        with state.lock:
            released = state.utilization > 0
            if released:
                state.utilization -= 1
            snapshot = state.snapshot()
        if released:
            logger.info(
                "Released zone=%s utilization=%d/%d",
                zone_id,
                snapshot.utilization,
                snapshot.capacity,
            )
        else:
            logger.warning("Release on empty zone=%s ignored", zone_id)
        return snapshot

    def get_zone(self, zone_id: str) -> Zone:
        state = self._require(zone_id)
        with state.lock:
            return state.snapshot()

    def list_zones(self) -> list[Zone]:
        return [self.get_zone(zone_id) for zone_id in sorted(self._zones)]

    def _require(self, zone_id: str) -> _ZoneState:
        state = self._zones.get(zone_id)
        if state is None:
            raise ZoneNotFoundError(f"zone_id {zone_id} not found")
        return state
