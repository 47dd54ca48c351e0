"""Domain-level validation rules for allocation configuration and order status."""

from __future__ import annotations

from dataclasses import dataclass

from backend.domain.models import OrderStatus, PriorityTier, ZoneClass


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PREPARING: frozenset(
        {OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELED}
    ),
    OrderStatus.READY_FOR_PICKUP: frozenset(
        {OrderStatus.COMPLETED, OrderStatus.CANCELED}
    ),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}


@dataclass(frozen=True)
class EngineConfig:
    slot_default_capacity: int
    slot_day_start_hour: int
    slot_day_end_hour: int
    tier_zone_classes: dict[str, str]


def is_allowed_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Same-status updates are accepted as no-ops."""
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS[current]


def resolve_tier_routing(tier_zone_classes: dict[str, str]) -> dict[PriorityTier, ZoneClass]:
    """Convert raw routing settings into enum pairs, rejecting unknown names."""
    routing: dict[PriorityTier, ZoneClass] = {}
    for raw_tier, raw_class in tier_zone_classes.items():
        try:
            tier = PriorityTier(raw_tier)
        except ValueError as exc:
            raise ValueError(f"unknown priority tier {raw_tier!r}") from exc
        try:
            zone_class = ZoneClass(raw_class)
        except ValueError as exc:
            raise ValueError(f"unknown zone class {raw_class!r} for tier {raw_tier}") from exc
        routing[tier] = zone_class
    return routing


def validate_engine_config(config: EngineConfig) -> None:
    if config.slot_default_capacity <= 0:
        raise ValueError("slot_default_capacity must be > 0")
    if not 0 <= config.slot_day_start_hour <= 23:
        raise ValueError("slot_day_start_hour must be between 0 and 23")
    if not 1 <= config.slot_day_end_hour <= 23:
        raise ValueError("slot_day_end_hour must be between 1 and 23")
    if config.slot_day_start_hour >= config.slot_day_end_hour:
        raise ValueError("slot_day_start_hour must be less than slot_day_end_hour")
    routing = resolve_tier_routing(config.tier_zone_classes)
    missing = [tier.value for tier in PriorityTier if tier not in routing]
    if missing:
        raise ValueError(f"tier_zone_classes is missing tiers: {', '.join(missing)}")
