from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal
from threading import Barrier

import pytest

from backend.domain.models import OrderDraft, OrderStatus, PriorityTier, Zone, ZoneClass
from backend.services.order_lifecycle import (
    DuplicateOrderError,
    InvalidTransitionError,
    OrderLifecycle,
    OrderNotFoundError,
)
from backend.services.zone_registry import CapacityExhaustedError, ZoneRegistry


def _build_lifecycle(utilization: int = 90, capacity: int = 150) -> tuple[OrderLifecycle, ZoneRegistry]:
    registry = ZoneRegistry(
        [
            Zone(zone_id="A", capacity=100, utilization=50, zone_class=ZoneClass.PRIORITY),
            Zone(zone_id="C", capacity=capacity, utilization=utilization, zone_class=ZoneClass.ECONOMY),
        ]
    )
    return OrderLifecycle(registry), registry


def _draft(order_id: int, priority: PriorityTier = PriorityTier.LOW) -> OrderDraft:
    return OrderDraft(
        order_id=order_id,
        customer_id=918396,
        created_at=datetime(2024, 12, 25, 15, 45, tzinfo=timezone.utc),
        amount=Decimal("200.75"),
        priority=priority,
    )


def test_created_order_starts_preparing_with_zone():
    lifecycle, registry = _build_lifecycle()

    order = lifecycle.create(_draft(104))

    assert order.status == OrderStatus.PREPARING
    assert order.zone_id == "C"
    assert registry.get_zone("C").utilization == 91


def test_zone_released_only_on_final_completion():
    lifecycle, registry = _build_lifecycle()
    order = lifecycle.create(_draft(104))
    after_create = registry.get_zone("C").utilization

    lifecycle.transition(order.order_id, OrderStatus.READY_FOR_PICKUP)
    assert registry.get_zone("C").utilization == after_create

    completed = lifecycle.transition(order.order_id, OrderStatus.COMPLETED)
    assert completed.status == OrderStatus.COMPLETED
    assert registry.get_zone("C").utilization == after_create - 1


def test_repeated_completion_releases_once():
    lifecycle, registry = _build_lifecycle()
    order = lifecycle.create(_draft(107))
    lifecycle.transition(order.order_id, OrderStatus.READY_FOR_PICKUP)
    lifecycle.transition(order.order_id, OrderStatus.COMPLETED)
    after_completion = registry.get_zone("C").utilization

    lifecycle.transition(order.order_id, OrderStatus.COMPLETED)

    assert registry.get_zone("C").utilization == after_completion


def test_cancel_releases_zone_once():
    lifecycle, registry = _build_lifecycle()
    order = lifecycle.create(_draft(110))

    lifecycle.transition(order.order_id, OrderStatus.CANCELED)
    lifecycle.transition(order.order_id, OrderStatus.CANCELED)

    assert registry.get_zone("C").utilization == 90


def test_leaving_terminal_state_is_rejected_without_side_effects():
    lifecycle, registry = _build_lifecycle()
    order = lifecycle.create(_draft(113))
    lifecycle.transition(order.order_id, OrderStatus.READY_FOR_PICKUP)
    lifecycle.transition(order.order_id, OrderStatus.COMPLETED)
    utilization = registry.get_zone("C").utilization

    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(order.order_id, OrderStatus.PREPARING)
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(order.order_id, OrderStatus.CANCELED)

    assert lifecycle.get_order(order.order_id).status == OrderStatus.COMPLETED
    assert registry.get_zone("C").utilization == utilization


def test_skipping_ready_for_pickup_is_rejected():
    lifecycle, _ = _build_lifecycle()
    order = lifecycle.create(_draft(101, PriorityTier.HIGH))

    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(order.order_id, OrderStatus.COMPLETED)


def test_capacity_exhausted_persists_no_order():
    lifecycle, registry = _build_lifecycle(utilization=1, capacity=1)

    with pytest.raises(CapacityExhaustedError):
        lifecycle.create(_draft(116))

    assert registry.get_zone("C").utilization == 1
    with pytest.raises(OrderNotFoundError):
        lifecycle.get_order(116)
    # the id is free again once capacity returns
    registry.release("C")
    assert lifecycle.create(_draft(116)).zone_id == "C"


def test_duplicate_order_id_is_rejected_without_allocation():
    lifecycle, registry = _build_lifecycle()
    lifecycle.create(_draft(102))
    utilization = registry.get_zone("C").utilization

    with pytest.raises(DuplicateOrderError):
        lifecycle.create(_draft(102))

    assert registry.get_zone("C").utilization == utilization


def test_unknown_order_transition_raises():
    lifecycle, _ = _build_lifecycle()

    with pytest.raises(OrderNotFoundError):
        lifecycle.transition(999, OrderStatus.COMPLETED)


def test_list_orders_filters_by_status():
    lifecycle, _ = _build_lifecycle()
    lifecycle.create(_draft(1))
    second = lifecycle.create(_draft(2))
    lifecycle.transition(second.order_id, OrderStatus.READY_FOR_PICKUP)

    assert [order.order_id for order in lifecycle.list_orders()] == [1, 2]
    ready = lifecycle.list_orders(OrderStatus.READY_FOR_PICKUP)
    assert [order.order_id for order in ready] == [2]


def test_concurrent_completion_releases_exactly_once():
    lifecycle, registry = _build_lifecycle()
    order = lifecycle.create(_draft(105))
    lifecycle.transition(order.order_id, OrderStatus.READY_FOR_PICKUP)
    before = registry.get_zone("C").utilization
    workers = 16
    barrier = Barrier(workers)

    def complete() -> None:
        barrier.wait()
        lifecycle.transition(order.order_id, OrderStatus.COMPLETED)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(lambda _: complete(), range(workers)))

    assert registry.get_zone("C").utilization == before - 1
