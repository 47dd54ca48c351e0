"""Order status state machine and its zone accounting."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from threading import Lock, RLock
from typing import Optional

from backend.domain.constraints import is_allowed_transition
from backend.domain.errors import AllocationError
from backend.domain.models import Order, OrderDraft, OrderStatus
from backend.services.zone_registry import ZoneRegistry
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class OrderLifecycleError(AllocationError):
    """Base exception for order lifecycle failures."""


class InvalidTransitionError(OrderLifecycleError):
    """Raised when a status change does not follow the order state graph."""


class OrderNotFoundError(OrderLifecycleError):
    """Raised when an order id is unknown."""


class DuplicateOrderError(OrderLifecycleError):
    """Raised when intake submits an order id that already exists."""


@dataclass
class _OrderRecord:
    order: Order
    zone_released: bool = False
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)


class OrderLifecycle:
    """Creates orders bound to a zone and releases that zone exactly once.

    The zone unit is returned on the first transition into ``Completed`` or
    ``Canceled``. Both states are terminal, so the release flag on the
    record is the only thing standing between a repeated update and a
    second decrement.
    """

    def __init__(self, zone_registry: ZoneRegistry) -> None:
        self._zone_registry = zone_registry
        self._orders: dict[int, _OrderRecord] = {}
        self._claimed_ids: set[int] = set()
        self._lock = RLock()

    def create(self, draft: OrderDraft) -> Order:
        with self._lock:
            if draft.order_id in self._orders or draft.order_id in self._claimed_ids:
                raise DuplicateOrderError(f"order_id {draft.order_id} already exists")
            self._claimed_ids.add(draft.order_id)

        try:
            zone_id = self._zone_registry.allocate(draft.priority)
            order = Order(
                order_id=draft.order_id,
                customer_id=draft.customer_id,
                created_at=draft.created_at,
                status=OrderStatus.PREPARING,
                amount=draft.amount,
                priority=draft.priority,
                zone_id=zone_id,
            )
            with self._lock:
                self._orders[order.order_id] = _OrderRecord(order=order)
        finally:
            with self._lock:
                self._claimed_ids.discard(draft.order_id)

        logger.info("Order %d created in zone=%s", order.order_id, zone_id)
        return order

    def transition(self, order_id: int, new_status: OrderStatus) -> Order:
        record = self._require(order_id)
        target = OrderStatus(new_status)
        with record.lock:
            current = record.order.status
            if not is_allowed_transition(current, target):
                logger.warning(
                    "Rejected transition order=%d %s -> %s",
                    order_id,
                    current.value,
                    target.value,
                )
                raise InvalidTransitionError(
                    f"order {order_id} cannot move from {current.value} to {target.value}"
                )
            if current == target:
                return record.order

            zone_id = record.order.zone_id
            if target.is_terminal and not record.zone_released and zone_id is not None:
                self._zone_registry.release(zone_id)
                record.zone_released = True

            record.order = replace(record.order, status=target)
            logger.info(
                "Order %d moved %s -> %s",
                order_id,
                current.value,
                target.value,
            )
            return record.order

    def get_order(self, order_id: int) -> Order:
        record = self._require(order_id)
        with record.lock:
            return record.order

    def list_orders(self, status: Optional[OrderStatus] = None) -> list[Order]:
        with self._lock:
            order_ids = sorted(self._orders)
        orders = [self.get_order(order_id) for order_id in order_ids]
        if status is None:
            return orders
        return [order for order in orders if order.status == OrderStatus(status)]

    def _require(self, order_id: int) -> _OrderRecord:
        with self._lock:
            record = self._orders.get(order_id)
        if record is None:
            raise OrderNotFoundError(f"order_id {order_id} not found")
        return record
