"""HTTP controller layer for order intake and appointment booking."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_allocation_engine
from backend.domain.models import (
    Appointment,
    AppointmentAssignment,
    Order,
    OrderDraft,
    OrderStatus,
    PriorityTier,
)
from backend.services.allocation_engine import AllocationEngine, StaffNotFoundError
from backend.services.appointment_binding import (
    AppointmentAlreadyAssignedError,
    AssignmentNotFoundError,
)
from backend.services.order_lifecycle import (
    DuplicateOrderError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from backend.services.slot_registry import SlotFullError, SlotNotFoundError
from backend.services.zone_registry import CapacityExhaustedError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["allocation"])


class PlaceOrderRequest(BaseModel):
    """Order intake DTO validated before entering the engine."""

    order_id: int = Field(gt=0)
    customer_id: int = Field(gt=0)
    created_at: datetime | None = None
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    priority: PriorityTier


class OrderResponse(BaseModel):
    order_id: int
    customer_id: int
    created_at: datetime
    status: OrderStatus
    amount: Decimal
    priority: PriorityTier
    zone_id: str | None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            order_id=order.order_id,
            customer_id=order.customer_id,
            created_at=order.created_at,
            status=order.status,
            amount=order.amount,
            priority=order.priority,
            zone_id=order.zone_id,
        )


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus


class ScheduleAppointmentRequest(BaseModel):
    appointment_id: int = Field(gt=0)
    order_id: int = Field(gt=0)
    customer_id: int = Field(gt=0)
    appointment_time: datetime | None = None
    slot_id: int = Field(gt=0)
    staff_id: int = Field(gt=0)


class AssignmentResponse(BaseModel):
    assignment_id: int = Field(gt=0)
    appointment_id: int = Field(gt=0)
    slot_id: int = Field(gt=0)
    staff_id: int = Field(gt=0)

    @classmethod
    def from_domain(cls, assignment: AppointmentAssignment) -> "AssignmentResponse":
        return cls(
            assignment_id=assignment.assignment_id,
            appointment_id=assignment.appointment_id,
            slot_id=assignment.slot_id,
            staff_id=assignment.staff_id,
        )


@router.post(
    "/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    payload: PlaceOrderRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> OrderResponse:
    """Bind a new order to a zone of its priority tier."""
    draft = OrderDraft(
        order_id=payload.order_id,
        customer_id=payload.customer_id,
        created_at=payload.created_at or datetime.now(timezone.utc),
        amount=payload.amount,
        priority=payload.priority,
    )
    try:
        return OrderResponse.from_domain(engine.place_order(draft))
    except (CapacityExhaustedError, DuplicateOrderError) as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected order placement failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to place order",
        ) from exc


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    status_code=status.HTTP_200_OK,
)
def get_order(
    order_id: int,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> OrderResponse:
    try:
        return OrderResponse.from_domain(engine.get_order(order_id))
    except OrderNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.patch(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    status_code=status.HTTP_200_OK,
)
def update_order_status(
    order_id: int,
    payload: UpdateOrderStatusRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> OrderResponse:
    """Move an order along its status graph; terminal moves free the zone."""
    try:
        return OrderResponse.from_domain(engine.update_order_status(order_id, payload.status))
    except OrderNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected order status failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status",
        ) from exc


@router.post(
    "/appointments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def schedule_appointment(
    payload: ScheduleAppointmentRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> AssignmentResponse:
    """Reserve a pickup slot and assign staff to the appointment."""
    appointment = Appointment(
        appointment_id=payload.appointment_id,
        order_id=payload.order_id,
        customer_id=payload.customer_id,
        appointment_time=payload.appointment_time,
    )
    try:
        assignment = engine.schedule_appointment(
            appointment,
            slot_id=payload.slot_id,
            staff_id=payload.staff_id,
        )
        return AssignmentResponse.from_domain(assignment)
    except (SlotFullError, AppointmentAlreadyAssignedError) as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except (SlotNotFoundError, StaffNotFoundError) as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected appointment scheduling failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to schedule appointment",
        ) from exc


@router.get(
    "/assignments/{assignment_id}",
    response_model=AssignmentResponse,
    status_code=status.HTTP_200_OK,
)
def get_assignment(
    assignment_id: int,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> AssignmentResponse:
    try:
        return AssignmentResponse.from_domain(engine.get_assignment(assignment_id))
    except AssignmentNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.delete(
    "/assignments/{assignment_id}",
    response_model=AssignmentResponse,
    status_code=status.HTTP_200_OK,
)
def cancel_assignment(
    assignment_id: int,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> AssignmentResponse:
    try:
        return AssignmentResponse.from_domain(engine.cancel_assignment(assignment_id))
    except AssignmentNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment cancellation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel assignment",
        ) from exc
