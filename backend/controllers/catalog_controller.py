"""Read-only views over zones, pickup slots and the staff directory."""

from __future__ import annotations

from datetime import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_allocation_engine
from backend.domain.models import StaffMember, TimeSlot, Zone, ZoneClass
from backend.services.allocation_engine import AllocationEngine
from backend.services.slot_registry import SlotNotFoundError
from backend.services.zone_registry import ZoneNotFoundError
from backend.utils.config import get_settings


router = APIRouter(tags=["catalog"])


class HealthResponse(BaseModel):
    status: str
    app_name: str
    app_version: str


class ZoneResponse(BaseModel):
    zone_id: str = Field(min_length=1)
    zone_class: ZoneClass
    capacity: int = Field(gt=0)
    utilization: int = Field(ge=0)
    remaining: int = Field(ge=0)

    @classmethod
    def from_domain(cls, zone: Zone) -> "ZoneResponse":
        return cls(
            zone_id=zone.zone_id,
            zone_class=zone.zone_class,
            capacity=zone.capacity,
            utilization=zone.utilization,
            remaining=zone.remaining,
        )


class SlotResponse(BaseModel):
    slot_id: int = Field(gt=0)
    start_time: time
    end_time: time
    capacity: int = Field(gt=0)
    booked: int = Field(ge=0)
    remaining: int = Field(ge=0)

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "SlotResponse":
        return cls(
            slot_id=slot.slot_id,
            start_time=slot.start_time,
            end_time=slot.end_time,
            capacity=slot.capacity,
            booked=slot.booked,
            remaining=slot.remaining,
        )


class StaffResponse(BaseModel):
    staff_id: int
    name: str
    role: str
    zone_id: str

    @classmethod
    def from_domain(cls, member: StaffMember) -> "StaffResponse":
        return cls(
            staff_id=member.staff_id,
            name=member.name,
            role=member.role,
            zone_id=member.zone_id,
        )


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
def health(request: Request) -> HealthResponse:
    engine_ready = getattr(request.app.state, "allocation_engine", None) is not None
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return HealthResponse(
        status="ok" if engine_ready else "starting",
        app_name=settings.app_name,
        app_version=settings.app_version,
    )


@router.get("/zones", response_model=list[ZoneResponse], status_code=status.HTTP_200_OK)
def list_zones(
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> list[ZoneResponse]:
    return [ZoneResponse.from_domain(zone) for zone in engine.list_zones()]


@router.get("/zones/{zone_id}", response_model=ZoneResponse, status_code=status.HTTP_200_OK)
def get_zone(
    zone_id: str,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> ZoneResponse:
    try:
        return ZoneResponse.from_domain(engine.get_zone(zone_id))
    except ZoneNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get("/slots", response_model=list[SlotResponse], status_code=status.HTTP_200_OK)
def list_slots(
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> list[SlotResponse]:
    return [SlotResponse.from_domain(slot) for slot in engine.list_slots()]


@router.get("/slots/{slot_id}", response_model=SlotResponse, status_code=status.HTTP_200_OK)
def get_slot(
    slot_id: int,
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> SlotResponse:
    try:
        return SlotResponse.from_domain(engine.get_slot(slot_id))
    except SlotNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get("/staff", response_model=list[StaffResponse], status_code=status.HTTP_200_OK)
def list_staff(
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> list[StaffResponse]:
    return [StaffResponse.from_domain(member) for member in engine.list_staff()]
