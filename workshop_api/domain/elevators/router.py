"""Elevator router - FastAPI endpoints for elevators, reservations and usage"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Elevator, ElevatorReservation, ElevatorUsage, Tenant
from ...tenancy import get_current_tenant
from .schemas import (
    ElevatorCreate,
    ElevatorListResponse,
    ElevatorResponse,
    ElevatorStatus,
    ElevatorStatusResponse,
    ElevatorType,
    ElevatorUpdate,
    EndUsageRequest,
    ReservationResponse,
    ReserveRequest,
    StartUsageRequest,
    UsageHistoryResponse,
    UsageResponse,
)
from .service import ElevatorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/elevators", tags=["Elevators"])


def get_elevator_service(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
) -> ElevatorService:
    """Dependency injection for ElevatorService"""
    return ElevatorService(db, tenant.id)


def to_elevator_response(e: Elevator) -> ElevatorResponse:
    return ElevatorResponse(
        id=e.id,
        name=e.name,
        number=e.number,
        type=e.type,
        capacity=e.capacity,
        status=e.status,
        location=e.location,
        notes=e.notes,
        createdAt=e.created_at,
        updatedAt=e.updated_at,
    )


def to_usage_response(u: ElevatorUsage) -> UsageResponse:
    customer = None
    if u.service_order and u.service_order.customer:
        customer = u.service_order.customer
    elif u.vehicle and u.vehicle.customer:
        customer = u.vehicle.customer
    return UsageResponse(
        id=u.id,
        elevatorId=u.elevator_id,
        serviceOrderId=u.service_order_id,
        serviceOrderNumber=u.service_order.number if u.service_order else None,
        vehicleId=u.vehicle_id,
        vehiclePlate=u.vehicle.plate if u.vehicle else None,
        customerName=customer.name if customer else None,
        startTime=u.start_time,
        endTime=u.end_time,
        durationMinutes=u.duration_minutes,
        notes=u.notes,
    )


def to_reservation_response(r: ElevatorReservation) -> ReservationResponse:
    return ReservationResponse(
        id=r.id,
        elevatorId=r.elevator_id,
        serviceOrderId=r.service_order_id,
        vehicleId=r.vehicle_id,
        quoteId=r.quote_id,
        startTime=r.start_time,
        endTime=r.end_time,
        status=r.status,
        notes=r.notes,
        createdAt=r.created_at,
    )


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=ElevatorResponse, status_code=201)
async def create_elevator(
    data: ElevatorCreate,
    service: ElevatorService = Depends(get_elevator_service),
):
    """Register a new elevator"""
    elevator = service.create_elevator(data)
    return to_elevator_response(elevator)


@router.get("", response_model=ElevatorListResponse)
async def list_elevators(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    name: Optional[str] = Query(None),
    number: Optional[str] = Query(None),
    type: Optional[ElevatorType] = Query(None),
    status: Optional[ElevatorStatus] = Query(None),
    service: ElevatorService = Depends(get_elevator_service),
):
    result = service.list_elevators(
        page=page,
        limit=limit,
        name=name,
        number=number,
        type=type.value if type else None,
        status=status.value if status else None,
    )
    return ElevatorListResponse(
        data=[to_elevator_response(e) for e in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )


@router.get("/status/overview", response_model=list[ElevatorStatusResponse])
async def get_status_overview(service: ElevatorService = Depends(get_elevator_service)):
    """Every elevator with its current usage"""
    return [
        ElevatorStatusResponse(
            id=elevator.id,
            name=elevator.name,
            number=elevator.number,
            type=elevator.type,
            status=elevator.status,
            currentUsage=to_usage_response(usage) if usage else None,
        )
        for elevator, usage in service.status_overview()
    ]


@router.get("/{elevator_id}", response_model=ElevatorResponse)
async def get_elevator(
    elevator_id: str,
    service: ElevatorService = Depends(get_elevator_service),
):
    elevator = service.get_elevator(elevator_id)
    return to_elevator_response(elevator)


@router.patch("/{elevator_id}", response_model=ElevatorResponse)
async def update_elevator(
    elevator_id: str,
    data: ElevatorUpdate,
    service: ElevatorService = Depends(get_elevator_service),
):
    elevator = service.update_elevator(elevator_id, data)
    return to_elevator_response(elevator)


@router.delete("/{elevator_id}")
async def delete_elevator(
    elevator_id: str,
    service: ElevatorService = Depends(get_elevator_service),
):
    """Delete an elevator that is not in use"""
    service.delete_elevator(elevator_id)
    return {"message": "Elevator deleted successfully"}


# ============================================================================
# RESERVATIONS
# ============================================================================


@router.post("/{elevator_id}/reserve", response_model=ReservationResponse, status_code=201)
async def reserve_elevator(
    elevator_id: str,
    data: ReserveRequest,
    service: ElevatorService = Depends(get_elevator_service),
):
    """Reserve the elevator for a future window (409 if it overlaps another booking)"""
    reservation = service.reserve(
        elevator_id,
        service_order_id=data.serviceOrderId,
        vehicle_id=data.vehicleId,
        scheduled_start=data.scheduledStart,
        duration_minutes=data.durationMinutes,
        quote_id=data.quoteId,
        notes=data.notes,
    )
    return to_reservation_response(reservation)


@router.delete("/{elevator_id}/reservations/{reservation_id}", response_model=ReservationResponse)
async def cancel_reservation(
    elevator_id: str,
    reservation_id: str,
    service: ElevatorService = Depends(get_elevator_service),
):
    reservation = service.cancel_reservation(elevator_id, reservation_id)
    return to_reservation_response(reservation)


# ============================================================================
# USAGE TRACKING
# ============================================================================


@router.post("/{elevator_id}/start-usage", response_model=UsageResponse, status_code=201)
async def start_usage(
    elevator_id: str,
    data: StartUsageRequest,
    service: ElevatorService = Depends(get_elevator_service),
):
    """Put a vehicle on the elevator"""
    usage = service.start_usage(
        elevator_id, service_order_id=data.serviceOrderId, vehicle_id=data.vehicleId, notes=data.notes
    )
    return to_usage_response(usage)


@router.post("/{elevator_id}/end-usage", response_model=UsageResponse)
async def end_usage(
    elevator_id: str,
    data: EndUsageRequest,
    service: ElevatorService = Depends(get_elevator_service),
):
    """Take the vehicle off the elevator and record how long it stayed"""
    usage = service.end_usage(elevator_id, usage_id=data.usageId, notes=data.notes)
    return to_usage_response(usage)


@router.get("/{elevator_id}/current-usage", response_model=Optional[UsageResponse])
async def get_current_usage(
    elevator_id: str,
    service: ElevatorService = Depends(get_elevator_service),
):
    usage = service.current_usage(elevator_id)
    return to_usage_response(usage) if usage else None


@router.get("/{elevator_id}/usage-history", response_model=UsageHistoryResponse)
async def get_usage_history(
    elevator_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    service: ElevatorService = Depends(get_elevator_service),
):
    result = service.usage_history(elevator_id, page, limit, startDate, endDate)
    return UsageHistoryResponse(
        data=[to_usage_response(u) for u in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )
