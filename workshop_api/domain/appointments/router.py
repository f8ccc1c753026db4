"""Appointment router - FastAPI endpoints for appointment operations"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Appointment, Tenant
from ...tenancy import SchedulingPolicy, get_current_tenant
from .availability import AvailabilityResult
from .hooks import AppointmentEventHooks
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
    AvailabilityResponse,
    AvailableSlotsRequest,
    AvailableSlotsResponse,
    CheckAvailabilityRequest,
    ClaimRequest,
    ConflictResponse,
    FreeIntervalResponse,
    PersonSummary,
    RescheduleRequest,
    SlotResponse,
    TransitionRequest,
)
from .service import AppointmentService
from .states import AppointmentStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_hooks(request: Request) -> AppointmentEventHooks:
    """Hooks registered on the application at startup"""
    return getattr(request.app.state, "appointment_hooks", None) or AppointmentEventHooks()


def get_appointment_service(
    tenant: Tenant = Depends(get_current_tenant),
    hooks: AppointmentEventHooks = Depends(get_appointment_hooks),
    db: Session = Depends(get_db),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, tenant.id, SchedulingPolicy.for_tenant(tenant), hooks)


def to_appointment_response(a: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        tenantId=a.tenant_id,
        customerId=a.customer_id,
        customer=PersonSummary(id=a.customer.id, name=a.customer.name) if a.customer else None,
        serviceOrderId=a.service_order_id,
        assignedToId=a.assigned_to_id,
        assignedTo=(
            PersonSummary(id=a.assigned_to.id, name=a.assigned_to.name) if a.assigned_to else None
        ),
        elevatorId=a.elevator_id,
        date=a.date,
        endDate=a.date + timedelta(minutes=a.duration),
        duration=a.duration,
        serviceType=a.service_type,
        notes=a.notes,
        status=a.status,
        reminderSent=a.reminder_sent,
        createdAt=a.created_at,
        updatedAt=a.updated_at,
    )


def to_availability_response(result: AvailabilityResult) -> AvailabilityResponse:
    return AvailabilityResponse(
        available=result.available,
        conflicts=[
            ConflictResponse(
                type=c.resource_type,
                id=c.resource_id,
                name=c.resource_name,
                reason=c.reason,
                recordId=c.record_id,
                startTime=c.start,
                endTime=c.end,
            )
            for c in result.conflicts
        ],
    )


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.post("/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    data: AvailableSlotsRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Candidate slots of a day for the given duration and resources"""
    day = datetime.fromisoformat(data.date.replace("Z", "+00:00"))
    result = service.available_slots(day, data.duration, data.elevatorId, data.assignedToId)
    return AvailableSlotsResponse(
        date=result.date,
        availableSlots=[
            SlotResponse(
                startTime=slot.start,
                endTime=slot.end,
                available=slot.available,
                reason=slot.reason,
                conflictingResourceId=slot.conflicting_resource_id,
            )
            for slot in result.slots
        ],
        freeIntervals=[
            FreeIntervalResponse(startTime=start, endTime=end) for start, end in result.free_intervals
        ],
        hasAvailability=result.has_availability,
    )


@router.post("/check-availability", response_model=AvailabilityResponse)
async def check_availability(
    data: CheckAvailabilityRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Is a single window free for the given elevator and/or mechanic?"""
    result = service.check_availability(
        data.date,
        data.duration,
        elevator_id=data.elevatorId,
        mechanic_id=data.assignedToId,
        exclude_appointment_id=data.excludeAppointmentId,
    )
    return to_availability_response(result)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book a new appointment"""
    appointment = service.create_appointment(data)
    return to_appointment_response(appointment)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    customerId: Optional[str] = Query(None),
    assignedToId: Optional[str] = Query(None),
    serviceOrderId: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List appointments with pagination and filters, ordered by date"""
    result = service.list_appointments(
        page=page,
        limit=limit,
        customer_id=customerId,
        service_order_id=serviceOrderId,
        assigned_to_id=assignedToId,
        status=status.value if status else None,
        start_date=startDate,
        end_date=endDate,
    )
    return AppointmentListResponse(
        data=[to_appointment_response(a) for a in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get_appointment(appointment_id)
    return to_appointment_response(appointment)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Partially update an appointment; only the fields sent are changed"""
    appointment = service.update_appointment(appointment_id, data)
    return to_appointment_response(appointment)


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.reschedule(appointment_id, data.date, data.duration)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/transition", response_model=AppointmentResponse)
async def transition_appointment(
    appointment_id: str,
    data: TransitionRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Move the appointment to another status"""
    appointment = service.transition(appointment_id, data.status)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel an appointment. The record is kept for history."""
    appointment = service.cancel(appointment_id)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/claim", response_model=AppointmentResponse)
async def claim_appointment(
    appointment_id: str,
    data: ClaimRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Assign an unassigned scheduled appointment to a mechanic"""
    appointment = service.claim(appointment_id, data.mechanicId)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/reminder-sent", response_model=AppointmentResponse)
async def mark_reminder_sent(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Called by the notification sender once the reminder went out"""
    appointment = service.mark_reminder_sent(appointment_id)
    return to_appointment_response(appointment)
