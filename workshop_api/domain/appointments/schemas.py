"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...config import DEFAULT_APPOINTMENT_DURATION, MAX_APPOINTMENT_DURATION, MIN_APPOINTMENT_DURATION
from ...shared.validators import strip_or_none
from .states import AppointmentStatus


def _check_duration(v):
    if v is not None and not MIN_APPOINTMENT_DURATION <= v <= MAX_APPOINTMENT_DURATION:
        raise ValueError(
            f"Duration must be between {MIN_APPOINTMENT_DURATION} and {MAX_APPOINTMENT_DURATION} minutes"
        )
    return v


class AppointmentCreate(BaseModel):
    """Schema for creating a new appointment"""

    customerId: Optional[str] = None
    serviceOrderId: Optional[str] = None
    assignedToId: Optional[str] = None
    elevatorId: Optional[str] = None
    date: datetime
    duration: int = DEFAULT_APPOINTMENT_DURATION
    serviceType: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        return _check_duration(v)

    @field_validator("serviceType", "notes")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class AppointmentUpdate(BaseModel):
    """Sparse patch; only the fields sent are applied"""

    customerId: Optional[str] = None
    serviceOrderId: Optional[str] = None
    assignedToId: Optional[str] = None
    serviceType: Optional[str] = None
    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    date: datetime
    duration: Optional[int] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        return _check_duration(v)


class TransitionRequest(BaseModel):
    status: AppointmentStatus


class ClaimRequest(BaseModel):
    mechanicId: str


class CheckAvailabilityRequest(BaseModel):
    date: datetime
    duration: int = DEFAULT_APPOINTMENT_DURATION
    elevatorId: Optional[str] = None
    assignedToId: Optional[str] = None
    excludeAppointmentId: Optional[str] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        return _check_duration(v)


class AvailableSlotsRequest(BaseModel):
    """date accepts either YYYY-MM-DD or a full ISO 8601 date-time"""

    date: str
    duration: int = DEFAULT_APPOINTMENT_DURATION
    elevatorId: Optional[str] = None
    assignedToId: Optional[str] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        return _check_duration(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError("date must be an ISO 8601 date or date-time") from e
        return v


class PersonSummary(BaseModel):
    id: str
    name: str


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    tenantId: str
    customerId: Optional[str] = None
    customer: Optional[PersonSummary] = None
    serviceOrderId: Optional[str] = None
    assignedToId: Optional[str] = None
    assignedTo: Optional[PersonSummary] = None
    elevatorId: Optional[str] = None
    date: datetime
    endDate: datetime
    duration: int
    serviceType: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus
    reminderSent: bool
    createdAt: datetime
    updatedAt: datetime


class AppointmentListResponse(BaseModel):
    data: list[AppointmentResponse]
    total: int
    page: int
    limit: int
    totalPages: int


class ConflictResponse(BaseModel):
    type: str
    id: str
    name: str
    reason: str
    recordId: Optional[str] = None
    startTime: datetime
    endTime: Optional[datetime] = None


class AvailabilityResponse(BaseModel):
    available: bool
    conflicts: list[ConflictResponse]


class SlotResponse(BaseModel):
    startTime: datetime
    endTime: datetime
    available: bool
    reason: Optional[str] = None
    conflictingResourceId: Optional[str] = None


class FreeIntervalResponse(BaseModel):
    startTime: datetime
    endTime: datetime


class AvailableSlotsResponse(BaseModel):
    date: date
    availableSlots: list[SlotResponse]
    freeIntervals: list[FreeIntervalResponse]
    hasAvailability: bool
