"""Elevator domain schemas - Pydantic models for validation"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...config import DEFAULT_RESERVATION_MINUTES
from ...shared.validators import strip_or_none


class ElevatorType(str, enum.Enum):
    HYDRAULIC = "hydraulic"
    PNEUMATIC = "pneumatic"
    SCISSOR = "scissor"


class ElevatorStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class ElevatorCreate(BaseModel):
    """Schema for creating a new elevator"""

    name: str = Field(..., min_length=1, max_length=255)
    number: str = Field(..., min_length=1, max_length=50)
    type: ElevatorType = ElevatorType.HYDRAULIC
    capacity: Optional[float] = Field(None, gt=0)
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "number")
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("location", "notes")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class ElevatorUpdate(BaseModel):
    """Sparse patch; only the fields sent are applied"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    number: Optional[str] = Field(None, min_length=1, max_length=50)
    type: Optional[ElevatorType] = None
    capacity: Optional[float] = Field(None, gt=0)
    status: Optional[ElevatorStatus] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def manual_status_only(cls, v):
        # occupied and reserved follow from usages and reservations
        if v is not None and v not in (ElevatorStatus.AVAILABLE, ElevatorStatus.MAINTENANCE):
            raise ValueError("Status can only be set to available or maintenance")
        return v


class ElevatorResponse(BaseModel):
    """Schema for elevator response"""

    id: str
    name: str
    number: str
    type: str
    capacity: Optional[float] = None
    status: str
    location: Optional[str] = None
    notes: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime


class ElevatorListResponse(BaseModel):
    data: list[ElevatorResponse]
    total: int
    page: int
    limit: int
    totalPages: int


class ReserveRequest(BaseModel):
    serviceOrderId: Optional[str] = None
    vehicleId: Optional[str] = None
    quoteId: Optional[str] = None
    scheduledStart: Optional[datetime] = None
    durationMinutes: int = Field(DEFAULT_RESERVATION_MINUTES, ge=1, le=24 * 60)
    notes: Optional[str] = None


class StartUsageRequest(BaseModel):
    serviceOrderId: Optional[str] = None
    vehicleId: Optional[str] = None
    notes: Optional[str] = None


class EndUsageRequest(BaseModel):
    usageId: Optional[str] = None
    notes: Optional[str] = None


class ReservationResponse(BaseModel):
    id: str
    elevatorId: str
    serviceOrderId: Optional[str] = None
    vehicleId: Optional[str] = None
    quoteId: Optional[str] = None
    startTime: datetime
    endTime: datetime
    status: str
    notes: Optional[str] = None
    createdAt: datetime


class UsageResponse(BaseModel):
    id: str
    elevatorId: str
    serviceOrderId: Optional[str] = None
    serviceOrderNumber: Optional[str] = None
    vehicleId: Optional[str] = None
    vehiclePlate: Optional[str] = None
    customerName: Optional[str] = None
    startTime: datetime
    endTime: Optional[datetime] = None
    durationMinutes: Optional[int] = None
    notes: Optional[str] = None


class UsageHistoryResponse(BaseModel):
    data: list[UsageResponse]
    total: int
    page: int
    limit: int
    totalPages: int


class ElevatorStatusResponse(BaseModel):
    """One row of the workshop floor overview"""

    id: str
    name: str
    number: str
    type: str
    status: str
    currentUsage: Optional[UsageResponse] = None
