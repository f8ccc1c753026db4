"""Quote domain schemas - Pydantic models for validation"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import strip_or_none, validate_money
from .states import QuoteStatus

MIN_ESTIMATED_HOURS = 0.25
MAX_ESTIMATED_HOURS = 24


class QuoteItemType(str, enum.Enum):
    SERVICE = "service"
    PART = "part"


class QuoteItemInput(BaseModel):
    """
    One line of a quote.

    Part lines may point at an inventory part; name and unit cost then default
    to the part's name and sell price. Only service lines carry hours.
    """

    type: QuoteItemType
    partId: Optional[str] = None
    serviceId: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: int = Field(1, ge=1)
    unitCost: Optional[float] = None
    hours: Optional[float] = Field(None, ge=0, le=24)

    @field_validator("unitCost")
    @classmethod
    def validate_unit_cost(cls, v):
        return validate_money(v)

    @field_validator("name", "description", "serviceId", "partId")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class QuoteItemResponse(BaseModel):
    id: str
    type: QuoteItemType
    partId: Optional[str] = None
    serviceId: Optional[str] = None
    name: str
    description: Optional[str] = None
    quantity: int
    unitCost: float
    totalCost: float
    hours: Optional[float] = None


class QuoteCreate(BaseModel):
    """Schema for creating a new quote"""

    customerId: Optional[str] = None
    vehicleId: Optional[str] = None
    elevatorId: Optional[str] = None
    reportedProblem: Optional[str] = None
    laborCost: float = 0
    partsCost: float = 0
    discount: float = 0
    items: list[QuoteItemInput] = Field(default_factory=list)

    @field_validator("laborCost", "partsCost", "discount")
    @classmethod
    def validate_amounts(cls, v):
        return validate_money(v)

    @field_validator("reportedProblem")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class QuoteUpdate(BaseModel):
    """Sparse patch; only the fields sent are applied"""

    customerId: Optional[str] = None
    vehicleId: Optional[str] = None
    elevatorId: Optional[str] = None
    reportedProblem: Optional[str] = None
    laborCost: Optional[float] = None
    partsCost: Optional[float] = None
    discount: Optional[float] = None
    # Sent items replace the current list; an empty list clears it
    items: Optional[list[QuoteItemInput]] = None

    @field_validator("laborCost", "partsCost", "discount")
    @classmethod
    def validate_amounts(cls, v):
        return validate_money(v)


class AssignMechanicRequest(BaseModel):
    mechanicId: Optional[str] = None
    reason: Optional[str] = None


class CompleteDiagnosisRequest(BaseModel):
    """
    Findings of the mechanic; estimated hours drive the elevator reservation.

    Without estimatedHours the hours of the service items are used.
    """

    identifiedProblemCategory: Optional[str] = None
    identifiedProblemDescription: str = Field(..., min_length=1)
    recommendations: Optional[str] = None
    diagnosticNotes: Optional[str] = None
    estimatedHours: Optional[float] = Field(None, ge=MIN_ESTIMATED_HOURS, le=MAX_ESTIMATED_HOURS)
    laborCost: Optional[float] = None
    partsCost: Optional[float] = None
    items: Optional[list[QuoteItemInput]] = None

    @field_validator("laborCost", "partsCost")
    @classmethod
    def validate_amounts(cls, v):
        return validate_money(v)


class ApproveRequest(BaseModel):
    customerSignature: Optional[str] = None
    elevatorId: Optional[str] = None
    scheduledStart: Optional[datetime] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class QuoteResponse(BaseModel):
    """Schema for quote response"""

    id: str
    number: str
    status: QuoteStatus
    customerId: Optional[str] = None
    customerName: Optional[str] = None
    vehicleId: Optional[str] = None
    elevatorId: Optional[str] = None
    reportedProblem: Optional[str] = None
    assignedMechanicId: Optional[str] = None
    assignedMechanicName: Optional[str] = None
    assignmentReason: Optional[str] = None
    assignedAt: Optional[datetime] = None
    identifiedProblemCategory: Optional[str] = None
    identifiedProblemDescription: Optional[str] = None
    recommendations: Optional[str] = None
    diagnosticNotes: Optional[str] = None
    estimatedHours: Optional[float] = None
    diagnosedAt: Optional[datetime] = None
    laborCost: float
    partsCost: float
    discount: float
    totalCost: float
    items: list[QuoteItemResponse] = []
    customerSignature: Optional[str] = None
    sentAt: Optional[datetime] = None
    approvedAt: Optional[datetime] = None
    rejectedAt: Optional[datetime] = None
    rejectionReason: Optional[str] = None
    convertedAt: Optional[datetime] = None
    serviceOrderId: Optional[str] = None
    reservationId: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime


class QuoteListResponse(BaseModel):
    data: list[QuoteResponse]
    total: int
    page: int
    limit: int
    totalPages: int
