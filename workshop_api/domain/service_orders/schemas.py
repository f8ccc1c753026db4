"""Service order domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import strip_or_none, validate_money
from .states import ServiceOrderStatus


class ServiceOrderCreate(BaseModel):
    """Walk-in service order, opened without a quote"""

    customerId: Optional[str] = None
    vehicleId: Optional[str] = None
    technicianId: Optional[str] = None
    elevatorId: Optional[str] = None
    appointmentDate: Optional[datetime] = None
    estimatedHours: Optional[float] = Field(None, gt=0, le=24)
    laborCost: float = 0
    partsCost: float = 0
    discount: float = 0
    notes: Optional[str] = None

    @field_validator("laborCost", "partsCost", "discount")
    @classmethod
    def validate_amounts(cls, v):
        return validate_money(v)

    @field_validator("notes")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class ServiceOrderTransitionRequest(BaseModel):
    status: ServiceOrderStatus


class ServiceOrderItemResponse(BaseModel):
    id: str
    type: str
    partId: Optional[str] = None
    serviceId: Optional[str] = None
    name: str
    description: Optional[str] = None
    quantity: int
    unitCost: float
    totalCost: float
    hours: Optional[float] = None


class ServiceOrderResponse(BaseModel):
    """Schema for service order response"""

    id: str
    number: str
    customerId: Optional[str] = None
    customerName: Optional[str] = None
    vehicleId: Optional[str] = None
    technicianId: Optional[str] = None
    technicianName: Optional[str] = None
    elevatorId: Optional[str] = None
    quoteId: Optional[str] = None
    status: ServiceOrderStatus
    appointmentDate: Optional[datetime] = None
    estimatedHours: Optional[float] = None
    laborCost: float
    partsCost: float
    discount: float
    totalCost: float
    items: list[ServiceOrderItemResponse] = []
    notes: Optional[str] = None
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    createdAt: datetime
    updatedAt: datetime


class ServiceOrderListResponse(BaseModel):
    data: list[ServiceOrderResponse]
    total: int
    page: int
    limit: int
    totalPages: int
