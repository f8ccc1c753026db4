"""Customer domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import strip_or_none, validate_email, validate_phone, validate_plate


class CustomerCreate(BaseModel):
    """Schema for creating a new customer"""

    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("document", "notes")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class CustomerUpdate(BaseModel):
    """Sparse patch; only the fields sent are applied"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class VehicleCreate(BaseModel):
    plate: Optional[str] = None
    vin: Optional[str] = Field(None, max_length=17)
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    mileage: Optional[int] = Field(None, ge=0)

    @field_validator("plate")
    @classmethod
    def check_plate(cls, v):
        return validate_plate(v)


class VehicleResponse(BaseModel):
    id: str
    customerId: str
    plate: Optional[str] = None
    vin: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    mileage: Optional[int] = None
    createdAt: datetime


class CustomerResponse(BaseModel):
    """Schema for customer response"""

    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    notes: Optional[str] = None
    vehicles: list[VehicleResponse] = []
    createdAt: datetime
    updatedAt: datetime


class CustomerListResponse(BaseModel):
    data: list[CustomerResponse]
    total: int
    page: int
    limit: int
    totalPages: int
