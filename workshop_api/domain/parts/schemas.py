"""Part domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import strip_or_none, validate_money


class PartCreate(BaseModel):
    """Schema for creating a new inventory part"""

    partNumber: Optional[str] = Field(None, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(0, ge=0)
    minQuantity: int = Field(0, ge=0)
    costPrice: float = 0
    sellPrice: float = 0
    location: Optional[str] = Field(None, max_length=100)
    isActive: bool = True

    @field_validator("costPrice", "sellPrice")
    @classmethod
    def validate_prices(cls, v):
        return validate_money(v)

    @field_validator("partNumber", "description", "category", "brand", "location")
    @classmethod
    def blank_to_none(cls, v):
        return strip_or_none(v)


class PartUpdate(BaseModel):
    """Sparse patch; only the fields sent are applied"""

    partNumber: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    quantity: Optional[int] = Field(None, ge=0)
    minQuantity: Optional[int] = Field(None, ge=0)
    costPrice: Optional[float] = None
    sellPrice: Optional[float] = None
    location: Optional[str] = Field(None, max_length=100)
    isActive: Optional[bool] = None

    @field_validator("costPrice", "sellPrice")
    @classmethod
    def validate_prices(cls, v):
        return validate_money(v)


class PartResponse(BaseModel):
    """Schema for part response"""

    id: str
    partNumber: Optional[str] = None
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    quantity: int
    minQuantity: int
    costPrice: float
    sellPrice: float
    location: Optional[str] = None
    isActive: bool
    lowStock: bool
    createdAt: datetime
    updatedAt: datetime


class PartListResponse(BaseModel):
    data: list[PartResponse]
    total: int
    page: int
    limit: int
    totalPages: int
