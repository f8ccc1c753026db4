"""Tenant domain schemas - Pydantic models for validation"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

SLOT_INTERVALS = (15, 30, 60)


class TenantCreate(BaseModel):
    """Schema for provisioning a workshop"""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=2, max_length=100)
    workStartHour: Optional[int] = Field(None, ge=0, le=24)
    workEndHour: Optional[int] = Field(None, ge=0, le=24)
    slotIntervalMinutes: Optional[int] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        v = v.strip().lower()
        if not re.match(r"^[a-z0-9]+(?:-[a-z0-9]+)*$", v):
            raise ValueError("Slug may only contain lowercase letters, digits and hyphens")
        return v

    @field_validator("slotIntervalMinutes")
    @classmethod
    def validate_interval(cls, v):
        if v is not None and v not in SLOT_INTERVALS:
            raise ValueError(f"Slot interval must be one of {SLOT_INTERVALS}")
        return v

    @model_validator(mode="after")
    def validate_hours(self):
        if (
            self.workStartHour is not None
            and self.workEndHour is not None
            and self.workStartHour > self.workEndHour
        ):
            raise ValueError("workStartHour must not be after workEndHour")
        return self


class SchedulingSettingsUpdate(BaseModel):
    """Operating hours (UTC) and slot granularity; equal hours mean open all day"""

    workStartHour: int = Field(..., ge=0, le=24)
    workEndHour: int = Field(..., ge=0, le=24)
    slotIntervalMinutes: int = 30

    @field_validator("slotIntervalMinutes")
    @classmethod
    def validate_interval(cls, v):
        if v not in SLOT_INTERVALS:
            raise ValueError(f"Slot interval must be one of {SLOT_INTERVALS}")
        return v

    @model_validator(mode="after")
    def validate_hours(self):
        if self.workStartHour > self.workEndHour:
            raise ValueError("workStartHour must not be after workEndHour")
        return self


class TenantResponse(BaseModel):
    id: str
    name: str
    slug: str
    isActive: bool
    workStartHour: int
    workEndHour: int
    slotIntervalMinutes: int
    createdAt: datetime
