"""User domain schemas - Pydantic models for validation"""

import enum
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MECHANIC = "mechanic"
    RECEPTIONIST = "receptionist"


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    role: UserRole = UserRole.MECHANIC

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    isActive: bool
    createdAt: datetime
