"""User router - FastAPI endpoints for workshop staff"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Tenant, User
from ...tenancy import get_current_tenant
from .schemas import UserCreate, UserResponse, UserRole
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db, tenant.id)


def to_user_response(u: User) -> UserResponse:
    return UserResponse(
        id=u.id,
        name=u.name,
        email=u.email,
        role=u.role,
        isActive=u.is_active,
        createdAt=u.created_at,
    )


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    service: UserService = Depends(get_user_service),
):
    user = service.create_user(data)
    return to_user_response(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    service: UserService = Depends(get_user_service),
):
    """List active staff, e.g. role=mechanic for assignable mechanics"""
    return [to_user_response(u) for u in service.list_users(role.value if role else None)]
