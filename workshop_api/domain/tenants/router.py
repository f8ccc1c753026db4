"""Tenant router - workshop provisioning and scheduling settings"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...errors import NotFound
from ...models import Tenant
from ...tenancy import SchedulingPolicy, get_current_tenant
from .schemas import SchedulingSettingsUpdate, TenantCreate, TenantResponse
from .service import TenantService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


def get_tenant_service(db: Session = Depends(get_db)) -> TenantService:
    """Dependency injection for TenantService"""
    return TenantService(db)


def to_tenant_response(t: Tenant) -> TenantResponse:
    policy = SchedulingPolicy.for_tenant(t)
    return TenantResponse(
        id=t.id,
        name=t.name,
        slug=t.slug,
        isActive=t.is_active,
        workStartHour=policy.work_start_hour,
        workEndHour=policy.work_end_hour,
        slotIntervalMinutes=policy.slot_interval_minutes,
        createdAt=t.created_at,
    )


def _same_tenant(tenant_id: str, tenant: Tenant) -> Tenant:
    # A tenant can only read and configure itself
    if tenant.id != tenant_id:
        raise NotFound("Tenant", tenant_id)
    return tenant


@router.post("", response_model=TenantResponse, status_code=201)
async def create_tenant(
    data: TenantCreate,
    service: TenantService = Depends(get_tenant_service),
):
    """Provision a new workshop"""
    tenant = service.create_tenant(data)
    return to_tenant_response(tenant)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: str,
    tenant: Tenant = Depends(get_current_tenant),
):
    return to_tenant_response(_same_tenant(tenant_id, tenant))


@router.patch("/{tenant_id}/scheduling", response_model=TenantResponse)
async def update_scheduling(
    tenant_id: str,
    data: SchedulingSettingsUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    service: TenantService = Depends(get_tenant_service),
):
    """Set operating hours and slot interval used by slot search"""
    tenant = service.update_scheduling(_same_tenant(tenant_id, tenant), data)
    return to_tenant_response(tenant)
