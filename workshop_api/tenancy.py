"""
Tenant resolution for incoming requests.

Authentication is handled upstream (API gateway); by the time a request reaches
this service it carries the workshop it acts for in the X-Tenant-ID header.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from . import config
from .database import get_db
from .errors import NotFound, TenantRequired
from .models import Tenant

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


@dataclass(frozen=True)
class SchedulingPolicy:
    """Operating hours used by the availability checker, resolved per request"""

    work_start_hour: int
    work_end_hour: int
    slot_interval_minutes: int

    @property
    def has_operating_hours(self) -> bool:
        return self.work_end_hour > self.work_start_hour

    @classmethod
    def for_tenant(cls, tenant: Tenant) -> "SchedulingPolicy":
        return cls(
            work_start_hour=(
                tenant.work_start_hour
                if tenant.work_start_hour is not None
                else config.DEFAULT_WORK_START_HOUR
            ),
            work_end_hour=(
                tenant.work_end_hour
                if tenant.work_end_hour is not None
                else config.DEFAULT_WORK_END_HOUR
            ),
            slot_interval_minutes=(
                tenant.slot_interval_minutes or config.DEFAULT_SLOT_INTERVAL_MINUTES
            ),
        )


def get_current_tenant(
    request: Request,
    x_tenant_id: Optional[str] = Header(None, alias=TENANT_HEADER),
    db: Session = Depends(get_db),
) -> Tenant:
    """Resolve the X-Tenant-ID header to an active tenant"""
    if not x_tenant_id:
        logger.warning(f"Missing {TENANT_HEADER} header for {request.url.path}")
        raise TenantRequired(f"{TENANT_HEADER} header is required")

    tenant = (
        db.query(Tenant)
        .filter(Tenant.id == x_tenant_id, Tenant.is_active.is_(True))
        .first()
    )
    if not tenant:
        logger.warning(f"Unknown or inactive tenant {x_tenant_id} for {request.url.path}")
        raise NotFound("Tenant", x_tenant_id)

    request.state.tenant_id = tenant.id
    return tenant
