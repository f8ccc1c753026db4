"""Tenant service - workshop provisioning and scheduling settings"""

import logging

from sqlalchemy.orm import Session

from ...errors import DuplicateRecord
from ...models import Tenant
from .schemas import SchedulingSettingsUpdate, TenantCreate

logger = logging.getLogger(__name__)


class TenantService:
    """Service layer for tenant business logic"""

    def __init__(self, db: Session):
        self.db = db

    def create_tenant(self, data: TenantCreate) -> Tenant:
        try:
            if self.db.query(Tenant).filter(Tenant.slug == data.slug).first():
                raise DuplicateRecord(f"Tenant slug {data.slug} already exists", field="slug", value=data.slug)
            tenant = Tenant(
                name=data.name.strip(),
                slug=data.slug,
                work_start_hour=data.workStartHour,
                work_end_hour=data.workEndHour,
                slot_interval_minutes=data.slotIntervalMinutes,
            )
            self.db.add(tenant)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(tenant)
        logger.info(f"Tenant {tenant.slug} ({tenant.id}) created")
        return tenant

    def update_scheduling(self, tenant: Tenant, data: SchedulingSettingsUpdate) -> Tenant:
        try:
            tenant.work_start_hour = data.workStartHour
            tenant.work_end_hour = data.workEndHour
            tenant.slot_interval_minutes = data.slotIntervalMinutes
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(tenant)
        logger.info(
            f"Tenant {tenant.id} scheduling set to {data.workStartHour}h-{data.workEndHour}h "
            f"every {data.slotIntervalMinutes}min"
        )
        return tenant
