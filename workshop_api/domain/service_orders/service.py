"""Service order service - walk-in orders and status changes"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import InvalidTransition, NotFound
from ...models import ServiceOrder
from ...shared.lookups import require_customer, require_elevator, require_mechanic, require_vehicle
from ...shared.pricing import compute_total
from ...shared.timeutils import to_utc_naive, utcnow
from .repository import ServiceOrderRepository
from .schemas import ServiceOrderCreate
from .states import ServiceOrderStatus, can_transition

logger = logging.getLogger(__name__)


class ServiceOrderService:
    """Service layer for service order business logic"""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = ServiceOrderRepository()

    def get_service_order(self, service_order_id: str) -> ServiceOrder:
        order = self.repo.get_service_order_by_id(self.db, service_order_id, self.tenant_id)
        if not order:
            raise NotFound("Service order", service_order_id)
        return order

    def list_service_orders(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        technician_id: Optional[str] = None,
    ) -> dict:
        items, total = self.repo.search_service_orders(
            self.db,
            self.tenant_id,
            page,
            limit,
            status=status,
            customer_id=customer_id,
            technician_id=technician_id,
        )
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def create_service_order(self, data: ServiceOrderCreate) -> ServiceOrder:
        try:
            if data.customerId:
                require_customer(self.db, self.tenant_id, data.customerId)
            if data.vehicleId:
                require_vehicle(self.db, self.tenant_id, data.vehicleId, data.customerId)
            if data.technicianId:
                require_mechanic(self.db, self.tenant_id, data.technicianId)
            if data.elevatorId:
                require_elevator(self.db, self.tenant_id, data.elevatorId)

            order = self.repo.create_service_order(
                self.db,
                self.tenant_id,
                customer_id=data.customerId,
                vehicle_id=data.vehicleId,
                technician_id=data.technicianId,
                elevator_id=data.elevatorId,
                appointment_date=to_utc_naive(data.appointmentDate),
                estimated_hours=data.estimatedHours,
                labor_cost=data.laborCost,
                parts_cost=data.partsCost,
                discount=data.discount,
                total_cost=compute_total(data.laborCost, data.partsCost, data.discount),
                notes=data.notes,
                status=ServiceOrderStatus.SCHEDULED.value,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(f"Service order {order.number} ({order.id}) created in tenant {self.tenant_id}")
        return order

    def transition(self, service_order_id: str, new_status: ServiceOrderStatus) -> ServiceOrder:
        try:
            order = self.repo.get_service_order_by_id(
                self.db, service_order_id, self.tenant_id, for_update=True
            )
            if not order:
                raise NotFound("Service order", service_order_id)

            current = ServiceOrderStatus(order.status)
            if not can_transition(current, new_status):
                logger.warning(
                    f"Rejected service order transition {service_order_id}: "
                    f"{current.value} -> {new_status.value}"
                )
                raise InvalidTransition("service_order", current.value, new_status.value)

            updates = {"status": new_status.value}
            if new_status == ServiceOrderStatus.IN_PROGRESS:
                updates["started_at"] = utcnow()
                # An order started without a planned date occupies its technician from now
                if order.appointment_date is None:
                    updates["appointment_date"] = updates["started_at"]
            elif new_status == ServiceOrderStatus.COMPLETED:
                updates["completed_at"] = utcnow()
            self.repo.update_service_order(self.db, order, **updates)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(f"Service order {order.number}: {current.value} -> {new_status.value}")
        return order
