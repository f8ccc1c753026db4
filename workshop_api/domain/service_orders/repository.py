"""Service order repository - Database operations for service orders"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ServiceOrder
from ...shared.numbering import add_numbered


class ServiceOrderRepository:
    """Repository for service order database operations"""

    @staticmethod
    def get_service_order_by_id(
        db: Session, service_order_id: str, tenant_id: str, for_update: bool = False
    ) -> Optional[ServiceOrder]:
        query = db.query(ServiceOrder).filter(
            ServiceOrder.id == service_order_id, ServiceOrder.tenant_id == tenant_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def search_service_orders(
        db: Session,
        tenant_id: str,
        page: int,
        limit: int,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        technician_id: Optional[str] = None,
    ) -> tuple[list[ServiceOrder], int]:
        query = db.query(ServiceOrder).filter(ServiceOrder.tenant_id == tenant_id)
        if status:
            query = query.filter(ServiceOrder.status == status)
        if customer_id:
            query = query.filter(ServiceOrder.customer_id == customer_id)
        if technician_id:
            query = query.filter(ServiceOrder.technician_id == technician_id)

        total = query.count()
        items = (
            query.options(joinedload(ServiceOrder.customer), joinedload(ServiceOrder.technician))
            .order_by(ServiceOrder.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def create_service_order(db: Session, tenant_id: str, **order_data) -> ServiceOrder:
        """Stage a new service order with the next OS number; the caller commits"""
        return add_numbered(db, ServiceOrder(tenant_id=tenant_id, **order_data), "OS")

    @staticmethod
    def update_service_order(db: Session, order: ServiceOrder, **updates) -> ServiceOrder:
        for key, value in updates.items():
            if hasattr(order, key):
                setattr(order, key, value)
        db.flush()
        return order
