"""Customer service - customers and their vehicles"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import NotFound
from ...models import Customer, Vehicle
from .repository import CustomerRepository
from .schemas import CustomerCreate, CustomerUpdate, VehicleCreate

logger = logging.getLogger(__name__)


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = CustomerRepository()

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.repo.get_customer_by_id(self.db, customer_id, self.tenant_id)
        if not customer:
            raise NotFound("Customer", customer_id)
        return customer

    def list_customers(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> dict:
        items, total = self.repo.search_customers(self.db, self.tenant_id, page, limit, search)
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def create_customer(self, data: CustomerCreate) -> Customer:
        try:
            customer = self.repo.create_customer(self.db, self.tenant_id, **data.model_dump())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(customer)
        logger.info(f"Customer {customer.id} created in tenant {self.tenant_id}")
        return customer

    def update_customer(self, customer_id: str, data: CustomerUpdate) -> Customer:
        fields = data.model_dump(exclude_unset=True)
        if "name" in fields and fields["name"] is None:
            fields.pop("name")
        try:
            customer = self.get_customer(customer_id)
            self.repo.update_customer(self.db, customer, **fields)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(customer)
        logger.info(f"Customer {customer_id} updated: {sorted(fields)}")
        return customer

    def add_vehicle(self, customer_id: str, data: VehicleCreate) -> Vehicle:
        try:
            customer = self.get_customer(customer_id)
            vehicle = self.repo.create_vehicle(self.db, customer.id, **data.model_dump())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(vehicle)
        logger.info(f"Vehicle {vehicle.id} ({vehicle.plate}) added to customer {customer_id}")
        return vehicle

    def list_vehicles(self, customer_id: str) -> list[Vehicle]:
        customer = self.get_customer(customer_id)
        return self.repo.get_vehicles(self.db, customer.id)
