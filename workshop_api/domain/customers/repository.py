"""Customer repository - Database operations for customers and their vehicles"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models import Customer, Vehicle


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_customer_by_id(db: Session, customer_id: str, tenant_id: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .options(selectinload(Customer.vehicles))
            .filter(Customer.id == customer_id, Customer.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def search_customers(
        db: Session, tenant_id: str, page: int, limit: int, search: Optional[str] = None
    ) -> tuple[list[Customer], int]:
        query = db.query(Customer).filter(Customer.tenant_id == tenant_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.phone.ilike(pattern),
                )
            )

        total = query.count()
        items = (
            query.options(selectinload(Customer.vehicles))
            .order_by(Customer.name.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def create_customer(db: Session, tenant_id: str, **customer_data) -> Customer:
        customer = Customer(tenant_id=tenant_id, **customer_data)
        db.add(customer)
        db.flush()
        return customer

    @staticmethod
    def update_customer(db: Session, customer: Customer, **updates) -> Customer:
        for key, value in updates.items():
            if hasattr(customer, key):
                setattr(customer, key, value)
        db.flush()
        return customer

    @staticmethod
    def create_vehicle(db: Session, customer_id: str, **vehicle_data) -> Vehicle:
        vehicle = Vehicle(customer_id=customer_id, **vehicle_data)
        db.add(vehicle)
        db.flush()
        return vehicle

    @staticmethod
    def get_vehicles(db: Session, customer_id: str) -> list[Vehicle]:
        return (
            db.query(Vehicle)
            .filter(Vehicle.customer_id == customer_id)
            .order_by(Vehicle.created_at.asc())
            .all()
        )
