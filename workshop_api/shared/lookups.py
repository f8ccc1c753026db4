"""Tenant-scoped lookups of referenced records, raising NotFound when absent"""

from typing import Optional

from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import Customer, Elevator, Part, Quote, ServiceOrder, User, Vehicle


def require_customer(db: Session, tenant_id: str, customer_id: str) -> Customer:
    customer = (
        db.query(Customer)
        .filter(Customer.id == customer_id, Customer.tenant_id == tenant_id)
        .first()
    )
    if not customer:
        raise NotFound("Customer", customer_id)
    return customer


def require_vehicle(
    db: Session, tenant_id: str, vehicle_id: str, customer_id: Optional[str] = None
) -> Vehicle:
    """Vehicle of the tenant; with customer_id it must also belong to that customer"""
    query = (
        db.query(Vehicle)
        .join(Customer, Vehicle.customer_id == Customer.id)
        .filter(Vehicle.id == vehicle_id, Customer.tenant_id == tenant_id)
    )
    if customer_id:
        query = query.filter(Vehicle.customer_id == customer_id)
    vehicle = query.first()
    if not vehicle:
        raise NotFound("Vehicle", vehicle_id)
    return vehicle


def require_mechanic(db: Session, tenant_id: str, mechanic_id: str) -> User:
    mechanic = (
        db.query(User)
        .filter(
            User.id == mechanic_id,
            User.tenant_id == tenant_id,
            User.role == "mechanic",
            User.is_active.is_(True),
        )
        .first()
    )
    if not mechanic:
        raise NotFound("Mechanic", mechanic_id)
    return mechanic


def require_elevator(db: Session, tenant_id: str, elevator_id: str) -> Elevator:
    elevator = (
        db.query(Elevator)
        .filter(Elevator.id == elevator_id, Elevator.tenant_id == tenant_id)
        .first()
    )
    if not elevator:
        raise NotFound("Elevator", elevator_id)
    return elevator


def require_service_order(db: Session, tenant_id: str, service_order_id: str) -> ServiceOrder:
    order = (
        db.query(ServiceOrder)
        .filter(ServiceOrder.id == service_order_id, ServiceOrder.tenant_id == tenant_id)
        .first()
    )
    if not order:
        raise NotFound("Service order", service_order_id)
    return order


def require_quote(db: Session, tenant_id: str, quote_id: str) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id, Quote.tenant_id == tenant_id).first()
    if not quote:
        raise NotFound("Quote", quote_id)
    return quote


def require_part(db: Session, tenant_id: str, part_id: str) -> Part:
    part = db.query(Part).filter(Part.id == part_id, Part.tenant_id == tenant_id).first()
    if not part:
        raise NotFound("Part", part_id)
    return part
