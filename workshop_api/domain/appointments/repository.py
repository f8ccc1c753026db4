"""Appointment repository - Database operations for appointments"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...config import MAX_APPOINTMENT_DURATION
from ...models import Appointment, ServiceOrder, User
from .states import BLOCKING_STATUSES

_BLOCKING = [status.value for status in BLOCKING_STATUSES]


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment_by_id(db: Session, appointment_id: str, tenant_id: str) -> Optional[Appointment]:
        """Get a specific appointment by ID"""
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.customer), joinedload(Appointment.assigned_to))
            .filter(Appointment.id == appointment_id, Appointment.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def search_appointments(
        db: Session,
        tenant_id: str,
        page: int,
        limit: int,
        customer_id: Optional[str] = None,
        service_order_id: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> tuple[list[Appointment], int]:
        """Paginated appointment search. Returns (page_items, total)"""
        query = db.query(Appointment).filter(Appointment.tenant_id == tenant_id)

        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)
        if service_order_id:
            query = query.filter(Appointment.service_order_id == service_order_id)
        if assigned_to_id:
            query = query.filter(Appointment.assigned_to_id == assigned_to_id)
        if status:
            query = query.filter(Appointment.status == status)
        if start_date:
            query = query.filter(Appointment.date >= start_date)
        if end_date:
            query = query.filter(Appointment.date <= end_date)

        total = query.count()
        items = (
            query.options(joinedload(Appointment.customer), joinedload(Appointment.assigned_to))
            .order_by(Appointment.date.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def find_blocking_overlapping(
        db: Session,
        tenant_id: str,
        window_start: datetime,
        window_end: datetime,
        assigned_to_id: Optional[str] = None,
        elevator_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> list[Appointment]:
        """
        Non-terminal appointments whose [date, date + duration) overlaps the window,
        restricted to a mechanic and/or an elevator.
        """
        # An appointment lasts at most MAX_APPOINTMENT_DURATION, so anything starting
        # earlier than that cannot reach into the window.
        earliest = window_start - timedelta(minutes=MAX_APPOINTMENT_DURATION)
        query = db.query(Appointment).filter(
            Appointment.tenant_id == tenant_id,
            Appointment.status.in_(_BLOCKING),
            Appointment.date < window_end,
            Appointment.date > earliest,
        )
        if assigned_to_id:
            query = query.filter(Appointment.assigned_to_id == assigned_to_id)
        if elevator_id:
            query = query.filter(Appointment.elevator_id == elevator_id)
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)

        return [
            appointment
            for appointment in query.order_by(Appointment.date.asc()).all()
            if appointment.date + timedelta(minutes=appointment.duration) > window_start
        ]

    @staticmethod
    def find_in_progress_service_orders(
        db: Session,
        tenant_id: str,
        technician_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> list[ServiceOrder]:
        """In-progress service orders of a technician that overlap the window"""
        orders = (
            db.query(ServiceOrder)
            .filter(
                ServiceOrder.tenant_id == tenant_id,
                ServiceOrder.technician_id == technician_id,
                ServiceOrder.status == "in_progress",
                ServiceOrder.appointment_date.isnot(None),
                ServiceOrder.estimated_hours.isnot(None),
                ServiceOrder.appointment_date < window_end,
            )
            .all()
        )
        return [
            order
            for order in orders
            if order.appointment_date + timedelta(hours=order.estimated_hours) > window_start
        ]

    @staticmethod
    def get_mechanic(db: Session, mechanic_id: str, tenant_id: str, for_update: bool = False) -> Optional[User]:
        """Active mechanic of the tenant; optionally row-locked for the transaction"""
        query = db.query(User).filter(
            User.id == mechanic_id,
            User.tenant_id == tenant_id,
            User.role == "mechanic",
            User.is_active.is_(True),
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def create_appointment(db: Session, tenant_id: str, **appointment_data) -> Appointment:
        """Stage a new appointment; the caller commits"""
        appointment = Appointment(tenant_id=tenant_id, **appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Apply provided fields; the caller commits"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)
        db.flush()
        return appointment
