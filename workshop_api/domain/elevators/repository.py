"""Elevator repository - Database operations for elevators, usages and reservations"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Elevator, ElevatorReservation, ElevatorUsage, ServiceOrder, Vehicle


class ElevatorRepository:
    """Repository for elevator database operations"""

    @staticmethod
    def get_elevator_by_id(
        db: Session, elevator_id: str, tenant_id: str, for_update: bool = False
    ) -> Optional[Elevator]:
        """
        Get a specific elevator by ID.

        With for_update the row stays locked until the transaction ends, which
        serializes every reservation/usage write on the same elevator.
        """
        query = db.query(Elevator).filter(Elevator.id == elevator_id, Elevator.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_elevator_by_number(
        db: Session, number: str, tenant_id: str, exclude_id: Optional[str] = None
    ) -> Optional[Elevator]:
        query = db.query(Elevator).filter(Elevator.tenant_id == tenant_id, Elevator.number == number)
        if exclude_id:
            query = query.filter(Elevator.id != exclude_id)
        return query.first()

    @staticmethod
    def search_elevators(
        db: Session,
        tenant_id: str,
        page: int,
        limit: int,
        name: Optional[str] = None,
        number: Optional[str] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> tuple[list[Elevator], int]:
        query = db.query(Elevator).filter(Elevator.tenant_id == tenant_id)
        if name:
            query = query.filter(Elevator.name.ilike(f"%{name}%"))
        if number:
            query = query.filter(Elevator.number.ilike(f"%{number}%"))
        if type:
            query = query.filter(Elevator.type == type)
        if status:
            query = query.filter(Elevator.status == status)

        total = query.count()
        items = (
            query.order_by(Elevator.number.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_all_elevators(db: Session, tenant_id: str) -> list[Elevator]:
        return (
            db.query(Elevator)
            .filter(Elevator.tenant_id == tenant_id)
            .order_by(Elevator.number.asc())
            .all()
        )

    @staticmethod
    def create_elevator(db: Session, tenant_id: str, **elevator_data) -> Elevator:
        elevator = Elevator(tenant_id=tenant_id, **elevator_data)
        db.add(elevator)
        db.flush()
        return elevator

    @staticmethod
    def update_elevator(db: Session, elevator: Elevator, **updates) -> Elevator:
        for key, value in updates.items():
            if hasattr(elevator, key):
                setattr(elevator, key, value)
        db.flush()
        return elevator

    @staticmethod
    def delete_elevator(db: Session, elevator: Elevator) -> None:
        db.delete(elevator)
        db.flush()

    # ------------------------------------------------------------------
    # Usage records
    # ------------------------------------------------------------------

    @staticmethod
    def get_open_usage(db: Session, elevator_id: str, usage_id: Optional[str] = None) -> Optional[ElevatorUsage]:
        """The open (end_time null) usage of an elevator, optionally a specific one"""
        query = db.query(ElevatorUsage).filter(
            ElevatorUsage.elevator_id == elevator_id, ElevatorUsage.end_time.is_(None)
        )
        if usage_id:
            query = query.filter(ElevatorUsage.id == usage_id)
        return query.first()

    @staticmethod
    def get_open_usages_for_tenant(db: Session, tenant_id: str) -> list[ElevatorUsage]:
        return (
            db.query(ElevatorUsage)
            .join(Elevator, ElevatorUsage.elevator_id == Elevator.id)
            .filter(Elevator.tenant_id == tenant_id, ElevatorUsage.end_time.is_(None))
            .all()
        )

    @staticmethod
    def find_usages_overlapping(
        db: Session, elevator_id: str, window_start: datetime, window_end: datetime
    ) -> list[ElevatorUsage]:
        """Usages overlapping [window_start, window_end); open usages never end"""
        return (
            db.query(ElevatorUsage)
            .filter(
                ElevatorUsage.elevator_id == elevator_id,
                ElevatorUsage.start_time < window_end,
                or_(ElevatorUsage.end_time.is_(None), ElevatorUsage.end_time > window_start),
            )
            .order_by(ElevatorUsage.start_time.asc())
            .all()
        )

    @staticmethod
    def create_usage(db: Session, elevator_id: str, **usage_data) -> ElevatorUsage:
        usage = ElevatorUsage(elevator_id=elevator_id, **usage_data)
        db.add(usage)
        db.flush()
        return usage

    @staticmethod
    def get_usage_history(
        db: Session,
        elevator_id: str,
        page: int,
        limit: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> tuple[list[ElevatorUsage], int]:
        query = db.query(ElevatorUsage).filter(ElevatorUsage.elevator_id == elevator_id)
        if start_date:
            query = query.filter(ElevatorUsage.start_time >= start_date)
        if end_date:
            query = query.filter(ElevatorUsage.start_time <= end_date)

        total = query.count()
        items = (
            query.options(
                joinedload(ElevatorUsage.service_order).joinedload(ServiceOrder.customer),
                joinedload(ElevatorUsage.vehicle).joinedload(Vehicle.customer),
            )
            .order_by(ElevatorUsage.start_time.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    @staticmethod
    def get_reservation(db: Session, reservation_id: str, elevator_id: str) -> Optional[ElevatorReservation]:
        return (
            db.query(ElevatorReservation)
            .filter(
                ElevatorReservation.id == reservation_id,
                ElevatorReservation.elevator_id == elevator_id,
            )
            .first()
        )

    @staticmethod
    def find_active_reservations_overlapping(
        db: Session, elevator_id: str, window_start: datetime, window_end: datetime
    ) -> list[ElevatorReservation]:
        return (
            db.query(ElevatorReservation)
            .filter(
                ElevatorReservation.elevator_id == elevator_id,
                ElevatorReservation.status == "active",
                ElevatorReservation.start_time < window_end,
                ElevatorReservation.end_time > window_start,
            )
            .order_by(ElevatorReservation.start_time.asc())
            .all()
        )

    @staticmethod
    def count_active_reservations_after(db: Session, elevator_id: str, moment: datetime) -> int:
        return (
            db.query(ElevatorReservation)
            .filter(
                ElevatorReservation.elevator_id == elevator_id,
                ElevatorReservation.status == "active",
                ElevatorReservation.end_time > moment,
            )
            .count()
        )

    @staticmethod
    def find_active_reservation_for_quote(db: Session, quote_id: str) -> Optional[ElevatorReservation]:
        return (
            db.query(ElevatorReservation)
            .filter(
                ElevatorReservation.quote_id == quote_id,
                ElevatorReservation.status == "active",
            )
            .first()
        )

    @staticmethod
    def create_reservation(db: Session, elevator_id: str, **reservation_data) -> ElevatorReservation:
        reservation = ElevatorReservation(elevator_id=elevator_id, **reservation_data)
        db.add(reservation)
        db.flush()
        return reservation
