"""Elevator service - reservations, usage tracking and elevator records"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import DEFAULT_RESERVATION_MINUTES
from ...errors import (
    DuplicateRecord,
    ElevatorUnavailable,
    InvalidTransition,
    NotFound,
    UsageNotFound,
)
from ...models import Elevator, ElevatorReservation, ElevatorUsage
from ...shared.lookups import require_quote, require_service_order, require_vehicle
from ...shared.timeutils import minutes_between, to_utc_naive, utcnow
from ..appointments.repository import AppointmentRepository
from .repository import ElevatorRepository
from .schemas import ElevatorCreate, ElevatorStatus, ElevatorUpdate

logger = logging.getLogger(__name__)


class ElevatorService:
    """Service layer for elevator business logic"""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = ElevatorRepository()
        self.appointments = AppointmentRepository()

    # ========================================================================
    # ELEVATOR RECORDS
    # ========================================================================

    def get_elevator(self, elevator_id: str, for_update: bool = False) -> Elevator:
        elevator = self.repo.get_elevator_by_id(self.db, elevator_id, self.tenant_id, for_update)
        if not elevator:
            raise NotFound("Elevator", elevator_id)
        return elevator

    def list_elevators(
        self,
        page: int = 1,
        limit: int = 10,
        name: Optional[str] = None,
        number: Optional[str] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        items, total = self.repo.search_elevators(
            self.db, self.tenant_id, page, limit, name=name, number=number, type=type, status=status
        )
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def create_elevator(self, data: ElevatorCreate) -> Elevator:
        try:
            if self.repo.get_elevator_by_number(self.db, data.number, self.tenant_id):
                raise DuplicateRecord(
                    f"Elevator number {data.number} already exists", field="number", value=data.number
                )
            elevator = self.repo.create_elevator(
                self.db,
                self.tenant_id,
                name=data.name,
                number=data.number,
                type=data.type.value,
                capacity=data.capacity,
                location=data.location,
                notes=data.notes,
                status=ElevatorStatus.AVAILABLE.value,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(elevator)
        logger.info(f"Elevator {elevator.number} ({elevator.id}) created in tenant {self.tenant_id}")
        return elevator

    def update_elevator(self, elevator_id: str, data: ElevatorUpdate) -> Elevator:
        fields = data.model_dump(exclude_unset=True)
        try:
            elevator = self.get_elevator(elevator_id, for_update=True)

            number = fields.get("number")
            if number and self.repo.get_elevator_by_number(
                self.db, number, self.tenant_id, exclude_id=elevator.id
            ):
                raise DuplicateRecord(f"Elevator number {number} already exists", field="number", value=number)

            status = fields.pop("status", None)
            if status is not None and self.repo.get_open_usage(self.db, elevator.id):
                raise ElevatorUnavailable(
                    f"Cannot set an elevator to {status.value} while it is in use", elevatorId=elevator.id
                )

            updates = {key: getattr(value, "value", value) for key, value in fields.items()}
            if status == ElevatorStatus.MAINTENANCE:
                updates["status"] = ElevatorStatus.MAINTENANCE.value
            elif status == ElevatorStatus.AVAILABLE:
                upcoming = self.repo.count_active_reservations_after(self.db, elevator.id, utcnow())
                updates["status"] = (
                    ElevatorStatus.RESERVED.value if upcoming else ElevatorStatus.AVAILABLE.value
                )
            self.repo.update_elevator(self.db, elevator, **updates)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(elevator)
        logger.info(f"Elevator {elevator_id} updated: {sorted(updates)}")
        return elevator

    def delete_elevator(self, elevator_id: str) -> None:
        try:
            elevator = self.get_elevator(elevator_id, for_update=True)
            if self.repo.get_open_usage(self.db, elevator.id):
                raise ElevatorUnavailable(
                    "Cannot delete an elevator while it is in use", elevatorId=elevator.id
                )
            self.repo.delete_elevator(self.db, elevator)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ElevatorUnavailable(
                "Elevator is still referenced by appointments, quotes or service orders",
                elevatorId=elevator_id,
            ) from e
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Elevator {elevator_id} deleted from tenant {self.tenant_id}")

    # ========================================================================
    # RESERVATIONS
    # ========================================================================

    def place_reservation(
        self,
        elevator: Elevator,
        start: datetime,
        duration_minutes: int,
        service_order_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        quote_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ElevatorReservation:
        """
        Stage a reservation on an already locked elevator.

        Does not commit, so a caller can make the reservation part of a larger
        transaction (quote approval).
        """
        end = start + timedelta(minutes=duration_minutes)
        blocker = self._find_blocker(elevator, start, end)
        if blocker:
            logger.warning(
                f"Reservation rejected on elevator {elevator.id} for "
                f"{start.isoformat()} - {end.isoformat()}: {blocker}"
            )
            raise ElevatorUnavailable(
                blocker,
                elevatorId=elevator.id,
                requestedStart=start.isoformat(),
                requestedEnd=end.isoformat(),
            )

        reservation = self.repo.create_reservation(
            self.db,
            elevator.id,
            service_order_id=service_order_id,
            vehicle_id=vehicle_id,
            quote_id=quote_id,
            start_time=start,
            end_time=end,
            status="active",
            notes=notes,
        )
        if elevator.status == ElevatorStatus.AVAILABLE.value:
            elevator.status = ElevatorStatus.RESERVED.value
        self.db.flush()
        return reservation

    def reserve(
        self,
        elevator_id: str,
        service_order_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        scheduled_start: Optional[datetime] = None,
        duration_minutes: int = DEFAULT_RESERVATION_MINUTES,
        quote_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ElevatorReservation:
        """Reserve the elevator for [start, start + duration); start defaults to now"""
        start = to_utc_naive(scheduled_start) or utcnow()
        try:
            elevator = self.get_elevator(elevator_id, for_update=True)
            self._ensure_references(service_order_id, vehicle_id, quote_id)
            reservation = self.place_reservation(
                elevator,
                start,
                duration_minutes,
                service_order_id=service_order_id,
                vehicle_id=vehicle_id,
                quote_id=quote_id,
                notes=notes,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(reservation)
        logger.info(
            f"Elevator {elevator_id} reserved {reservation.start_time.isoformat()} - "
            f"{reservation.end_time.isoformat()} (reservation {reservation.id})"
        )
        return reservation

    def cancel_reservation(self, elevator_id: str, reservation_id: str) -> ElevatorReservation:
        try:
            elevator = self.get_elevator(elevator_id, for_update=True)
            reservation = self.repo.get_reservation(self.db, reservation_id, elevator.id)
            if not reservation:
                raise NotFound("Reservation", reservation_id)
            if reservation.status != "active":
                raise InvalidTransition("reservation", reservation.status, "cancelled")

            reservation.status = "cancelled"
            self.db.flush()
            self.release_if_unreserved(elevator)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(reservation)
        logger.info(f"Reservation {reservation_id} on elevator {elevator_id} cancelled")
        return reservation

    def release_if_unreserved(self, elevator: Elevator) -> None:
        """A reserved elevator with no active reservation left goes back to available"""
        if (
            elevator.status == ElevatorStatus.RESERVED.value
            and self.repo.count_active_reservations_after(self.db, elevator.id, utcnow()) == 0
        ):
            elevator.status = ElevatorStatus.AVAILABLE.value

    # ========================================================================
    # USAGE
    # ========================================================================

    def start_usage(
        self,
        elevator_id: str,
        service_order_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ElevatorUsage:
        """Open a usage record starting now"""
        now = utcnow()
        try:
            elevator = self.get_elevator(elevator_id, for_update=True)
            self._ensure_references(service_order_id, vehicle_id, None)

            if elevator.status == ElevatorStatus.MAINTENANCE.value:
                raise ElevatorUnavailable("Elevator is under maintenance", elevatorId=elevator.id)

            open_usage = self.repo.get_open_usage(self.db, elevator.id)
            if open_usage:
                logger.warning(f"Start usage rejected: elevator {elevator.id} already in use")
                raise ElevatorUnavailable(
                    "Elevator is already in use", elevatorId=elevator.id, usageId=open_usage.id
                )

            # Reservations covering this instant must belong to the same job
            for reservation in self.repo.find_active_reservations_overlapping(
                self.db, elevator.id, now, now + timedelta(microseconds=1)
            ):
                owned = (
                    reservation.service_order_id and reservation.service_order_id == service_order_id
                ) or (reservation.vehicle_id and reservation.vehicle_id == vehicle_id)
                if not owned:
                    raise ElevatorUnavailable(
                        "Elevator is reserved for another job right now",
                        elevatorId=elevator.id,
                        reservationId=reservation.id,
                    )
                reservation.status = "fulfilled"

            usage = self.repo.create_usage(
                self.db,
                elevator.id,
                service_order_id=service_order_id,
                vehicle_id=vehicle_id,
                start_time=now,
                notes=notes,
            )
            elevator.status = ElevatorStatus.OCCUPIED.value
            self.db.commit()
        except IntegrityError as e:
            # Partial unique index on open usages: a concurrent start won the race
            self.db.rollback()
            logger.warning(f"Concurrent start usage on elevator {elevator_id}: {e.orig}")
            raise ElevatorUnavailable("Elevator is already in use", elevatorId=elevator_id) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(usage)
        logger.info(f"Elevator {elevator_id} usage {usage.id} started")
        return usage

    def end_usage(
        self, elevator_id: str, usage_id: Optional[str] = None, notes: Optional[str] = None
    ) -> ElevatorUsage:
        """Close the open usage record; a second call finds nothing to close"""
        try:
            elevator = self.get_elevator(elevator_id, for_update=True)
            usage = self.repo.get_open_usage(self.db, elevator.id, usage_id)
            if not usage:
                logger.warning(f"End usage: no open usage on elevator {elevator_id} (usage {usage_id})")
                raise UsageNotFound(elevator_id, usage_id)

            end = utcnow()
            usage.end_time = end
            usage.duration_minutes = minutes_between(usage.start_time, end)
            if notes:
                usage.notes = f"{usage.notes}\n{notes}" if usage.notes else notes

            if elevator.status != ElevatorStatus.MAINTENANCE.value:
                upcoming = self.repo.count_active_reservations_after(self.db, elevator.id, end)
                elevator.status = (
                    ElevatorStatus.RESERVED.value if upcoming else ElevatorStatus.AVAILABLE.value
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(usage)
        logger.info(
            f"Elevator {elevator_id} usage {usage.id} ended after {usage.duration_minutes} minutes"
        )
        return usage

    def current_usage(self, elevator_id: str) -> Optional[ElevatorUsage]:
        elevator = self.get_elevator(elevator_id)
        return self.repo.get_open_usage(self.db, elevator.id)

    def usage_history(
        self,
        elevator_id: str,
        page: int = 1,
        limit: int = 10,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        elevator = self.get_elevator(elevator_id)
        items, total = self.repo.get_usage_history(
            self.db, elevator.id, page, limit, to_utc_naive(start_date), to_utc_naive(end_date)
        )
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def status_overview(self) -> list[tuple[Elevator, Optional[ElevatorUsage]]]:
        """Every elevator of the tenant with its open usage, if any"""
        elevators = self.repo.get_all_elevators(self.db, self.tenant_id)
        open_usages = {
            usage.elevator_id: usage
            for usage in self.repo.get_open_usages_for_tenant(self.db, self.tenant_id)
        }
        return [(elevator, open_usages.get(elevator.id)) for elevator in elevators]

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _find_blocker(self, elevator: Elevator, start: datetime, end: datetime) -> Optional[str]:
        """Reason the elevator cannot be booked for [start, end), or None"""
        if elevator.status == ElevatorStatus.MAINTENANCE.value:
            return "Elevator is under maintenance"
        if self.repo.find_usages_overlapping(self.db, elevator.id, start, end):
            return "Elevator is occupied during the requested window"
        if self.repo.find_active_reservations_overlapping(self.db, elevator.id, start, end):
            return "Elevator is already reserved for an overlapping window"
        if self.appointments.find_blocking_overlapping(
            self.db, self.tenant_id, start, end, elevator_id=elevator.id
        ):
            return "Elevator is booked by an appointment in the requested window"
        return None

    def _ensure_references(
        self,
        service_order_id: Optional[str],
        vehicle_id: Optional[str],
        quote_id: Optional[str],
    ) -> None:
        if service_order_id:
            require_service_order(self.db, self.tenant_id, service_order_id)
        if vehicle_id:
            require_vehicle(self.db, self.tenant_id, vehicle_id)
        if quote_id:
            require_quote(self.db, self.tenant_id, quote_id)
