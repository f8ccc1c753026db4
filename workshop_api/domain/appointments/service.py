"""Appointment service - lifecycle of appointments and availability checks"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...errors import InvalidTransition, NotFound, SchedulingConflict, ValidationError
from ...models import Appointment
from ...shared.lookups import require_customer, require_service_order
from ...shared.timeutils import to_utc_naive, utcnow
from ...tenancy import SchedulingPolicy
from .availability import AvailabilityChecker, AvailabilityResult, BusyInterval, SlotSearchResult
from .hooks import AppointmentEventHooks
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate
from .states import INITIAL_STATUSES, AppointmentStatus, can_transition, is_terminal

logger = logging.getLogger(__name__)


def validate_duration(duration: int) -> int:
    if not config.MIN_APPOINTMENT_DURATION <= duration <= config.MAX_APPOINTMENT_DURATION:
        raise ValidationError(
            f"Duration must be between {config.MIN_APPOINTMENT_DURATION} and "
            f"{config.MAX_APPOINTMENT_DURATION} minutes",
            field="duration",
            value=duration,
        )
    return duration


def _conflict_error(conflict: BusyInterval) -> SchedulingConflict:
    return SchedulingConflict(
        f"{conflict.reason}: {conflict.resource_name} is busy from "
        f"{conflict.start.isoformat()}"
        + (f" to {conflict.end.isoformat()}" if conflict.end else ""),
        resourceType=conflict.resource_type,
        resourceId=conflict.resource_id,
        conflictStart=conflict.start.isoformat(),
        conflictEnd=conflict.end.isoformat() if conflict.end else None,
        conflictingRecordId=conflict.record_id,
    )


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(
        self,
        db: Session,
        tenant_id: str,
        policy: SchedulingPolicy,
        hooks: Optional[AppointmentEventHooks] = None,
        allow_past: Optional[bool] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = AppointmentRepository()
        self.checker = AvailabilityChecker(db, tenant_id, policy)
        self.hooks = hooks or AppointmentEventHooks()
        self.allow_past = config.ALLOW_PAST_APPOINTMENTS if allow_past is None else allow_past

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_appointment_by_id(self.db, appointment_id, self.tenant_id)
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    def list_appointments(
        self,
        page: int = 1,
        limit: int = 10,
        customer_id: Optional[str] = None,
        service_order_id: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        items, total = self.repo.search_appointments(
            self.db,
            self.tenant_id,
            page,
            limit,
            customer_id=customer_id,
            service_order_id=service_order_id,
            assigned_to_id=assigned_to_id,
            status=status,
            start_date=to_utc_naive(start_date),
            end_date=to_utc_naive(end_date),
        )
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def check_availability(
        self,
        start: datetime,
        duration: int = config.DEFAULT_APPOINTMENT_DURATION,
        elevator_id: Optional[str] = None,
        mechanic_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> AvailabilityResult:
        validate_duration(duration)
        return self.checker.check(
            to_utc_naive(start),
            duration,
            elevator_id=elevator_id,
            mechanic_id=mechanic_id,
            exclude_appointment_id=exclude_appointment_id,
        )

    def available_slots(
        self,
        day: datetime,
        duration: int = config.DEFAULT_APPOINTMENT_DURATION,
        elevator_id: Optional[str] = None,
        mechanic_id: Optional[str] = None,
    ) -> SlotSearchResult:
        validate_duration(duration)
        return self.checker.available_slots(
            to_utc_naive(day).date(), duration, elevator_id=elevator_id, mechanic_id=mechanic_id
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """
        Book an appointment.

        The mechanic and elevator rows are locked before the availability check so
        concurrent bookings of the same resource serialize on them.
        """
        start = to_utc_naive(data.date)
        duration = validate_duration(data.duration)

        if not self.allow_past and start < utcnow():
            raise ValidationError("Cannot book an appointment in the past", field="date")
        if data.status not in INITIAL_STATUSES:
            raise ValidationError(
                f"New appointments must start as scheduled or confirmed, not {data.status.value}",
                field="status",
            )

        try:
            self._ensure_references(data.customerId, data.serviceOrderId)
            self._ensure_free(start, duration, data.elevatorId, data.assignedToId, lock=True)

            appointment = self.repo.create_appointment(
                self.db,
                self.tenant_id,
                customer_id=data.customerId,
                service_order_id=data.serviceOrderId,
                assigned_to_id=data.assignedToId,
                elevator_id=data.elevatorId,
                date=start,
                duration=duration,
                service_type=data.serviceType,
                notes=data.notes,
                status=data.status.value,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} created for {start.isoformat()} ({duration}min) "
            f"in tenant {self.tenant_id}"
        )
        return appointment

    def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> Appointment:
        """Sparse update; a changed mechanic must be free for the booked window"""
        fields = data.model_dump(exclude_unset=True)
        try:
            appointment = self.get_appointment(appointment_id)
            if is_terminal(AppointmentStatus(appointment.status)):
                raise InvalidTransition(
                    "appointment",
                    appointment.status,
                    appointment.status,
                    f"Appointment is {appointment.status} and can no longer be edited",
                )

            self._ensure_references(fields.get("customerId"), fields.get("serviceOrderId"))

            new_mechanic = fields.get("assignedToId")
            if new_mechanic and new_mechanic != appointment.assigned_to_id:
                self._ensure_free(
                    appointment.date,
                    appointment.duration,
                    None,
                    new_mechanic,
                    lock=True,
                    exclude_appointment_id=appointment.id,
                )

            column_map = {
                "customerId": "customer_id",
                "serviceOrderId": "service_order_id",
                "assignedToId": "assigned_to_id",
                "serviceType": "service_type",
                "notes": "notes",
            }
            updates = {column_map[key]: value for key, value in fields.items()}
            self.repo.update_appointment(self.db, appointment, **updates)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment_id} updated: {sorted(fields)}")
        return appointment

    def reschedule(
        self, appointment_id: str, new_date: datetime, new_duration: Optional[int] = None
    ) -> Appointment:
        """Move an appointment; its own current booking never counts as a conflict"""
        start = to_utc_naive(new_date)
        try:
            appointment = self.get_appointment(appointment_id)
            duration = validate_duration(
                new_duration if new_duration is not None else appointment.duration
            )
            if is_terminal(AppointmentStatus(appointment.status)):
                raise InvalidTransition(
                    "appointment",
                    appointment.status,
                    appointment.status,
                    f"Cannot reschedule an appointment that is {appointment.status}",
                )
            if not self.allow_past and start < utcnow():
                raise ValidationError("Cannot reschedule into the past", field="date")

            self._ensure_free(
                start,
                duration,
                appointment.elevator_id,
                appointment.assigned_to_id,
                lock=True,
                exclude_appointment_id=appointment.id,
            )

            old_date = appointment.date
            self.repo.update_appointment(
                self.db, appointment, date=start, duration=duration, reminder_sent=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment_id} rescheduled {old_date.isoformat()} -> {start.isoformat()}"
        )
        return appointment

    def transition(self, appointment_id: str, new_status: AppointmentStatus) -> Appointment:
        """Move along the state graph; hooks run after the commit"""
        try:
            appointment = self.get_appointment(appointment_id)
            current = AppointmentStatus(appointment.status)
            if not can_transition(current, new_status):
                logger.warning(
                    f"Rejected appointment transition {appointment_id}: "
                    f"{current.value} -> {new_status.value}"
                )
                raise InvalidTransition("appointment", current.value, new_status.value)

            self.repo.update_appointment(self.db, appointment, status=new_status.value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment_id}: {current.value} -> {new_status.value}")
        self.hooks.fire(appointment, current, new_status)
        return appointment

    def cancel(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.CANCELLED)

    def claim(self, appointment_id: str, mechanic_id: str) -> Appointment:
        """A mechanic takes an unassigned scheduled appointment"""
        try:
            appointment = self.get_appointment(appointment_id)
            if appointment.status != AppointmentStatus.SCHEDULED.value:
                raise InvalidTransition(
                    "appointment",
                    appointment.status,
                    appointment.status,
                    "Only scheduled appointments can be claimed",
                )
            if appointment.assigned_to_id:
                raise SchedulingConflict(
                    "Appointment is already assigned to another mechanic",
                    resourceType="mechanic",
                    resourceId=appointment.assigned_to_id,
                )

            self._ensure_free(
                appointment.date,
                appointment.duration,
                None,
                mechanic_id,
                lock=True,
                exclude_appointment_id=appointment.id,
            )
            self.repo.update_appointment(self.db, appointment, assigned_to_id=mechanic_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment_id} claimed by mechanic {mechanic_id}")
        return appointment

    def mark_reminder_sent(self, appointment_id: str) -> Appointment:
        try:
            appointment = self.get_appointment(appointment_id)
            self.repo.update_appointment(self.db, appointment, reminder_sent=True)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(appointment)
        return appointment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_references(self, customer_id: Optional[str], service_order_id: Optional[str]) -> None:
        if customer_id:
            require_customer(self.db, self.tenant_id, customer_id)
        if service_order_id:
            require_service_order(self.db, self.tenant_id, service_order_id)

    def _ensure_free(
        self,
        start: datetime,
        duration: int,
        elevator_id: Optional[str],
        mechanic_id: Optional[str],
        lock: bool = False,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        """Raise SchedulingConflict if a requested resource is busy in the window"""
        end = start + timedelta(minutes=duration)
        busy = []
        if elevator_id:
            elevator = self.checker.resolve_elevator(elevator_id, for_update=lock)
            busy.extend(self.checker.elevator_busy(elevator, start, end, exclude_appointment_id))
        if mechanic_id:
            mechanic = self.checker.resolve_mechanic(mechanic_id, for_update=lock)
            busy.extend(self.checker.mechanic_busy(mechanic, start, end, exclude_appointment_id))
        if busy:
            conflict = min(busy, key=lambda interval: interval.start)
            logger.warning(
                f"Scheduling conflict for {start.isoformat()} +{duration}min: {conflict.reason}"
            )
            raise _conflict_error(conflict)
