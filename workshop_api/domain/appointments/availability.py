"""
Availability checker.

Answers two questions for a tenant:

- is a resource (elevator and/or mechanic) free during [start, start + duration)?
- which candidate start times on a given day are free?

All intervals are closed-open: [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1.
Appointments only conflict through a shared resource; a booking with neither a
mechanic nor an elevator never blocks another one.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...errors import NotFound
from ...models import Elevator, User
from ...tenancy import SchedulingPolicy
from ..elevators.repository import ElevatorRepository
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)

# Stand-in end for usages that have not ended yet
OPEN_END = datetime.max


@dataclass(frozen=True)
class BusyInterval:
    """A window during which one resource is taken"""

    start: datetime
    end: Optional[datetime]  # None while an elevator usage is still open
    resource_type: str  # "elevator" | "mechanic"
    resource_id: str
    resource_name: str
    reason: str
    record_id: Optional[str] = None

    @property
    def effective_end(self) -> datetime:
        return self.end if self.end is not None else OPEN_END


@dataclass
class AvailabilityResult:
    available: bool
    conflicts: list[BusyInterval] = field(default_factory=list)


@dataclass
class Slot:
    start: datetime
    end: datetime
    available: bool
    reason: Optional[str] = None
    conflicting_resource_id: Optional[str] = None


@dataclass
class SlotSearchResult:
    date: date
    slots: list[Slot]
    free_intervals: list[tuple[datetime, datetime]]

    @property
    def has_availability(self) -> bool:
        return any(slot.available for slot in self.slots)


# ============================================================================
# INTERVAL ARITHMETIC
# ============================================================================


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def subtract_intervals(
    window: tuple[datetime, datetime], busy: Iterable[tuple[datetime, datetime]]
) -> list[tuple[datetime, datetime]]:
    """Free sub-intervals of window once every busy interval is removed, in order"""
    window_start, window_end = window
    free = []
    cursor = window_start
    for busy_start, busy_end in sorted(busy):
        if busy_end <= cursor:
            continue
        if busy_start >= window_end:
            break
        if busy_start > cursor:
            free.append((cursor, busy_start))
        cursor = max(cursor, busy_end)
        if cursor >= window_end:
            break
    if cursor < window_end:
        free.append((cursor, window_end))
    return free


def working_window(day: date, policy: SchedulingPolicy) -> tuple[datetime, datetime]:
    """
    Operating window of a day in UTC.

    A tenant without operating hours (start == end) is open the whole day.
    """
    midnight = datetime.combine(day, time.min)
    if not policy.has_operating_hours:
        return midnight, midnight + timedelta(days=1)
    return (
        midnight + timedelta(hours=policy.work_start_hour),
        midnight + timedelta(hours=policy.work_end_hour),
    )


def candidate_starts(
    window: tuple[datetime, datetime], interval_minutes: int, duration_minutes: int
) -> list[datetime]:
    """Slot starts every interval_minutes whose slot still ends inside the window"""
    window_start, window_end = window
    step = timedelta(minutes=interval_minutes)
    length = timedelta(minutes=duration_minutes)
    starts = []
    cursor = window_start
    while cursor + length <= window_end:
        starts.append(cursor)
        cursor += step
    return starts


def first_conflict(
    start: datetime, end: datetime, busy: Iterable[BusyInterval]
) -> Optional[BusyInterval]:
    for interval in busy:
        if overlaps(start, end, interval.start, interval.effective_end):
            return interval
    return None


# ============================================================================
# CHECKER
# ============================================================================


class AvailabilityChecker:
    """Computes busy intervals for elevators and mechanics of one tenant"""

    def __init__(self, db: Session, tenant_id: str, policy: SchedulingPolicy):
        self.db = db
        self.tenant_id = tenant_id
        self.policy = policy
        self.appointments = AppointmentRepository()
        self.elevators = ElevatorRepository()

    def resolve_elevator(self, elevator_id: str, for_update: bool = False) -> Elevator:
        elevator = self.elevators.get_elevator_by_id(self.db, elevator_id, self.tenant_id, for_update)
        if not elevator:
            raise NotFound("Elevator", elevator_id)
        return elevator

    def resolve_mechanic(self, mechanic_id: str, for_update: bool = False) -> User:
        mechanic = self.appointments.get_mechanic(self.db, mechanic_id, self.tenant_id, for_update)
        if not mechanic:
            raise NotFound("Mechanic", mechanic_id)
        return mechanic

    def elevator_busy(
        self,
        elevator: Elevator,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[BusyInterval]:
        """Everything that keeps the elevator taken within the window"""
        label = f"{elevator.name} ({elevator.number})"

        def busy(start, end, reason, record_id=None):
            return BusyInterval(start, end, "elevator", elevator.id, label, reason, record_id)

        if elevator.status == "maintenance":
            return [busy(window_start, window_end, "Elevator under maintenance")]

        intervals = [
            busy(usage.start_time, usage.end_time, "Elevator in use", usage.id)
            for usage in self.elevators.find_usages_overlapping(
                self.db, elevator.id, window_start, window_end
            )
        ]
        intervals.extend(
            busy(reservation.start_time, reservation.end_time, "Elevator reserved", reservation.id)
            for reservation in self.elevators.find_active_reservations_overlapping(
                self.db, elevator.id, window_start, window_end
            )
        )
        intervals.extend(
            busy(
                appointment.date,
                appointment.date + timedelta(minutes=appointment.duration),
                "Elevator booked by another appointment",
                appointment.id,
            )
            for appointment in self.appointments.find_blocking_overlapping(
                self.db,
                self.tenant_id,
                window_start,
                window_end,
                elevator_id=elevator.id,
                exclude_id=exclude_appointment_id,
            )
        )
        return sorted(intervals, key=lambda interval: interval.start)

    def mechanic_busy(
        self,
        mechanic: User,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[BusyInterval]:
        """Appointments and running service orders of the mechanic within the window"""
        intervals = [
            BusyInterval(
                appointment.date,
                appointment.date + timedelta(minutes=appointment.duration),
                "mechanic",
                mechanic.id,
                mechanic.name,
                "Mechanic has another appointment",
                appointment.id,
            )
            for appointment in self.appointments.find_blocking_overlapping(
                self.db,
                self.tenant_id,
                window_start,
                window_end,
                assigned_to_id=mechanic.id,
                exclude_id=exclude_appointment_id,
            )
        ]
        intervals.extend(
            BusyInterval(
                order.appointment_date,
                order.appointment_date + timedelta(hours=order.estimated_hours),
                "mechanic",
                mechanic.id,
                mechanic.name,
                "Mechanic has a service order in progress",
                order.id,
            )
            for order in self.appointments.find_in_progress_service_orders(
                self.db, self.tenant_id, mechanic.id, window_start, window_end
            )
        )
        return sorted(intervals, key=lambda interval: interval.start)

    def _busy_for(
        self,
        window_start: datetime,
        window_end: datetime,
        elevator_id: Optional[str],
        mechanic_id: Optional[str],
        exclude_appointment_id: Optional[str],
    ) -> list[BusyInterval]:
        busy = []
        if elevator_id:
            elevator = self.resolve_elevator(elevator_id)
            busy.extend(self.elevator_busy(elevator, window_start, window_end, exclude_appointment_id))
        if mechanic_id:
            mechanic = self.resolve_mechanic(mechanic_id)
            busy.extend(self.mechanic_busy(mechanic, window_start, window_end, exclude_appointment_id))
        return sorted(busy, key=lambda interval: interval.start)

    def check(
        self,
        start: datetime,
        duration: int,
        elevator_id: Optional[str] = None,
        mechanic_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> AvailabilityResult:
        """Is [start, start + duration) free for the given resources?"""
        end = start + timedelta(minutes=duration)
        conflicts = self._busy_for(start, end, elevator_id, mechanic_id, exclude_appointment_id)
        if conflicts:
            logger.debug(
                f"Availability check {start.isoformat()} +{duration}min: {len(conflicts)} conflict(s)"
            )
        return AvailabilityResult(available=not conflicts, conflicts=conflicts)

    def available_slots(
        self,
        day: date,
        duration: int,
        elevator_id: Optional[str] = None,
        mechanic_id: Optional[str] = None,
    ) -> SlotSearchResult:
        """Candidate slots of the day, each tagged available or not"""
        window = working_window(day, self.policy)
        busy = self._busy_for(window[0], window[1], elevator_id, mechanic_id, None)

        slots = []
        for start in candidate_starts(window, self.policy.slot_interval_minutes, duration):
            end = start + timedelta(minutes=duration)
            conflict = first_conflict(start, end, busy)
            slots.append(
                Slot(
                    start=start,
                    end=end,
                    available=conflict is None,
                    reason=conflict.reason if conflict else None,
                    conflicting_resource_id=conflict.resource_id if conflict else None,
                )
            )

        free = subtract_intervals(
            window, ((interval.start, min(interval.effective_end, window[1])) for interval in busy)
        )
        return SlotSearchResult(date=day, slots=slots, free_intervals=free)
