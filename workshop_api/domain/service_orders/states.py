"""Service order statuses and their legal moves"""

import enum


class ServiceOrderStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TRANSITIONS: dict[ServiceOrderStatus, frozenset[ServiceOrderStatus]] = {
    ServiceOrderStatus.SCHEDULED: frozenset(
        {ServiceOrderStatus.IN_PROGRESS, ServiceOrderStatus.CANCELLED}
    ),
    ServiceOrderStatus.IN_PROGRESS: frozenset(
        {ServiceOrderStatus.COMPLETED, ServiceOrderStatus.CANCELLED}
    ),
    ServiceOrderStatus.COMPLETED: frozenset(),
    ServiceOrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: ServiceOrderStatus, requested: ServiceOrderStatus) -> bool:
    return requested in TRANSITIONS[current]
