"""
Domain errors raised by the service layer.

Each error carries a machine-readable ``kind`` and the HTTP status the API
answers with. ``main.py`` renders them; services never build HTTP responses.
"""

from typing import Any, Optional


class WorkshopError(Exception):
    """Base class for business errors surfaced to API clients"""

    kind = "workshop_error"
    status_code = 400

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "detail": self.message}
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


class ValidationError(WorkshopError):
    """Malformed or out-of-range input, detected before any state change"""

    kind = "validation_error"
    status_code = 422


class NotFound(WorkshopError):
    """Referenced entity does not exist in the caller's tenant"""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        super().__init__(f"{entity} not found", entity=entity, id=entity_id)


class UsageNotFound(NotFound):
    kind = "usage_not_found"

    def __init__(self, elevator_id: str, usage_id: Optional[str] = None):
        WorkshopError.__init__(
            self,
            "No open usage found for this elevator",
            elevatorId=elevator_id,
            usageId=usage_id,
        )


class SchedulingConflict(WorkshopError):
    """A resource is already booked for an overlapping window"""

    kind = "scheduling_conflict"
    status_code = 409


class ElevatorUnavailable(WorkshopError):
    """Open usage, reservation collision or maintenance on an elevator"""

    kind = "elevator_unavailable"
    status_code = 409


class InvalidTransition(WorkshopError):
    kind = "invalid_transition"
    status_code = 409

    def __init__(self, entity: str, current: str, requested: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot move {entity} from '{current}' to '{requested}'",
            entity=entity,
            currentStatus=current,
            requestedStatus=requested,
        )


class DuplicateRecord(WorkshopError):
    kind = "duplicate_record"
    status_code = 409


class TenantRequired(WorkshopError):
    """Request reached a tenant-scoped route without a tenant"""

    kind = "tenant_required"
    status_code = 400
