"""Post-transition hooks for appointments (notifications live outside this service)"""

import logging
from typing import Callable

from ...models import Appointment
from .states import AppointmentStatus

logger = logging.getLogger(__name__)

TransitionHook = Callable[[Appointment, AppointmentStatus, AppointmentStatus], None]


class AppointmentEventHooks:
    """Callbacks invoked after an appointment status change has been committed"""

    def __init__(self):
        self._hooks: list[TransitionHook] = []

    def register(self, hook: TransitionHook) -> TransitionHook:
        self._hooks.append(hook)
        return hook

    def fire(self, appointment: Appointment, old: AppointmentStatus, new: AppointmentStatus) -> None:
        for hook in self._hooks:
            try:
                hook(appointment, old, new)
            except Exception as e:
                # The transition is already committed; a failing listener must not undo it
                logger.error(
                    f"Appointment hook {getattr(hook, '__name__', hook)} failed for "
                    f"{appointment.id} ({old.value} -> {new.value}): {e}",
                    exc_info=True,
                )


def log_transition(appointment: Appointment, old: AppointmentStatus, new: AppointmentStatus) -> None:
    if new == AppointmentStatus.CONFIRMED and not appointment.reminder_sent:
        logger.info(f"Appointment {appointment.id} confirmed; reminder pending")
    else:
        logger.debug(f"Appointment {appointment.id}: {old.value} -> {new.value}")


def default_hooks() -> AppointmentEventHooks:
    hooks = AppointmentEventHooks()
    hooks.register(log_transition)
    return hooks
