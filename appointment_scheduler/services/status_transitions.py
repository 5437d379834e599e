from typing import Dict, FrozenSet, Tuple
import logging

from ..models.appointment import Appointment, AppointmentStatus
from ..core.security import UserRole
from ..core.exceptions import Forbidden, InvalidTransition
from .booking_ledger import BookingLedger

logger = logging.getLogger(__name__)

_DOCTOR = frozenset({UserRole.DOCTOR})
_DOCTOR_OR_PATIENT = frozenset({UserRole.DOCTOR, UserRole.PATIENT})

# (from, to) -> roles allowed to request it. COMPLETED and CANCELLED are terminal.
TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus], FrozenSet[UserRole]] = {
    (AppointmentStatus.PENDING, AppointmentStatus.APPROVED): _DOCTOR,
    (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED): _DOCTOR,
    (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED): _DOCTOR_OR_PATIENT,
    (AppointmentStatus.APPROVED, AppointmentStatus.COMPLETED): _DOCTOR,
    (AppointmentStatus.APPROVED, AppointmentStatus.CANCELLED): _DOCTOR,
}

TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


class StatusTransitionEngine:
    def __init__(self, ledger: BookingLedger):
        self.ledger = ledger

    def apply(
        self,
        actor_id: int,
        role: UserRole,
        appointment: Appointment,
        new_status: AppointmentStatus
    ) -> Appointment:
        """Validate and apply a status change requested by an actor."""
        self._check_ownership(actor_id, role, appointment)

        current = AppointmentStatus(appointment.status)
        allowed_roles = TRANSITIONS.get((current, new_status))

        if allowed_roles is None:
            raise InvalidTransition(self._invalid_transition_message(current, new_status))

        if role not in allowed_roles:
            logger.warning(
                f"{role.value} {actor_id} may not move appointment {appointment.id} "
                f"from {current.value} to {new_status.value}"
            )
            if current == AppointmentStatus.APPROVED and new_status == AppointmentStatus.CANCELLED:
                raise Forbidden(
                    "Cannot cancel an approved appointment. Please contact the doctor directly."
                )
            raise Forbidden(
                f"Only the assigned doctor can mark an appointment as {new_status.value}."
            )

        if new_status == AppointmentStatus.APPROVED:
            updated = self.ledger.approve(appointment, expected_status=current)
        else:
            updated = self.ledger.set_status(appointment, new_status, expected_status=current)

        logger.info(
            f"Appointment {appointment.id} moved from {current.value} to {new_status.value} "
            f"by {role.value} {actor_id}"
        )
        return updated

    @staticmethod
    def _check_ownership(actor_id: int, role: UserRole, appointment: Appointment):
        if role == UserRole.DOCTOR:
            if appointment.doctor_id != actor_id:
                raise Forbidden(
                    "You are not authorized to update this appointment. "
                    "Only the assigned doctor can make changes."
                )
        elif role == UserRole.PATIENT:
            if appointment.patient_id != actor_id:
                raise Forbidden("You can only cancel your own appointments.")
        else:
            raise Forbidden("Forbidden: Invalid role.")

    @staticmethod
    def _invalid_transition_message(current: AppointmentStatus, new_status: AppointmentStatus) -> str:
        if current in TERMINAL_STATUSES:
            return f"Cannot change a {current.value.lower()} appointment."
        if current == new_status:
            return f"Appointment is already {current.value}."
        return f"Cannot move an appointment from {current.value} to {new_status.value}."
