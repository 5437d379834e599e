from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from datetime import date
from typing import List, Optional
import logging

from ..models.appointment import Appointment, AppointmentStatus, BLOCKING_STATUSES
from ..core.security import UserRole
from ..core.exceptions import Conflict, Forbidden, SlotConflict

logger = logging.getLogger(__name__)

APPROVED_SLOT_MESSAGE = "This time slot is already approved and booked. Please select another time."
APPROVAL_CONFLICT_MESSAGE = (
    "Cannot approve this appointment as it conflicts with another "
    "approved appointment at the same time."
)
STALE_STATUS_MESSAGE = "This appointment was changed by another request. Please reload and try again."

class BookingLedger:
    """Authoritative appointment record.

    Holds the one-approved-appointment-per-slot invariant. Creation refuses
    slots that are already approved. Approval re-checks the slot under a row
    lock and relies on the ``uq_appointments_approved_slot`` partial index
    when two approvals race. Status writes only land on a row that still
    holds the status they were checked against.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, appointment_id: int, lock: bool = False) -> Optional[Appointment]:
        """Look up one appointment. With ``lock`` the row is read fresh and held for update."""
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if lock:
            query = query.with_for_update().populate_existing()
        return query.first()

    def find_by_actor(self, actor_id: int, role: UserRole) -> List[Appointment]:
        """Appointments the actor takes part in, as doctor or as patient."""
        query = self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor),
        )

        if role == UserRole.DOCTOR:
            query = query.filter(Appointment.doctor_id == actor_id)
        elif role == UserRole.PATIENT:
            query = query.filter(Appointment.patient_id == actor_id)
        else:
            raise Forbidden("Forbidden: Invalid role.")

        return query.order_by(Appointment.date, Appointment.id).all()

    def booked_slots(self, doctor_id: int, on_date: date) -> List[str]:
        """Slot labels taken by pending or approved appointments."""
        rows = self.db.query(Appointment.time_slot).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.date == on_date,
            Appointment.status.in_(BLOCKING_STATUSES)
        ).all()
        return [row.time_slot for row in rows]

    def find_approved(
        self,
        doctor_id: int,
        on_date: date,
        time_slot: str,
        exclude_id: Optional[int] = None,
        lock: bool = False
    ) -> Optional[Appointment]:
        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.date == on_date,
            Appointment.time_slot == time_slot,
            Appointment.status == AppointmentStatus.APPROVED
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def create(
        self,
        patient_id: int,
        doctor_id: int,
        on_date: date,
        time_slot: str
    ) -> Appointment:
        """Record a new PENDING appointment.

        Competing pending requests for one slot are allowed. Only an
        already-approved slot is refused.
        """
        if self.find_approved(doctor_id, on_date, time_slot):
            logger.warning(
                f"Booking refused: doctor {doctor_id} {on_date} {time_slot} is already approved"
            )
            raise SlotConflict(APPROVED_SLOT_MESSAGE)

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            date=on_date,
            time_slot=time_slot,
            status=AppointmentStatus.PENDING
        )

        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        return appointment

    def approve(
        self,
        appointment: Appointment,
        expected_status: Optional[AppointmentStatus] = None
    ) -> Appointment:
        """Move an appointment to APPROVED under the approval guard.

        The conflict check and the write share one transaction. If a
        concurrent approval commits first, the partial unique index rejects
        this write and the conflict is reported the same way.
        """
        conflicting = self.find_approved(
            appointment.doctor_id,
            appointment.date,
            appointment.time_slot,
            exclude_id=appointment.id,
            lock=True
        )
        if conflicting:
            self.db.rollback()
            logger.warning(
                f"Approval refused for appointment {appointment.id}: "
                f"appointment {conflicting.id} already holds the slot"
            )
            raise SlotConflict(APPROVAL_CONFLICT_MESSAGE)

        try:
            self._write_status(appointment, AppointmentStatus.APPROVED, expected_status)
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"Approval refused for appointment {appointment.id}: concurrent approval won the slot"
            )
            raise SlotConflict(APPROVAL_CONFLICT_MESSAGE)

        self.db.refresh(appointment)
        return appointment

    def set_status(
        self,
        appointment: Appointment,
        new_status: AppointmentStatus,
        expected_status: Optional[AppointmentStatus] = None
    ) -> Appointment:
        """Write a non-approval status change."""
        self._write_status(appointment, new_status, expected_status)
        self.db.refresh(appointment)
        return appointment

    def _write_status(
        self,
        appointment: Appointment,
        new_status: AppointmentStatus,
        expected_status: Optional[AppointmentStatus]
    ):
        """Commit ``new_status`` only if the row still holds ``expected_status``.

        ``expected_status`` defaults to the status loaded into the session.
        """
        if expected_status is None:
            expected_status = AppointmentStatus(appointment.status)

        matched = self.db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.status == expected_status
        ).update({Appointment.status: new_status}, synchronize_session=False)

        if matched != 1:
            self.db.rollback()
            logger.warning(
                f"Status write refused for appointment {appointment.id}: "
                f"no longer {expected_status.value}"
            )
            raise Conflict(STALE_STATUS_MESSAGE)

        self.db.commit()
