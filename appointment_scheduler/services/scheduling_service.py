from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, List, Optional, Union
import logging
import re

from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User
from ..core.security import UserRole
from ..core.exceptions import InvalidInput, NotFound, Forbidden, Unavailable
from .availability import AvailabilityResolver
from .booking_ledger import BookingLedger
from .slot_generator import SlotGenerator, WorkingHours, is_slot_label, parse_clock
from .status_transitions import StatusTransitionEngine
from .user_directory import UserDirectory

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

class SchedulingService:
    """Entry point for the appointment API.

    Checks the cross-cutting preconditions once (actor role, date not in the
    past, doctor existence) and then sequences the slot generator, the
    availability resolver, the booking ledger and the status transition
    engine. Persistence failures surface as ``Unavailable``.
    """

    def __init__(self, db: Session, today: Optional[Callable[[], date]] = None):
        self.db = db
        self.today = today or date.today
        self.directory = UserDirectory(db)
        self.ledger = BookingLedger(db)
        self.transitions = StatusTransitionEngine(self.ledger)
        self.slot_generator = SlotGenerator()
        self.resolver = AvailabilityResolver()

    def get_available_slots(self, doctor_id: int, on_date: Union[str, date]) -> List[str]:
        """Slots of the doctor's grid not held by pending or approved bookings."""
        booking_date = self._parse_booking_date(on_date)

        with self._persistence("get_available_slots"):
            doctor = self._require_doctor(doctor_id)
            candidates = self.slot_generator.generate(self._working_hours(doctor), booking_date)
            booked = self.ledger.booked_slots(doctor.id, booking_date)

        return self.resolver.resolve(candidates, booked)

    def book_appointment(
        self,
        patient_id: int,
        doctor_id: Optional[int],
        on_date: Union[str, date, None],
        time_slot: Optional[str],
        role: UserRole = UserRole.PATIENT
    ) -> Appointment:
        """Create a PENDING appointment for the calling patient."""
        if self._coerce_role(role) != UserRole.PATIENT:
            raise Forbidden("Forbidden: Only patients can book appointments.")

        if not doctor_id or not on_date or not time_slot:
            raise InvalidInput("All fields are required: doctor, date, and time slot.")

        booking_date = self._parse_booking_date(on_date)

        if not is_slot_label(time_slot):
            raise InvalidInput(
                f"Invalid time slot '{time_slot}'. Expected a label such as '09:00 AM'."
            )

        with self._persistence("book_appointment"):
            doctor = self._require_doctor(doctor_id)

            grid = self.slot_generator.generate(self._working_hours(doctor), booking_date)
            if time_slot not in grid:
                raise InvalidInput(
                    f"The time slot {time_slot} is not offered by this doctor on "
                    f"{booking_date.isoformat()}. Please select another time."
                )

            appointment = self.ledger.create(patient_id, doctor.id, booking_date, time_slot)

        logger.info(
            f"Appointment {appointment.id} booked: patient {patient_id} with doctor {doctor.id} "
            f"on {booking_date} at {time_slot}"
        )
        return appointment

    def list_appointments(self, actor_id: int, role: UserRole) -> List[Appointment]:
        role = self._coerce_role(role)
        with self._persistence("list_appointments"):
            return self.ledger.find_by_actor(actor_id, role)

    def get_appointment(self, actor_id: int, role: UserRole, appointment_id: int) -> Appointment:
        role = self._coerce_role(role)
        with self._persistence("get_appointment"):
            appointment = self._require_appointment(appointment_id)

        participant_id = appointment.doctor_id if role == UserRole.DOCTOR else appointment.patient_id
        if participant_id != actor_id:
            raise Forbidden("You are not authorized to view this appointment.")

        return appointment

    def update_status(
        self,
        actor_id: int,
        role: UserRole,
        appointment_id: int,
        new_status: Union[AppointmentStatus, str]
    ) -> Appointment:
        role = self._coerce_role(role)
        try:
            new_status = AppointmentStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in AppointmentStatus)
            raise InvalidInput(f"Invalid status '{new_status}'. Expected one of: {allowed}.")

        with self._persistence("update_status"):
            appointment = self._require_appointment(appointment_id, lock=True)
            return self.transitions.apply(actor_id, role, appointment, new_status)

    def cancel_appointment(
        self,
        actor_id: int,
        appointment_id: int,
        role: UserRole = UserRole.PATIENT
    ) -> Appointment:
        return self.update_status(actor_id, role, appointment_id, AppointmentStatus.CANCELLED)

    def list_doctors(self) -> List[User]:
        with self._persistence("list_doctors"):
            return self.directory.list_doctors()

    # Helpers
    @contextmanager
    def _persistence(self, operation: str):
        """Turn storage failures into a generic retryable error."""
        try:
            yield
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Persistence failure during {operation}")
            raise Unavailable()

    @staticmethod
    def _coerce_role(role) -> UserRole:
        try:
            return UserRole(role)
        except ValueError:
            raise Forbidden("Forbidden: Invalid role.")

    def _parse_booking_date(self, value: Union[str, date]) -> date:
        if isinstance(value, date):
            parsed = value.date() if isinstance(value, datetime) else value
        else:
            if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
                raise InvalidInput("Invalid date format. Please select a valid date (YYYY-MM-DD).")
            try:
                parsed = date.fromisoformat(value)
            except ValueError:
                raise InvalidInput("Invalid date format. Please select a valid date (YYYY-MM-DD).")

        if parsed < self.today():
            raise InvalidInput("Cannot book appointments for past dates. Please select a future date.")

        return parsed

    def _require_doctor(self, doctor_id: int) -> User:
        doctor = self.directory.find_doctor(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found. Please select a valid doctor.")
        return doctor

    def _require_appointment(self, appointment_id: int, lock: bool = False) -> Appointment:
        appointment = self.ledger.find_by_id(appointment_id, lock=lock)
        if not appointment:
            raise NotFound("Appointment not found.")
        return appointment

    def _working_hours(self, doctor: User) -> WorkingHours:
        hours = self.directory.working_hours_for(doctor)
        if parse_clock(hours.start) >= parse_clock(hours.end):
            raise InvalidInput(
                f"Doctor working hours are misconfigured ({hours.start}-{hours.end}): "
                "the start must be before the end."
            )
        return hours
