from sqlalchemy.orm import Session, joinedload
from typing import List, Optional

from ..models.user import User
from ..models.doctor import Doctor  # noqa: F401  (mapper for User.doctor)
from ..core.config import settings
from ..core.security import UserRole
from .slot_generator import WorkingHours

class UserDirectory:
    """Read-only view of the identity directory."""

    def __init__(self, db: Session):
        self.db = db

    def find_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).options(joinedload(User.doctor)).filter(
            User.id == user_id
        ).first()

    def find_doctor(self, doctor_id: int) -> Optional[User]:
        """Active user with the DOCTOR role, or None."""
        user = self.find_user_by_id(doctor_id)
        if not user or user.role != UserRole.DOCTOR or not user.is_active:
            return None
        return user

    def list_doctors(self) -> List[User]:
        return self.db.query(User).options(joinedload(User.doctor)).filter(
            User.role == UserRole.DOCTOR,
            User.is_active == True  # noqa: E712
        ).order_by(User.name).all()

    @staticmethod
    def working_hours_for(doctor: User) -> WorkingHours:
        profile = doctor.doctor
        if profile is None:
            return WorkingHours(settings.DEFAULT_WORK_START, settings.DEFAULT_WORK_END)
        return WorkingHours(profile.work_start, profile.work_end)
