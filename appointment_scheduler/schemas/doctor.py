from pydantic import BaseModel
from typing import Optional

from ..models.user import User


class DoctorResponse(BaseModel):
    id: int
    name: str
    email: str
    specialization: Optional[str] = None
    work_start: str
    work_end: str

    @classmethod
    def from_user(cls, user: User, work_start: str, work_end: str) -> "DoctorResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            specialization=user.doctor.specialization if user.doctor else None,
            work_start=work_start,
            work_end=work_end,
        )
