from pydantic import BaseModel, Field
from typing import Optional
import datetime as dt

from ..models.appointment import AppointmentStatus


class UserSummary(BaseModel):
    """Name and email of the other party on an appointment."""
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class AppointmentCreate(BaseModel):
    """Booking request. Fields are checked by the scheduling service so a
    missing value gets a specific message rather than a schema error."""
    doctor_id: Optional[int] = None
    date: Optional[str] = Field(None, description="Calendar date, YYYY-MM-DD")
    time_slot: Optional[str] = Field(None, description="Slot label such as '09:00 AM'")


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    date: dt.date
    time_slot: str
    status: AppointmentStatus
    patient: Optional[UserSummary] = None
    doctor: Optional[UserSummary] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class CancellationResponse(BaseModel):
    message: str
    appointment: AppointmentResponse
