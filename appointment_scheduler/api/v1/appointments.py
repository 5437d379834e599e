from fastapi import APIRouter, Depends, status
from typing import List

from ...api.deps import get_current_actor, get_scheduling_service
from ...core.security import Actor
from ...services.scheduling_service import SchedulingService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentStatusUpdate, AppointmentResponse,
    CancellationResponse
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("/slots/{doctor_id}/{date}", response_model=List[str])
async def available_slots(
    doctor_id: int,
    date: str,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """List bookable slots for a doctor on a date."""
    return service.get_available_slots(doctor_id, date)

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    booking: AppointmentCreate,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Book an appointment for the calling patient."""
    return service.book_appointment(
        actor.id, booking.doctor_id, booking.date, booking.time_slot, role=actor.role
    )

@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Appointments of the caller, as doctor or as patient."""
    return service.list_appointments(actor.id, actor.role)

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    return service.get_appointment(actor.id, actor.role, appointment_id)

@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_status(
    appointment_id: int,
    update: AppointmentStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Change an appointment's status."""
    return service.update_status(actor.id, actor.role, appointment_id, update.status)

@router.delete("/{appointment_id}", response_model=CancellationResponse)
async def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Cancel an appointment. The record is kept with status CANCELLED."""
    appointment = service.cancel_appointment(actor.id, appointment_id, role=actor.role)

    return {
        "message": "Appointment cancelled successfully.",
        "appointment": AppointmentResponse.model_validate(appointment)
    }
