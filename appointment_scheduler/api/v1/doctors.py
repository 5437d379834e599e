from fastapi import APIRouter, Depends
from typing import List

from ...api.deps import get_current_actor, get_scheduling_service
from ...core.security import Actor
from ...services.scheduling_service import SchedulingService
from ...services.user_directory import UserDirectory
from ...schemas.doctor import DoctorResponse

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorResponse])
async def list_doctors(
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """List active doctors with their working hours."""
    doctors = []
    for doctor in service.list_doctors():
        hours = UserDirectory.working_hours_for(doctor)
        doctors.append(DoctorResponse.from_user(doctor, hours.start, hours.end))
    return doctors
