from datetime import date

from fastapi import APIRouter, Depends, Query

from dental_clinic.api.deps import get_appointment_repository, require_permission
from dental_clinic.api.schemas.appointment import AvailableSlotsResponse, SlotInfo, SuggestionsOut
from dental_clinic.models.user import User
from dental_clinic.services.conflict_service import build_suggestions
from dental_clinic.services.repository import SqlAppointmentRepository
from dental_clinic.services.slot_service import grid_with_availability
from dental_clinic.services.time_utils import make_interval

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    dentist_id: int = Query(..., alias="dentistId"),
    date_param: date = Query(..., alias="date"),
    repo: SqlAppointmentRepository = Depends(get_appointment_repository),
    current_user: User = Depends(require_permission("appointments", "read")),
) -> AvailableSlotsResponse:
    """Every grid slot of the clinic day for the dentist, with an availability flag."""
    appointments = await repo.find_appointments(dentist_id, date_param)
    return AvailableSlotsResponse(
        date=date_param,
        dentist_id=dentist_id,
        slots=[
            SlotInfo(start_time=slot.start, end_time=slot.end, available=available)
            for slot, available in grid_with_availability(appointments)
        ],
    )


@router.get("/suggestions", response_model=SuggestionsOut)
async def slot_suggestions(
    dentist_id: int = Query(..., alias="dentistId"),
    date_param: date = Query(..., alias="date"),
    start_time: str = Query(..., alias="startTime"),
    end_time: str = Query(..., alias="endTime"),
    exclude_id: int | None = Query(None, alias="excludeId"),
    repo: SqlAppointmentRepository = Depends(get_appointment_repository),
    current_user: User = Depends(require_permission("appointments", "read")),
) -> SuggestionsOut:
    interval = make_interval(start_time, end_time)
    suggestions = await build_suggestions(
        repo, dentist_id, date_param, interval, exclude_appointment_id=exclude_id
    )
    return SuggestionsOut.from_suggestions(suggestions)
