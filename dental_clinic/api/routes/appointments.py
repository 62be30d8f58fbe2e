import logging
import math
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.api.deps import get_appointment_repository, get_session, require_permission
from dental_clinic.api.schemas.appointment import (
    AppointmentListResponse,
    AppointmentOut,
    AppointmentRequest,
    AppointmentUpdateRequest,
    ConflictResponse,
    PaginationMeta,
    StatusUpdateRequest,
)
from dental_clinic.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
)
from dental_clinic.models.patient import Patient
from dental_clinic.models.user import User, UserRole
from dental_clinic.services.appointment_service import (
    BookingResult,
    cancel_appointment,
    create_appointment,
    get_appointment,
    list_appointments,
    list_appointments_for_day,
    update_appointment,
    update_appointment_status,
)
from dental_clinic.services.repository import SqlAppointmentRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

_CONFLICT_RESPONSES = {status.HTTP_409_CONFLICT: {"model": ConflictResponse}}


def _conflict_response(result: BookingResult) -> JSONResponse:
    body = ConflictResponse.from_report(result.conflict)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=body.model_dump(by_alias=True, mode="json"),
    )


async def _get_or_404(session: AsyncSession, appointment_id: int) -> Appointment:
    appointment = await get_appointment(session, appointment_id)
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found",
        )
    return appointment


async def _ensure_dentist(session: AsyncSession, dentist_id: int) -> None:
    dentist = await session.get(User, dentist_id)
    if not dentist or dentist.role != UserRole.DENTIST or not dentist.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Dentist not found or inactive",
        )


async def _ensure_patient(session: AsyncSession, patient_id: int) -> None:
    if not await session.get(Patient, patient_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found",
        )


@router.get("", response_model=AppointmentListResponse)
async def list_all_appointments(
    patient_id: int | None = Query(None, alias="patientId"),
    dentist_id: int | None = Query(None, alias="dentistId"),
    status_: AppointmentStatus | None = Query(None, alias="status"),
    type_: AppointmentType | None = Query(None, alias="type"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("appointments", "read")),
) -> AppointmentListResponse:
    appointments, total = await list_appointments(
        session,
        patient_id=patient_id,
        dentist_id=dentist_id,
        status=status_,
        type_=type_,
        start_date=start_date,
        end_date=end_date,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return AppointmentListResponse(
        data=[AppointmentOut.model_validate(a) for a in appointments],
        meta=PaginationMeta(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
    )


@router.get("/today", response_model=list[AppointmentOut])
async def todays_appointments(
    dentist_id: int | None = Query(None, alias="dentistId"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("appointments", "read")),
) -> list[AppointmentOut]:
    appointments = await list_appointments_for_day(session, date.today(), dentist_id=dentist_id)
    return [AppointmentOut.model_validate(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_one_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("appointments", "read")),
) -> AppointmentOut:
    return AppointmentOut.model_validate(await _get_or_404(session, appointment_id))


@router.post(
    "",
    response_model=AppointmentOut,
    status_code=status.HTTP_201_CREATED,
    responses=_CONFLICT_RESPONSES,
)
async def book_appointment(
    body: AppointmentRequest,
    session: AsyncSession = Depends(get_session),
    repo: SqlAppointmentRepository = Depends(get_appointment_repository),
    current_user: User = Depends(require_permission("appointments", "create")),
):
    await _ensure_patient(session, body.patient_id)
    await _ensure_dentist(session, body.dentist_id)
    data = AppointmentCreate(**body.model_dump())
    result = await create_appointment(repo, data, created_by_id=current_user.id)
    if result.conflict:
        return _conflict_response(result)
    return AppointmentOut.model_validate(result.appointment)


@router.put("/{appointment_id}", response_model=AppointmentOut, responses=_CONFLICT_RESPONSES)
async def edit_appointment(
    appointment_id: int,
    body: AppointmentUpdateRequest,
    session: AsyncSession = Depends(get_session),
    repo: SqlAppointmentRepository = Depends(get_appointment_repository),
    current_user: User = Depends(require_permission("appointments", "update")),
):
    appointment = await _get_or_404(session, appointment_id)
    data = AppointmentUpdate(**body.model_dump(exclude_unset=True))
    if data.patient_id is not None:
        await _ensure_patient(session, data.patient_id)
    if data.dentist_id is not None:
        await _ensure_dentist(session, data.dentist_id)
    result = await update_appointment(repo, appointment, data)
    if result.conflict:
        return _conflict_response(result)
    return AppointmentOut.model_validate(result.appointment)


@router.put("/{appointment_id}/status", response_model=AppointmentOut, responses=_CONFLICT_RESPONSES)
async def change_appointment_status(
    appointment_id: int,
    body: StatusUpdateRequest,
    session: AsyncSession = Depends(get_session),
    repo: SqlAppointmentRepository = Depends(get_appointment_repository),
    current_user: User = Depends(require_permission("appointments", "update")),
):
    appointment = await _get_or_404(session, appointment_id)
    result = await update_appointment_status(repo, appointment, body.status)
    if result.conflict:
        return _conflict_response(result)
    logger.info("Appointment %s marked as %s", appointment_id, body.status.value)
    return AppointmentOut.model_validate(result.appointment)


@router.delete("/{appointment_id}", response_model=AppointmentOut)
async def cancel_one_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    repo: SqlAppointmentRepository = Depends(get_appointment_repository),
    current_user: User = Depends(require_permission("appointments", "delete")),
) -> AppointmentOut:
    appointment = await _get_or_404(session, appointment_id)
    cancelled = await cancel_appointment(repo, appointment)
    return AppointmentOut.model_validate(cancelled)
