from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.api.deps import get_session, require_permission
from dental_clinic.api.schemas.patient import PatientOut, PatientRequest
from dental_clinic.models.patient import PatientCreate
from dental_clinic.models.user import User
from dental_clinic.services.patient_service import create_patient, get_patient, list_patients

router = APIRouter(prefix="/patients", tags=["patients"])


@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
async def register_patient(
    body: PatientRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("patients", "create")),
) -> PatientOut:
    patient = await create_patient(session, PatientCreate(**body.model_dump()))
    return PatientOut.model_validate(patient)


@router.get("", response_model=list[PatientOut])
async def search_patients(
    search: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("patients", "read")),
) -> list[PatientOut]:
    return [PatientOut.model_validate(p) for p in await list_patients(session, search)]


@router.get("/{patient_id}", response_model=PatientOut)
async def get_one_patient(
    patient_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission("patients", "read")),
) -> PatientOut:
    patient = await get_patient(session, patient_id)
    if not patient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found",
        )
    return PatientOut.model_validate(patient)
