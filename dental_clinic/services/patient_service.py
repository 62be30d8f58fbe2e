from datetime import UTC, datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.models.patient import Patient, PatientCreate


async def generate_patient_code(session: AsyncSession, year: int | None = None) -> str:
    """Next patient code for the year, formatted PAT-YYYY-NNNN."""
    year = year or datetime.now(UTC).year
    prefix = f"PAT-{year}-"
    result = await session.execute(
        select(Patient.patient_code)
        .where(Patient.patient_code.startswith(prefix))
        .order_by(Patient.patient_code.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()
    next_number = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{next_number:04d}"


async def create_patient(session: AsyncSession, data: PatientCreate) -> Patient:
    patient = Patient(
        patient_code=await generate_patient_code(session),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        phone=data.phone,
        email=data.email,
    )
    session.add(patient)
    await session.flush()
    await session.refresh(patient)
    return patient


async def get_patient(session: AsyncSession, patient_id: int) -> Patient | None:
    return await session.get(Patient, patient_id)


async def list_patients(session: AsyncSession, search: str | None = None) -> list[Patient]:
    q = select(Patient).order_by(Patient.last_name, Patient.first_name)
    if search:
        term = "%" + search.strip().replace("%", r"\%").replace("_", r"\_") + "%"
        q = q.where(
            or_(
                Patient.first_name.ilike(term, escape="\\"),
                Patient.last_name.ilike(term, escape="\\"),
                Patient.patient_code.ilike(term, escape="\\"),
                Patient.phone.ilike(term, escape="\\"),
            )
        )
    result = await session.execute(q)
    return list(result.scalars().all())
