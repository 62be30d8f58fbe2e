from datetime import datetime

from dental_clinic.api.schemas.base import CamelModel


class PatientRequest(CamelModel):
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None


class PatientOut(CamelModel):
    id: int
    patient_code: str
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None
    created_at: datetime
