from datetime import datetime

from sqlmodel import Field, SQLModel

from dental_clinic.models.appointment import naive_timestamp_column, utc_naive_now


class Patient(SQLModel, table=True):
    __tablename__ = "patients"
    id: int | None = Field(default=None, primary_key=True)
    patient_code: str = Field(unique=True, index=True)  # PAT-YYYY-NNNN
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None
    created_at: datetime = Field(default_factory=utc_naive_now, sa_column=naive_timestamp_column())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PatientCreate(SQLModel):
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None
