import enum
from datetime import UTC, date, datetime

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def naive_timestamp_column() -> Column:
    return Column(DateTime(timezone=False), nullable=False)


class AppointmentType(str, enum.Enum):
    CONSULTATION = "CONSULTATION"
    FOLLOW_UP = "FOLLOW_UP"
    EMERGENCY = "EMERGENCY"
    PROCEDURE = "PROCEDURE"


class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    RESCHEDULED = "RESCHEDULED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    dentist_id: int = Field(foreign_key="users.id", index=True)
    appointment_date: date = Field(index=True)
    start_time: str  # HH:MM, 24-hour
    end_time: str
    type: AppointmentType = AppointmentType.CONSULTATION
    status: AppointmentStatus = Field(default=AppointmentStatus.CONFIRMED, index=True)
    reason: str | None = None
    notes: str | None = None
    tooth_numbers: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_by_id: int | None = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_naive_now, sa_column=naive_timestamp_column())
    updated_at: datetime = Field(default_factory=utc_naive_now, sa_column=naive_timestamp_column())


class AppointmentCreate(SQLModel):
    patient_id: int
    dentist_id: int
    appointment_date: date
    start_time: str
    end_time: str
    type: AppointmentType = AppointmentType.CONSULTATION
    reason: str | None = None
    notes: str | None = None
    tooth_numbers: list[int] = []


class AppointmentUpdate(SQLModel):
    patient_id: int | None = None
    dentist_id: int | None = None
    appointment_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    type: AppointmentType | None = None
    status: AppointmentStatus | None = None
    reason: str | None = None
    notes: str | None = None
    tooth_numbers: list[int] | None = None
