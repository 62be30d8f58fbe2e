import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    utc_naive_now,
)
from dental_clinic.services.conflict_service import ConflictReport, resolve_conflict
from dental_clinic.services.repository import AppointmentRepository
from dental_clinic.services.slot_service import check_conflict
from dental_clinic.services.time_utils import Interval, SchedulingError, make_interval

logger = logging.getLogger(__name__)

# FDI notation: quadrants 1-4, teeth 1-8
VALID_TOOTH_NUMBERS = frozenset(q * 10 + t for q in range(1, 5) for t in range(1, 9))

CLEARABLE_FIELDS = frozenset({"reason", "notes"})


class InvalidToothNumbers(SchedulingError):
    def __init__(self, numbers: list[int]) -> None:
        self.numbers = numbers
        joined = ", ".join(str(n) for n in numbers)
        super().__init__(f"Invalid tooth numbers: {joined}. Valid range is 11-48 (FDI notation).")


@dataclass
class BookingResult:
    appointment: Appointment | None = None
    conflict: ConflictReport | None = None


def validate_tooth_numbers(numbers: list[int] | None) -> list[int]:
    numbers = list(numbers or [])
    invalid = [n for n in numbers if n not in VALID_TOOTH_NUMBERS]
    if invalid:
        raise InvalidToothNumbers(invalid)
    return numbers


async def _book(
    repo: AppointmentRepository,
    dentist_id: int,
    day: date,
    interval: Interval,
    write,
    exclude_appointment_id: int | None = None,
) -> BookingResult:
    """Check for a conflict and run `write` only if the slot is free.

    Check and write happen under the repository's booking guard; suggestions
    are built after the guard is released.
    """
    async with repo.booking_guard(dentist_id, day):
        conflicting = await check_conflict(
            repo, dentist_id, day, interval, exclude_appointment_id=exclude_appointment_id
        )
        if conflicting is None:
            appointment = await write()
    if conflicting is not None:
        report = await resolve_conflict(
            repo, conflicting, dentist_id, day, interval, exclude_appointment_id=exclude_appointment_id
        )
        return BookingResult(conflict=report)
    return BookingResult(appointment=appointment)


async def create_appointment(
    repo: AppointmentRepository, data: AppointmentCreate, created_by_id: int | None = None
) -> BookingResult:
    interval = make_interval(data.start_time, data.end_time)
    tooth_numbers = validate_tooth_numbers(data.tooth_numbers)

    async def write() -> Appointment:
        appointment = Appointment(
            patient_id=data.patient_id,
            dentist_id=data.dentist_id,
            appointment_date=data.appointment_date,
            start_time=interval.start,
            end_time=interval.end,
            type=data.type or AppointmentType.CONSULTATION,
            reason=data.reason,
            notes=data.notes,
            tooth_numbers=tooth_numbers,
            created_by_id=created_by_id,
        )
        appointment = await repo.insert_appointment(appointment)
        logger.info(
            "Booked appointment %s for dentist %s on %s %s",
            appointment.id,
            appointment.dentist_id,
            appointment.appointment_date,
            interval.display(),
        )
        return appointment

    return await _book(repo, data.dentist_id, data.appointment_date, interval, write)


async def update_appointment(
    repo: AppointmentRepository, appointment: Appointment, data: AppointmentUpdate
) -> BookingResult:
    """Apply a partial update; a missing start or end time is taken from the
    stored appointment. Non-cancelled results are conflict-checked against the
    dentist's other appointments."""
    changes = data.model_dump(exclude_unset=True)
    interval = make_interval(
        changes.get("start_time") or appointment.start_time,
        changes.get("end_time") or appointment.end_time,
    )
    if changes.get("tooth_numbers") is not None:
        changes["tooth_numbers"] = validate_tooth_numbers(changes["tooth_numbers"])
    # explicit null clears a free-text field; elsewhere it means "keep"
    changes = {k: v for k, v in changes.items() if v is not None or k in CLEARABLE_FIELDS}
    changes["start_time"] = interval.start
    changes["end_time"] = interval.end

    dentist_id = changes.get("dentist_id", appointment.dentist_id)
    day = changes.get("appointment_date", appointment.appointment_date)
    status = changes.get("status", appointment.status)

    async def write() -> Appointment:
        for key, value in changes.items():
            setattr(appointment, key, value)
        appointment.updated_at = utc_naive_now()
        return appointment

    if status == AppointmentStatus.CANCELLED:
        async with repo.booking_guard(dentist_id, day):
            await write()
        return BookingResult(appointment=appointment)
    return await _book(
        repo, dentist_id, day, interval, write, exclude_appointment_id=appointment.id
    )


async def update_appointment_status(
    repo: AppointmentRepository, appointment: Appointment, status: AppointmentStatus
) -> BookingResult:
    return await update_appointment(repo, appointment, AppointmentUpdate(status=status))


async def cancel_appointment(repo: AppointmentRepository, appointment: Appointment) -> Appointment:
    result = await update_appointment_status(repo, appointment, AppointmentStatus.CANCELLED)
    return result.appointment


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment | None:
    return await session.get(Appointment, appointment_id)


async def list_appointments(
    session: AsyncSession,
    *,
    patient_id: int | None = None,
    dentist_id: int | None = None,
    status: AppointmentStatus | None = None,
    type_: AppointmentType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Appointment], int]:
    conditions = []
    if patient_id is not None:
        conditions.append(Appointment.patient_id == patient_id)
    if dentist_id is not None:
        conditions.append(Appointment.dentist_id == dentist_id)
    if status is not None:
        conditions.append(Appointment.status == status)
    if type_ is not None:
        conditions.append(Appointment.type == type_)
    if start_date is not None:
        conditions.append(Appointment.appointment_date >= start_date)
    if end_date is not None:
        conditions.append(Appointment.appointment_date <= end_date)

    q = (
        select(Appointment)
        .where(*conditions)
        .order_by(Appointment.appointment_date.desc(), Appointment.start_time)
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(q)
    total = await session.scalar(select(func.count()).select_from(Appointment).where(*conditions))
    return list(result.scalars().all()), int(total or 0)


async def list_appointments_for_day(
    session: AsyncSession, day: date, dentist_id: int | None = None
) -> list[Appointment]:
    q = select(Appointment).where(Appointment.appointment_date == day).order_by(Appointment.start_time)
    if dentist_id is not None:
        q = q.where(Appointment.dentist_id == dentist_id)
    result = await session.execute(q)
    return list(result.scalars().all())
