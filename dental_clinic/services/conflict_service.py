import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date

from dental_clinic.models.appointment import Appointment
from dental_clinic.services.repository import AppointmentRepository
from dental_clinic.services.slot_service import (
    check_conflict,
    get_available_time_slots,
    get_next_available_slot,
)
from dental_clinic.services.time_utils import Interval

logger = logging.getLogger(__name__)

UNKNOWN_PATIENT_NAME = "another patient"


@dataclass(frozen=True)
class AlternativeDoctor:
    id: int
    name: str
    available: bool = True


@dataclass
class SlotSuggestionSet:
    alternative_doctors: list[AlternativeDoctor] = field(default_factory=list)
    available_time_slots: list[Interval] = field(default_factory=list)
    next_available_slot: Interval | None = None


@dataclass(frozen=True)
class ConflictInfo:
    patient_name: str
    time: str


@dataclass
class ConflictReport:
    existing_appointment: ConflictInfo
    suggestions: SlotSuggestionSet


def doctor_display_name(first_name: str, last_name: str) -> str:
    return f"Dr. {first_name} {last_name}"


async def get_alternative_doctors(
    repo: AppointmentRepository,
    day: date,
    interval: Interval,
    exclude_dentist_id: int,
) -> list[AlternativeDoctor]:
    dentists = await repo.find_active_dentists(exclude_id=exclude_dentist_id)
    out: list[AlternativeDoctor] = []
    for dentist in dentists:
        if await check_conflict(repo, dentist.id, day, interval) is None:
            out.append(
                AlternativeDoctor(
                    id=dentist.id,
                    name=doctor_display_name(dentist.first_name, dentist.last_name),
                )
            )
    return out


async def describe_conflict(repo: AppointmentRepository, appointment: Appointment) -> ConflictInfo:
    name = await repo.get_patient_name(appointment.patient_id)
    return ConflictInfo(
        patient_name=name or UNKNOWN_PATIENT_NAME,
        time=f"{appointment.start_time} - {appointment.end_time}",
    )


async def build_suggestions(
    repo: AppointmentRepository,
    dentist_id: int,
    day: date,
    interval: Interval,
    exclude_appointment_id: int | None = None,
) -> SlotSuggestionSet:
    """Run the three independent suggestion queries concurrently."""
    doctors, slots, next_slot = await asyncio.gather(
        get_alternative_doctors(repo, day, interval, exclude_dentist_id=dentist_id),
        get_available_time_slots(
            repo, dentist_id, day, interval, exclude_appointment_id=exclude_appointment_id
        ),
        get_next_available_slot(
            repo, dentist_id, day, interval, exclude_appointment_id=exclude_appointment_id
        ),
    )
    return SlotSuggestionSet(
        alternative_doctors=doctors,
        available_time_slots=slots,
        next_available_slot=next_slot,
    )


async def resolve_conflict(
    repo: AppointmentRepository,
    conflicting: Appointment,
    dentist_id: int,
    day: date,
    interval: Interval,
    exclude_appointment_id: int | None = None,
) -> ConflictReport:
    logger.info(
        "Slot %s on %s for dentist %s conflicts with appointment %s",
        interval.display(),
        day,
        dentist_id,
        conflicting.id,
    )
    info, suggestions = await asyncio.gather(
        describe_conflict(repo, conflicting),
        build_suggestions(
            repo, dentist_id, day, interval, exclude_appointment_id=exclude_appointment_id
        ),
    )
    return ConflictReport(existing_appointment=info, suggestions=suggestions)
