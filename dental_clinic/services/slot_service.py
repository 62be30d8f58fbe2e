from datetime import date

from dental_clinic.core.config import settings
from dental_clinic.models.appointment import Appointment
from dental_clinic.services.repository import AppointmentRepository
from dental_clinic.services.time_utils import Interval, from_minutes, to_minutes


def overlaps(existing: Interval, candidate: Interval) -> bool:
    """True when two half-open intervals overlap; touching ends do not."""
    es, ee = existing.start_minutes, existing.end_minutes
    cs, ce = candidate.start_minutes, candidate.end_minutes
    # candidate starts inside existing
    if es <= cs < ee:
        return True
    # candidate ends inside existing
    if es < ce <= ee:
        return True
    # candidate contains existing
    return cs <= es and ee <= ce


def appointment_interval(appointment: Appointment) -> Interval:
    return Interval(appointment.start_time, appointment.end_time)


def find_conflict(appointments: list[Appointment], candidate: Interval) -> Appointment | None:
    for appointment in appointments:
        if overlaps(appointment_interval(appointment), candidate):
            return appointment
    return None


async def check_conflict(
    repo: AppointmentRepository,
    dentist_id: int,
    day: date,
    interval: Interval,
    exclude_appointment_id: int | None = None,
) -> Appointment | None:
    """First non-cancelled appointment of the dentist on `day` overlapping `interval`."""
    appointments = await repo.find_appointments(dentist_id, day, exclude_id=exclude_appointment_id)
    return find_conflict(appointments, interval)


def _slot_grid() -> list[Interval]:
    """Grid slots for a clinic day (09:00-18:00 in 30-minute steps by default)."""
    slots: list[Interval] = []
    step = settings.slot_step_minutes
    current = to_minutes(settings.clinic_open_time)
    close = to_minutes(settings.clinic_close_time)
    while current + step <= close:
        slots.append(Interval(from_minutes(current), from_minutes(current + step)))
        current += step
    return slots


def grid_with_availability(appointments: list[Appointment]) -> list[tuple[Interval, bool]]:
    return [(slot, find_conflict(appointments, slot) is None) for slot in _slot_grid()]


def _merged_windows(free: list[Interval]) -> list[Interval]:
    windows: list[Interval] = []
    for slot in free:
        if windows and windows[-1].end == slot.start:
            windows[-1] = Interval(windows[-1].start, slot.end)
        else:
            windows.append(slot)
    return windows


def _slots_within_windows(windows: list[Interval], duration: int) -> list[Interval]:
    """Grid-aligned sub-intervals of `duration` minutes that fit inside a free window."""
    step = settings.slot_step_minutes
    out: list[Interval] = []
    for window in windows:
        start = window.start_minutes
        while start + duration <= window.end_minutes:
            out.append(Interval(from_minutes(start), from_minutes(start + duration)))
            start += step
    return out


async def get_available_time_slots(
    repo: AppointmentRepository,
    dentist_id: int,
    day: date,
    requested: Interval,
    exclude_appointment_id: int | None = None,
) -> list[Interval]:
    """Open slots on `day` for the dentist, long enough for `requested`, at most
    ``max_suggested_slots`` in chronological order.

    With the default fixed grid a request longer than one step gets no slots;
    ``merge_contiguous_slots`` joins adjacent free cells first.
    """
    appointments = await repo.find_appointments(dentist_id, day, exclude_id=exclude_appointment_id)
    free = [slot for slot, available in grid_with_availability(appointments) if available]
    duration = requested.duration_minutes
    if settings.merge_contiguous_slots:
        candidates = _slots_within_windows(_merged_windows(free), duration)
    else:
        candidates = [slot for slot in free if slot.duration_minutes >= duration]
    return candidates[: settings.max_suggested_slots]


async def get_next_available_slot(
    repo: AppointmentRepository,
    dentist_id: int,
    day: date,
    requested: Interval,
    exclude_appointment_id: int | None = None,
) -> Interval | None:
    slots = await get_available_time_slots(
        repo, dentist_id, day, requested, exclude_appointment_id=exclude_appointment_id
    )
    for slot in slots:
        if slot.start_minutes > requested.start_minutes:
            return slot
    return slots[0] if slots else None
