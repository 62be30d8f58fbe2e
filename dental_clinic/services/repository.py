"""Data-store access for the scheduling services.

Services receive an ``AppointmentRepository`` instead of reaching for a global
session, so the scheduling logic can run against any store.
"""
import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_clinic.models.appointment import Appointment, AppointmentStatus
from dental_clinic.models.patient import Patient
from dental_clinic.models.user import User, UserRole

logger = logging.getLogger(__name__)

# One lock per (dentist_id, date) so check-then-insert is serialized in-process
_booking_locks: "weakref.WeakValueDictionary[tuple[int, date], asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _booking_lock(dentist_id: int, day: date) -> asyncio.Lock:
    key = (dentist_id, day)
    lock = _booking_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _booking_locks[key] = lock
    return lock


class AppointmentRepository(Protocol):
    async def find_appointments(
        self, dentist_id: int, day: date, exclude_id: int | None = None
    ) -> list[Appointment]:
        """Non-cancelled appointments of a dentist on a day, ordered by start time."""
        ...

    async def find_active_dentists(self, exclude_id: int | None = None) -> list[User]:
        ...

    async def get_patient_name(self, patient_id: int) -> str | None:
        ...

    async def insert_appointment(self, appointment: Appointment) -> Appointment:
        ...

    def booking_guard(self, dentist_id: int, day: date):
        """Async context manager making conflict-check-then-write atomic."""
        ...


class SqlAppointmentRepository:
    """Repository over one AsyncSession.

    A session cannot run statements concurrently, so reads issued in parallel
    by the suggestion engine are serialized on ``_lock``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._lock = asyncio.Lock()

    async def find_appointments(
        self, dentist_id: int, day: date, exclude_id: int | None = None
    ) -> list[Appointment]:
        q = (
            select(Appointment)
            .where(
                Appointment.dentist_id == dentist_id,
                Appointment.appointment_date == day,
                Appointment.status != AppointmentStatus.CANCELLED,
            )
            .order_by(Appointment.start_time, Appointment.id)
        )
        if exclude_id is not None:
            q = q.where(Appointment.id != exclude_id)
        async with self._lock:
            result = await self.session.execute(q)
            return list(result.scalars().all())

    async def find_active_dentists(self, exclude_id: int | None = None) -> list[User]:
        q = (
            select(User)
            .where(User.role == UserRole.DENTIST, User.is_active == True)  # noqa: E712
            .order_by(User.id)
        )
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        async with self._lock:
            result = await self.session.execute(q)
            return list(result.scalars().all())

    async def get_patient_name(self, patient_id: int) -> str | None:
        async with self._lock:
            patient = await self.session.get(Patient, patient_id)
        return patient.full_name if patient else None

    async def insert_appointment(self, appointment: Appointment) -> Appointment:
        async with self._lock:
            self.session.add(appointment)
            await self.session.flush()
            await self.session.refresh(appointment)
        return appointment

    @asynccontextmanager
    async def booking_guard(self, dentist_id: int, day: date) -> AsyncIterator[None]:
        """Serialize bookings for one dentist/day and commit before releasing.

        The dentist row is locked with SELECT ... FOR UPDATE, which serializes
        across processes on PostgreSQL; the asyncio lock covers this process.
        """
        async with _booking_lock(dentist_id, day):
            async with self._lock:
                await self.session.execute(
                    select(User.id).where(User.id == dentist_id).with_for_update()
                )
            try:
                yield
                async with self._lock:
                    await self.session.commit()
            except Exception:
                logger.debug("Booking for dentist %s on %s rolled back", dentist_id, day)
                async with self._lock:
                    await self.session.rollback()
                raise
