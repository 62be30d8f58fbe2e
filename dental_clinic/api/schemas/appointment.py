from datetime import date, datetime

from dental_clinic.api.schemas.base import CamelModel
from dental_clinic.models.appointment import AppointmentStatus, AppointmentType
from dental_clinic.services.conflict_service import ConflictReport, SlotSuggestionSet
from dental_clinic.services.time_utils import Interval


class TimeSlot(CamelModel):
    start_time: str
    end_time: str

    @classmethod
    def from_interval(cls, interval: Interval) -> "TimeSlot":
        return cls(start_time=interval.start, end_time=interval.end)


class SlotInfo(TimeSlot):
    available: bool


class AvailableSlotsResponse(CamelModel):
    date: date
    dentist_id: int
    slots: list[SlotInfo]


class AlternativeDoctorOut(CamelModel):
    id: int
    name: str
    available: bool


class SuggestionsOut(CamelModel):
    alternative_doctors: list[AlternativeDoctorOut]
    available_time_slots: list[TimeSlot]
    next_available_slot: TimeSlot | None = None

    @classmethod
    def from_suggestions(cls, suggestions: SlotSuggestionSet) -> "SuggestionsOut":
        nxt = suggestions.next_available_slot
        return cls(
            alternative_doctors=[
                AlternativeDoctorOut(id=d.id, name=d.name, available=d.available)
                for d in suggestions.alternative_doctors
            ],
            available_time_slots=[TimeSlot.from_interval(s) for s in suggestions.available_time_slots],
            next_available_slot=TimeSlot.from_interval(nxt) if nxt else None,
        )


class ExistingAppointmentOut(CamelModel):
    patient_name: str
    time: str


class ConflictOut(CamelModel):
    existing_appointment: ExistingAppointmentOut


class ConflictResponse(CamelModel):
    success: bool = False
    message: str = "Time slot conflicts with an existing appointment"
    conflict: ConflictOut
    suggestions: SuggestionsOut

    @classmethod
    def from_report(cls, report: ConflictReport) -> "ConflictResponse":
        existing = report.existing_appointment
        return cls(
            conflict=ConflictOut(
                existing_appointment=ExistingAppointmentOut(
                    patient_name=existing.patient_name, time=existing.time
                )
            ),
            suggestions=SuggestionsOut.from_suggestions(report.suggestions),
        )


class AppointmentRequest(CamelModel):
    patient_id: int
    dentist_id: int
    appointment_date: date
    start_time: str  # HH:MM or h:mm AM/PM
    end_time: str
    type: AppointmentType = AppointmentType.CONSULTATION
    reason: str | None = None
    notes: str | None = None
    tooth_numbers: list[int] = []


class AppointmentUpdateRequest(CamelModel):
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


class StatusUpdateRequest(CamelModel):
    status: AppointmentStatus


class AppointmentOut(CamelModel):
    id: int
    patient_id: int
    dentist_id: int
    appointment_date: date
    start_time: str
    end_time: str
    type: AppointmentType
    status: AppointmentStatus
    reason: str | None = None
    notes: str | None = None
    tooth_numbers: list[int] = []
    created_by_id: int | None = None
    created_at: datetime
    updated_at: datetime


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentListResponse(CamelModel):
    data: list[AppointmentOut]
    meta: PaginationMeta
