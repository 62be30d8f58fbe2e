from dental_clinic.models.user import User, UserPublic, UserRole
from dental_clinic.models.patient import Patient, PatientCreate
from dental_clinic.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
)

__all__ = [
    "User",
    "UserPublic",
    "UserRole",
    "Patient",
    "PatientCreate",
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
    "AppointmentType",
    "AppointmentUpdate",
]
