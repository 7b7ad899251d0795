from app.models.user import User, UserRole
from app.models.patient import Patient
from app.models.service import Service
from app.models.appointment import Appointment, AppointmentStatus
from app.models.appointment_request import AppointmentRequest, RequestStatus

__all__ = [
    "User", "UserRole", "Patient", "Service",
    "Appointment", "AppointmentStatus",
    "AppointmentRequest", "RequestStatus",
]
