from pydantic import BaseModel, Field, EmailStr, field_validator
from datetime import datetime, date
from datetime import date as date_type
from typing import Dict, List, Optional
from app.models.appointment import (
    AppointmentStatus,
    AppointmentType,
    ConsultationMode,
    PaymentMethod,
    PaymentStatus,
    SubmissionChannel,
)


def _require_consent(value: bool) -> bool:
    if value is not True:
        raise ValueError("Patient consent is required")
    return value


class PaymentInfo(BaseModel):
    amount: float = Field(0, ge=0)
    method: PaymentMethod = PaymentMethod.NOT_SPECIFIED
    status: PaymentStatus = PaymentStatus.PENDING

    class Config:
        from_attributes = True


class AppointmentSlot(BaseModel):
    date: date
    start_time: str = Field(..., min_length=1, max_length=20, description="Format: HH:MM AM/PM")
    end_time: str = Field(..., min_length=1, max_length=20, description="Format: HH:MM AM/PM")


class StaffAppointmentCreate(AppointmentSlot):
    """Booking made by admin/reception for an existing patient."""
    patient_id: int
    therapist_id: int
    service_id: int
    type: AppointmentType = AppointmentType.INITIAL_ASSESSMENT
    consultation_mode: ConsultationMode = ConsultationMode.IN_PERSON
    notes: Optional[str] = Field("", max_length=1000)
    address: Optional[str] = Field("", max_length=300)
    payment: PaymentInfo = Field(default_factory=PaymentInfo)
    total_sessions: int = Field(1, ge=1)
    sessions_paid: int = Field(0, ge=0)
    consent: bool

    @field_validator("consent")
    @classmethod
    def consent_given(cls, value: bool) -> bool:
        return _require_consent(value)


class PublicAppointmentCreate(BaseModel):
    """Booking submitted by a parent from the public form."""
    parent_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=10, max_length=15)
    email: Optional[EmailStr] = None
    child_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, pattern="^(male|female|other)$")
    service_id: int
    therapist_id: Optional[int] = None
    date: date
    start_time: str = Field(..., min_length=1, max_length=20)
    end_time: Optional[str] = Field(None, max_length=20)
    type: AppointmentType = AppointmentType.INITIAL_ASSESSMENT
    consultation_mode: ConsultationMode = ConsultationMode.IN_PERSON
    notes: Optional[str] = Field("", max_length=1000)
    consent: bool

    @field_validator("consent")
    @classmethod
    def consent_given(cls, value: bool) -> bool:
        return _require_consent(value)


class AppointmentUpdate(BaseModel):
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    therapist_id: Optional[int] = None
    status: Optional[str] = None
    type: Optional[AppointmentType] = None
    consultation_mode: Optional[ConsultationMode] = None
    notes: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, max_length=300)
    payment: Optional[PaymentInfo] = None
    total_sessions: Optional[int] = Field(None, ge=1)
    sessions_paid: Optional[int] = Field(None, ge=0)
    sessions_completed: Optional[int] = Field(None, ge=0)


class RescheduleRequest(AppointmentSlot):
    therapist_id: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=300)


class StatusUpdate(BaseModel):
    status: str


class AssignTherapistRequest(BaseModel):
    therapist_id: int


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    patient_id: Optional[int] = None
    therapist_id: Optional[int] = None
    service_id: int
    request_id: Optional[int] = None
    patient_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    date: date
    start_time: str
    end_time: str
    duration: int
    formatted_date: str
    type: AppointmentType
    consultation_mode: ConsultationMode
    channel: SubmissionChannel
    status: AppointmentStatus
    notes: Optional[str] = ""
    address: Optional[str] = ""
    payment: PaymentInfo
    total_sessions: int
    sessions_paid: int
    sessions_completed: int
    reminders_sent: int
    last_reminder_sent: Optional[datetime] = None
    assigned_by: Optional[int] = None
    assigned_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlotSummary(BaseModel):
    appointment_id: int
    patient_name: str
    service: Optional[str] = None
    type: str
    status: str
    start_time: str
    end_time: str


# therapist label -> slot label -> booking (None when free)
CalendarView = Dict[str, Dict[str, Optional[SlotSummary]]]


class AvailabilityResponse(BaseModel):
    therapist_id: int
    date: date
    total_slots: int
    available_slots: List[str]
    booked_slots: List[str]
