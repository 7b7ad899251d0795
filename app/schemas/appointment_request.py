from pydantic import BaseModel, Field, EmailStr
from datetime import datetime, date
from datetime import date as date_type
from typing import Literal, Optional
from app.models.appointment import AppointmentType
from app.models.appointment_request import RequestStatus
from app.schemas.appointment import PaymentInfo

ServiceType = Literal[
    "Occupational Therapy",
    "Speech Therapy",
    "Physical Therapy",
    "Assessment",
    "Consultation",
    "Other",
    "Not_selected",
]


class AppointmentRequestCreate(BaseModel):
    mother_name: str = Field(..., min_length=1, max_length=100)
    father_name: str = Field(..., min_length=1, max_length=100)
    child_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=10, max_length=15)
    email: EmailStr
    child_age: int = Field(..., ge=0, le=25)
    service_type: ServiceType = "Not_selected"
    preferred_date: date
    preferred_time: str = Field(..., min_length=1, max_length=20)
    payment_method: Literal["card", "cash", "insurance", "not_specified"] = "not_specified"
    notes: Optional[str] = Field("", max_length=1000)


class RequestConversion(BaseModel):
    """Formal slot details chosen by reception when converting a request."""
    therapist_id: int
    service_id: int
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: AppointmentType = AppointmentType.INITIAL_ASSESSMENT
    payment: PaymentInfo = Field(default_factory=PaymentInfo)
    total_sessions: int = Field(1, ge=1)
    notes: Optional[str] = Field("", max_length=1000)


class AppointmentRequestResponse(BaseModel):
    id: int
    mother_name: str
    father_name: str
    child_name: str
    phone: str
    email: str
    child_age: int
    service_type: str
    preferred_date: date
    preferred_time: str
    payment_method: str
    notes: Optional[str] = ""
    status: RequestStatus
    created_by: int
    appointment_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
