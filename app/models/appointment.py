from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Boolean, Float, ForeignKey, Enum, Index, func
from sqlalchemy.orm import relationship
import enum
from app.config.database import Base
from app.utils import time_slots


def _values(enum_cls):
    return [m.value for m in enum_cls]


class AppointmentStatus(enum.Enum):
    PENDING_ASSIGNMENT = "pending_assignment"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    CONVERTED = "converted"


# Statuses that never block a therapist's time
INACTIVE_STATUSES = {
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CONVERTED,
}

# Statuses a staff member may set by hand
MANUAL_STATUSES = {
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
}

TRANSITIONS = {
    AppointmentStatus.PENDING_ASSIGNMENT: {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.RESCHEDULED,
        AppointmentStatus.CONVERTED,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.RESCHEDULED: {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    if current == target:
        return True
    return target in TRANSITIONS.get(current, set())


class AppointmentType(enum.Enum):
    INITIAL_ASSESSMENT = "initial assessment"
    FOLLOW_UP = "follow-up"
    THERAPY_SESSION = "therapy session"
    GROUP_THERAPY_SESSION = "group therapy session"


class ConsultationMode(enum.Enum):
    IN_PERSON = "in-person"
    VIDEO_CALL = "video-call"
    PHONE = "phone"


class SubmissionChannel(enum.Enum):
    STAFF = "staff"
    PUBLIC = "public"
    CONVERTED = "converted"


class PaymentMethod(enum.Enum):
    CASH = "cash"
    UPI = "upi"
    CARD = "card"
    NOT_SPECIFIED = "not_specified"


class PaymentStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_therapist_date", "therapist_id", "date"),
        Index("ix_appointments_status_date", "status", "date"),
        Index("ix_appointments_phone_status", "phone", "status"),
    )
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=True, index=True)
    therapist_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    request_id = Column(Integer, ForeignKey("appointment_requests.id"), nullable=True)

    patient_name = Column(String(100), nullable=False)
    father_name = Column(String(100))
    phone = Column(String(15))  # canonical 10-digit form
    email = Column(String(150))

    date = Column(Date, nullable=False)
    start_time = Column(String(20), nullable=False)  # Format: HH:MM AM/PM
    end_time = Column(String(20), nullable=False)
    type = Column(Enum(AppointmentType, name="appointmenttype", values_callable=_values),
                  default=AppointmentType.INITIAL_ASSESSMENT, nullable=False)
    consultation_mode = Column(Enum(ConsultationMode, name="consultationmode", values_callable=_values),
                               default=ConsultationMode.IN_PERSON, nullable=False)
    channel = Column(Enum(SubmissionChannel, name="submissionchannel", values_callable=_values),
                     default=SubmissionChannel.STAFF, nullable=False)
    status = Column(Enum(AppointmentStatus, name="appointmentstatus", values_callable=_values),
                    default=AppointmentStatus.SCHEDULED, nullable=False)
    notes = Column(Text, default="")
    address = Column(String(300), default="")
    consent = Column(Boolean, default=False)

    payment_amount = Column(Float, default=0)
    payment_method = Column(Enum(PaymentMethod, name="paymentmethod", values_callable=_values),
                            default=PaymentMethod.NOT_SPECIFIED)
    payment_status = Column(Enum(PaymentStatus, name="paymentstatus", values_callable=_values),
                            default=PaymentStatus.PENDING)

    total_sessions = Column(Integer, default=1)
    sessions_paid = Column(Integer, default=0)
    sessions_completed = Column(Integer, default=0)

    reminders_sent = Column(Integer, default=0, nullable=False)
    last_reminder_sent = Column(DateTime)  # UTC

    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    completed_at = Column(DateTime)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    therapist = relationship("User", foreign_keys=[therapist_id])
    service = relationship("Service")
    patient = relationship("Patient")

    @property
    def payment(self) -> dict:
        return {
            "amount": self.payment_amount or 0,
            "method": self.payment_method or PaymentMethod.NOT_SPECIFIED,
            "status": self.payment_status or PaymentStatus.PENDING,
        }

    @property
    def duration(self) -> int:
        try:
            return time_slots.duration(self.start_time, self.end_time)
        except time_slots.MalformedTimeError:
            return 0

    @property
    def formatted_date(self) -> str:
        return f"{self.date:%A}, {self.date:%B} {self.date.day}, {self.date:%Y}"

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    def can_be_rescheduled(self) -> bool:
        return self.status in (
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.RESCHEDULED,
        )

    def can_be_cancelled(self) -> bool:
        return self.status in (
            AppointmentStatus.PENDING_ASSIGNMENT,
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.RESCHEDULED,
        )

    def append_note(self, text: str) -> None:
        self.notes = f"{self.notes}\n{text}" if self.notes else text

    def __repr__(self):
        return f"<Appointment {self.id} {self.patient_name} with {self.therapist_id} on {self.date} {self.start_time}>"
