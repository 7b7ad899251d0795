from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
import enum
from app.config.database import Base


class RequestStatus(enum.Enum):
    PENDING = "pending"
    CONVERTED = "converted"
    CANCELLED = "cancelled"


class AppointmentRequest(Base):
    """Parent-submitted intake; becomes an Appointment once a slot is assigned."""

    __tablename__ = "appointment_requests"

    id = Column(Integer, primary_key=True, index=True)
    mother_name = Column(String(100), nullable=False)
    father_name = Column(String(100), nullable=False)
    child_name = Column(String(100), nullable=False)
    phone = Column(String(15), nullable=False, index=True)
    email = Column(String(150), nullable=False)
    child_age = Column(Integer, nullable=False)
    service_type = Column(String(50), nullable=False, default="Not_selected")
    preferred_date = Column(Date, nullable=False)
    preferred_time = Column(String(20), nullable=False)
    payment_method = Column(String(20), default="not_specified")
    notes = Column(Text, default="")
    status = Column(
        Enum(RequestStatus, name="requeststatus", values_callable=lambda e: [m.value for m in e]),
        default=RequestStatus.PENDING,
        nullable=False
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    appointment_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    creator = relationship("User")
