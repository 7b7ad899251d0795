from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import relationship
from app.config.database import Base
import enum


class UserRole(enum.Enum):
    ADMIN = "admin"
    THERAPIST = "therapist"
    STAFF = "staff"
    RECEPTIONIST = "receptionist"
    PARENT = "parent"
    MEMBER = "member"


STAFF_ROLES = {UserRole.ADMIN, UserRole.RECEPTIONIST}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(150), unique=True, index=True, nullable=True)
    phone = Column(String(15), index=True)  # canonical 10-digit form
    role = Column(
        SQLEnum(UserRole, name="userrole", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.PARENT
    )
    specialty = Column(String(100))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    patients = relationship("Patient", back_populates="parent")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self):
        return f"<User {self.id} {self.full_name} ({self.role.value})>"
