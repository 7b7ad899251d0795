from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, func
from sqlalchemy.orm import relationship
from app.config.database import Base


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    date_of_birth = Column(Date)
    gender = Column(String(10))
    parent_name = Column(String(150))
    parent_phone = Column(String(15), index=True)
    mother_name = Column(String(150))
    notes = Column(Text, default="")
    created_at = Column(DateTime, server_default=func.now())

    parent = relationship("User", back_populates="patients")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
