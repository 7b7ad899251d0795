from sqlalchemy import Column, Integer, String, Float, Boolean, Text
from app.config.database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, default="")
    category = Column(String(50), nullable=False, default="Other")
    duration = Column(Integer, nullable=False, default=45)  # minutes
    price = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
