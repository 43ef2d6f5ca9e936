"""Appointment model definitions."""

from sqlalchemy import Column, Integer, String, Date, DateTime, func
from clinic_backend.database import Base


class Appointment(Base):
    """Represents an appointment booked against an availability slot."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    doctor_id = Column(String, index=True, nullable=False)
    availability_id = Column(String, nullable=True)
    appointment_date = Column(Date, index=True, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String, default="booked", nullable=False)  # booked/cancelled/completed/no-show
    reason = Column(String)
    notes = Column(String)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
