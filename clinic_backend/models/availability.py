"""Availability model definitions."""

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Index, func
from clinic_backend.database import Base


class DoctorAvailability(Base):
    """Represents a dated, bookable slot generated from a doctor schedule."""
    __tablename__ = "doctor_availabilities"
    __table_args__ = (
        Index("uq_doctor_availabilities_availability_id", "availability_id", unique=True),
        Index("idx_doctor_availabilities_doctor_date_booked", "doctor_id", "date", "is_booked"),
    )

    id = Column(Integer, primary_key=True)
    availability_id = Column(String, nullable=False)
    doctor_id = Column(String, index=True, nullable=False)
    date = Column(Date, index=True, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    appointment_id = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
